"""Command-line entrypoint: ``lifx-client discover | lights | toggle``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

import httpx
from loguru import logger

from lifx_client.config import Config, load_config
from lifx_client.errors import LifxError
from lifx_client.lan.client import LanClient
from lifx_client.lan.throttle import THROTTLE
from lifx_client.rest.client import RestClient, delta


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lifx-client", description="LIFX LAN/HTTP client")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    discover = sub.add_parser("discover", help="Broadcast discovery on the LAN")
    discover.add_argument("--timeout", type=float, help="Seconds to wait for replies")
    discover.add_argument("--port", type=int, help="Device UDP port")

    lights = sub.add_parser("lights", help="List lights through the HTTP API")
    lights.add_argument("--selector", default="all")

    toggle = sub.add_parser("toggle", help="Toggle power through the HTTP API")
    toggle.add_argument("--selector", default="all")
    toggle.add_argument("--duration", type=float, default=0.0)
    return parser


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


async def run_discover(config: Config, timeout: float | None, port: int | None) -> int:
    THROTTLE.interval = config.lan.send_interval
    async with await LanClient.create(
        config.lan.bind_port, broadcast_address=config.lan.broadcast_address,
    ) as client:
        replies = await client.discover(
            timeout if timeout is not None else config.lan.timeout,
            port if port is not None else config.lan.port,
        )
    seen = 0
    for datagram in replies:
        frame = datagram.try_frame()
        if frame is None:
            logger.debug("[CLI] ignoring malformed datagram from {}", datagram.address)
            continue
        if frame.source == client.nonce:
            continue  # own broadcast looped back
        seen += 1
        print(f"{datagram.address[0]}:{datagram.address[1]}  target={frame.target.hex()}  {frame!r}")
    logger.info("[CLI] {} device reply(s)", seen)
    return 0


def _rest_client(config: Config) -> RestClient:
    return RestClient(
        config.rest.secret,
        base_url=config.rest.base_url,
        timeout=config.rest.timeout,
    )


async def run_lights(config: Config, selector: str) -> int:
    async with _rest_client(config) as rest:
        for light in await rest.list_lights(selector):
            power = light.get("power", "?")
            print(f"{light.get('id', '?')}  {light.get('label', '')}  power={power}")
    return 0


async def run_toggle(config: Config, selector: str, duration: float) -> int:
    async with _rest_client(config) as rest:
        before = {light["id"]: light for light in await rest.list_lights(selector)}
        await rest.toggle_power(selector, duration=duration)
        after = {light["id"]: light for light in await rest.list_lights(selector)}
    for light_id, state in after.items():
        toggle = delta(before.get(light_id), state)
        logger.info("[CLI] toggled {}: {}", light_id, toggle)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(args.log_level or config.log_level)

    if args.command == "discover":
        coro = run_discover(config, args.timeout, args.port)
    elif args.command == "lights":
        coro = run_lights(config, args.selector)
    else:
        coro = run_toggle(config, args.selector, args.duration)

    try:
        return asyncio.run(coro)
    except (LifxError, httpx.HTTPError) as exc:
        logger.error("[CLI] {}: {}", type(exc).__name__, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
