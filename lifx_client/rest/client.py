"""Thin async client for the LIFX cloud HTTP API (v1)."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

import httpx
from loguru import logger

from lifx_client.errors import ResponseError, ValidationError
from lifx_client.events import EventChannel

DEFAULT_BASE_URL = "https://api.lifx.com"
SUCCESSFUL_STATUS_CODES = frozenset({200, 207})  # OK, Multi-Status


def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown"


@dataclass(frozen=True)
class ResponseResult:
    """One entry of a ``results`` array returned by the API."""

    id: str = ""
    label: str = ""
    status: str = ""
    operation: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResponseResult":
        known = {"id", "label", "status", "operation"}
        return cls(
            id=data.get("id", ""),
            label=data.get("label", ""),
            status=data.get("status", ""),
            operation=data.get("operation") or {},
            extra={k: v for k, v in data.items() if k not in known},
        )


class RestClient:
    """Bearer-token client for ``https://api.lifx.com/v1``.

    Parameters
    ----------
    secret:
        Personal access token.
    base_url:
        API root, overridable for testing.
    timeout:
        Request timeout in seconds.
    events:
        Channel receiving ``"results"`` and ``"error"`` events.
    transport:
        Optional ``httpx`` transport (e.g. ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        secret: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        events: EventChannel | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not isinstance(secret, str) or not secret:
            raise ValidationError("secret must be a non-empty string")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.events = events or EventChannel()
        self._secret = secret
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_secret(cls, secret: str, **kwargs: Any) -> "RestClient":
        return cls(secret, **kwargs)

    def _get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._secret}"}

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the underlying ``httpx.AsyncClient``."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._get_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RestClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # -- requests ------------------------------------------------------------

    async def send_request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            ResponseError: non-success status, or a body carrying ``error``
        """
        logger.trace("[REST] starting {} {}", method, path)
        response = await self.client.request(method, path, json=json, params=params)
        logger.trace("[REST] complete {} {} -> {}", method, path, response.status_code)

        if response.status_code not in SUCCESSFUL_STATUS_CODES:
            raise ResponseError(
                _reason(response.status_code),
                status_code=response.status_code,
                body=_safe_json(response),
            )

        body = _safe_json(response)
        if isinstance(body, dict):
            message = body.get("error")
            if isinstance(message, str) and message:
                error = ResponseError(message, status_code=response.status_code, body=body)
                self.events.emit("error", error)
                raise error
            results = body.get("results")
            if isinstance(results, list) and results:
                self.events.emit(
                    "results", [ResponseResult.from_dict(r) for r in results if isinstance(r, dict)],
                )
        return body

    async def list_lights(self, selector: str = "all") -> list[dict[str, Any]]:
        """Return the state of every light matching *selector*."""
        return await self.send_request("GET", f"/v1/lights/{selector}")

    async def list_scenes(self) -> list[dict[str, Any]]:
        return await self.send_request("GET", "/v1/scenes")

    async def set_state(self, selector: str, **state: Any) -> Any:
        return await self.send_request("PUT", f"/v1/lights/{selector}/state", json=state)

    async def set_states(self, defaults: dict[str, Any], *states: dict[str, Any]) -> list[Any]:
        """Apply several states in one call; returns each result's operation."""
        body = {"defaults": dict(defaults), "states": [dict(s) for s in states]}
        response = await self.send_request("PUT", "/v1/lights/states", json=body)
        if not isinstance(response, dict):
            return []
        return [r.get("operation") for r in response.get("results", []) if isinstance(r, dict)]

    async def toggle_power(self, selector: str = "all", **options: Any) -> Any:
        return await self.send_request(
            "POST", f"/v1/lights/{selector}/toggle", json=options or None,
        )

    async def activate_scene(self, scene_id: str, **options: Any) -> Any:
        if not isinstance(scene_id, str) or not scene_id:
            raise ValidationError("scene ID required")
        return await self.send_request(
            "PUT", f"/v1/scenes/scene_id:{scene_id}/activate", json=options or None,
        )


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def delta(left: Any, right: Any) -> Any:
    """Structural difference between two JSON values.

    Returns ``None`` when they are equal, a ``[left, right]`` pair for
    differing scalars, and a dict of per-key differences for objects (a key
    missing on one side is reported as ``None`` on that side).
    """
    if left == right:
        return None
    if not isinstance(left, dict) or not isinstance(right, dict):
        return [left, right]
    result: dict[str, Any] = {}
    for key in {**left, **right}:
        if key in left and key in right:
            value = delta(left[key], right[key])
            if value is not None:
                result[key] = value
        elif key in left:
            result[key] = [left[key], None]
        else:
            result[key] = [None, right[key]]
    return result or None
