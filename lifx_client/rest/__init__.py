"""Cloud HTTP API client."""

from lifx_client.rest.client import RestClient, ResponseResult, delta

__all__ = ["RestClient", "ResponseResult", "delta"]
