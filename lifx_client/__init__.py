"""Control LIFX smart lights over the LAN protocol or the cloud REST API."""

__version__ = "0.1.0"
