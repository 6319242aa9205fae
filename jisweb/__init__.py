"""HTTP server with cookie sessions, W3C logging, settings file and script registry."""

__version__ = "0.1.0"