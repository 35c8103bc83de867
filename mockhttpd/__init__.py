"""HTTP mock server with a JSON management API, stored in MySQL."""

__version__ = "0.1.0"