"""Access to environment variables."""

import os

DEBUG_VAR_NAME = "DEBUG"
_TRUE = "true"


class MissingEnvVarError(LookupError):
    """Raised when a required environment variable is not set."""

    def __init__(self, name: str) -> None:
        super().__init__(f"[{name}] not found in env")
        self.name = name


def get_var(name: str) -> str:
    """Return the value of an environment variable, which must be set."""
    try:
        return os.environ[name]
    except KeyError:
        raise MissingEnvVarError(name) from None


def debug() -> bool:
    """Return True when the DEBUG variable is exactly "true"."""
    return os.environ.get(DEBUG_VAR_NAME) == _TRUE