"""Error codes returned in response bodies."""

from enum import Enum


class ErrorCode(str, Enum):
    """Codes placed in the error_code field of a response."""

    INTERNAL = "INTERNAL_ERROR"
    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    GROUP_ALREADY_EXISTS = "GROUP_ALREADY_EXISTS"
    GROUP_NOT_EXISTS = "GROUP_DOES_NOT_EXIST"
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    MOCK_NOT_EXISTS = "MOCK_DOES_NOT_EXIST"
    MOCK_NAME_EXISTS = "MOCK_NAME_EXISTS"

    def __str__(self) -> str:
        return self.value