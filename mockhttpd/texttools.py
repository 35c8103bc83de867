"""Small string helpers."""


def is_blank(s: str) -> bool:
    """Return True if the string is empty or holds only whitespace."""
    return s.strip() == ""