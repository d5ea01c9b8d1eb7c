import sys


def info(message: str) -> None:
    """Print a standard informational message."""
    print(f"[rustinline] {message}")


def error(message: str) -> None:
    """Print a standardized error message to stderr."""
    print(f"error: {message}", file=sys.stderr)
