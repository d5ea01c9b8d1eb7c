"""Conversions used by generated bindings at call time."""

import ctypes
from typing import Optional, Union


def to_c_string(value: Union[str, bytes]) -> bytes:
    """Encode `value` as a NUL-terminated UTF-8 argument.

    Raises ValueError for bytes that are not UTF-8 and for embedded NULs,
    which a C string cannot carry.
    """
    if isinstance(value, bytes):
        try:
            value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"string argument is not valid UTF-8: {exc}") from None
        encoded = value
    elif isinstance(value, str):
        encoded = value.encode("utf-8")
    else:
        raise TypeError(f"expected str, got {type(value).__name__}")
    if b"\0" in encoded:
        raise ValueError("string argument contains an embedded NUL byte")
    return encoded


def take_string(library: ctypes.CDLL, pointer: Optional[int]) -> Optional[str]:
    """Decode a string returned by Rust and hand the buffer back for freeing."""
    if pointer is None:
        return None
    try:
        return ctypes.string_at(pointer).decode("utf-8")
    finally:
        library.rustinline_free_string(pointer)
