"""Host platform detection used for target triples and library file names."""

import os
import platform
import struct
import sys
import sysconfig


DEFAULT_SHLIB_SUFFIX = ".so"
WINDOWS_SHLIB_SUFFIX = ".dll"
MACOS_SHLIB_SUFFIX = ".dylib"


def is_windows() -> bool:
    return os.name == "nt"


def is_macos() -> bool:
    return sys.platform == "darwin"


def is_linux() -> bool:
    return sys.platform.startswith("linux")


def system_name() -> str:
    return platform.system()


def machine_name() -> str:
    return platform.machine()


def pointer_bits() -> int:
    """Pointer width of the running interpreter, not of the OS."""
    return struct.calcsize("P") * 8


def dynlib_prefix() -> str:
    return "" if is_windows() else "lib"


def dynlib_ext() -> str:
    # On macOS SHLIB_SUFFIX describes Python extension modules (.so), while
    # cargo emits .dylib for a cdylib.
    if is_macos():
        return MACOS_SHLIB_SUFFIX
    if is_windows():
        return WINDOWS_SHLIB_SUFFIX
    suffix = sysconfig.get_config_var("SHLIB_SUFFIX")
    if suffix:
        return suffix
    return DEFAULT_SHLIB_SUFFIX


def dynlib_name(library_name: str) -> str:
    return f"{dynlib_prefix()}{library_name}{dynlib_ext()}"
