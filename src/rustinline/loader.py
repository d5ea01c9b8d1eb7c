"""Locating and loading the compiled library, then wiring up its bindings."""

import ctypes
import importlib.util
import itertools
from pathlib import Path
from types import ModuleType
from typing import Any, MutableMapping, Optional, TypeAlias

from .bindings import LIBRARY_GLOBAL
from .errors import LibraryLoadError
from .platform import dynlib_name
from .session import BuildSession


PROFILE_DIRS = {"dev": "debug", "release": "release"}
BINDINGS_MODULE_PREFIX = "rustinline_bindings_"

Scope: TypeAlias = MutableMapping[str, Any] | ModuleType

_module_ids = itertools.count(1)


def profile_dir(profile: str) -> str:
    try:
        return PROFILE_DIRS[profile]
    except KeyError:
        raise ValueError(f"unknown profile {profile!r}") from None


def shared_library_path(
    session: BuildSession,
    library_name: str,
    target: Optional[str] = None,
    profile: str = "dev",
) -> Path:
    output_dir = session.target_dir
    if target is not None:
        output_dir = output_dir / target
    return output_dir / profile_dir(profile) / dynlib_name(library_name)


def load_library(path: Path) -> ctypes.CDLL:
    if not path.is_file():
        raise LibraryLoadError(f"compiled library not found at {path}", path)
    try:
        return ctypes.CDLL(str(path))
    except OSError as exc:
        raise LibraryLoadError(f"failed to load {path}: {exc}", path) from exc


def execute_bindings(
    bindings_path: Path, library: ctypes.CDLL, scope: Optional[Scope] = None
) -> dict[str, Any]:
    """Import the generated bindings against `library` and publish them.

    Returns the generated functions by name. When `scope` is given they are
    also installed there (dict-like scopes by key, modules as attributes).
    """
    spec = importlib.util.spec_from_file_location(
        f"{BINDINGS_MODULE_PREFIX}{next(_module_ids)}", bindings_path
    )
    if spec is None or spec.loader is None:
        raise LibraryLoadError(
            f"cannot import bindings from {bindings_path}", bindings_path
        )
    # the file is rewritten in place by cached builds
    Path(importlib.util.cache_from_source(str(bindings_path))).unlink(missing_ok=True)
    module = importlib.util.module_from_spec(spec)
    setattr(module, LIBRARY_GLOBAL, library)
    spec.loader.exec_module(module)

    functions = {name: getattr(module, name) for name in getattr(module, "__all__", [])}
    if scope is not None:
        for name, function in functions.items():
            if isinstance(scope, ModuleType):
                setattr(scope, name, function)
            else:
                scope[name] = function
    return functions
