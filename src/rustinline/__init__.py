"""Compile inline Rust code and call it from Python."""

from .errors import (
    BindingGenerationError,
    CompilationError,
    ConfigError,
    LibraryLoadError,
    RustInlineError,
    UnsupportedArchitectureError,
)
from .session import BuildSession, SessionManager, clean_build_dir
from .source import rust_function, rust_source

__all__ = [
    "BindingGenerationError",
    "BuildSession",
    "CompilationError",
    "ConfigError",
    "LibraryLoadError",
    "RustInlineError",
    "SessionManager",
    "UnsupportedArchitectureError",
    "clean_build_dir",
    "rust_function",
    "rust_source",
]
