"""Exception types raised by the rustinline pipeline."""

from pathlib import Path
from typing import Optional


class RustInlineError(RuntimeError):
    """Base class for every fatal pipeline error."""


class ConfigError(RustInlineError):
    pass


class UnsupportedArchitectureError(RustInlineError):
    """Raised before cargo runs when no target triple fits the interpreter."""

    def __init__(self, system: str, machine: str):
        super().__init__(f"Unknown {system} architecture: {machine or 'unknown'}")
        self.system = system
        self.machine = machine


class CompilationError(RustInlineError):
    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class BindingGenerationError(RustInlineError):
    """Raised when a signature uses a type with no marshalling rule."""

    def __init__(
        self,
        function: str,
        parameter: str,
        rust_type: str,
        message: Optional[str] = None,
    ):
        if message is None:
            if parameter == "return":
                where = "return type"
            else:
                where = f"parameter '{parameter}'"
            message = (
                f"unsupported Rust type '{rust_type}' for {where} "
                f"of function '{function}'"
            )
        super().__init__(message)
        self.function = function
        self.parameter = parameter
        self.rust_type = rust_type


class LibraryLoadError(RustInlineError):
    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path
