"""Compile Rust code and call it from Python.

`rust_source` compiles a Rust file (or inline code) into a shared library
and defines one Python function per `#[export]`-marked Rust function in the
caller's namespace. `rust_function` does the same for a single function.

Example::

    rust_function("fn add(a: f64, b: f64) -> f64 { a + b }")
    add(2.5, 4.7)

    rust_source(code='''
    #[export]
    fn hello() -> &'static str {
        "Hello, world!"
    }
    ''')
    hello()

    rust_source(
        code=markdown_code,
        dependencies=['pulldown-cmark = "0.8"'],
    )
"""

import ctypes
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from .assembler import (
    EXPORT_MARKER,
    assemble_source,
    neutralize_markers,
    read_compile_unit,
    write_compile_unit,
)
from .bindings import generate_python_bindings, generate_rust_shims
from .config import resolve_settings
from .loader import Scope, execute_bindings, load_library, shared_library_path
from .manifest import generate_manifest, write_manifest
from . import session as session_module
from .session import SessionManager
from .signatures import extract_signatures
from .toolchain import CargoToolchain, specific_target_name, validate_profile


def _caller_scope(depth: int) -> dict[str, Any]:
    return sys._getframe(depth + 1).f_globals


def rust_source(
    file: Optional[str | Path] = None,
    code: Optional[str] = None,
    dependencies: Optional[Sequence[str]] = None,
    patch_crates_io: Optional[Sequence[str]] = None,
    profile: Optional[str] = None,
    api_version: Optional[str] = None,
    macros_version: Optional[str] = None,
    env: Optional[Scope] = None,
    use_prelude: bool = True,
    cache_build: Optional[bool] = None,
    quiet: Optional[bool] = None,
    session_manager: Optional[SessionManager] = None,
    toolchain: Optional[CargoToolchain] = None,
) -> ctypes.CDLL:
    """Compile `file` or `code` and bind its exported functions into `env`.

    Arguments left as None take their value from the rustinline
    configuration. `env` defaults to the caller's module globals. Returns the
    loaded library.
    """
    settings = resolve_settings()
    if profile is None:
        profile = settings["profile"]
    validate_profile(profile)
    if dependencies is None:
        dependencies = settings["dependencies"]
    if patch_crates_io is None:
        patch_crates_io = settings["patch_crates_io"]
    if api_version is None:
        api_version = settings["api_version"]
        if macros_version is None:
            macros_version = settings["macros_version"]
    if macros_version is None:
        macros_version = api_version
    if cache_build is None:
        cache_build = settings["cache_build"]
    if quiet is None:
        quiet = settings["quiet"]
    if env is None:
        env = _caller_scope(1)
    if toolchain is None:
        toolchain = CargoToolchain(settings["cargo"])
    manager = (
        session_manager
        if session_manager is not None
        else session_module.session_manager
    )
    if manager.base_dir is None and settings["build_root"] is not None:
        manager.set_base_dir(settings["build_root"])

    # fail before touching the build directory
    target = specific_target_name()

    session = manager.acquire(reuse=cache_build)
    try:
        compile_unit, library_name = assemble_source(
            manager,
            session,
            file=Path(file) if file is not None else None,
            code=code,
            use_prelude=use_prelude,
        )
        source_text = read_compile_unit(compile_unit)
        signatures = extract_signatures(source_text)
        bindings_source = generate_python_bindings(signatures)
        write_compile_unit(
            compile_unit,
            neutralize_markers(source_text) + generate_rust_shims(signatures),
        )

        manifest = generate_manifest(
            library_name, dependencies, patch_crates_io, api_version, macros_version
        )
        write_manifest(session, manifest)

        session.bindings_path.unlink(missing_ok=True)
        toolchain.build(session, profile=profile, target=target, quiet=quiet)

        session.bindings_path.parent.mkdir(parents=True, exist_ok=True)
        session.bindings_path.write_text(bindings_source, encoding="utf-8")

        library = load_library(
            shared_library_path(session, library_name, target, profile)
        )
        execute_bindings(session.bindings_path, library, env)
        return library
    finally:
        if not cache_build:
            manager.destroy()


def rust_function(code: str, env: Optional[Scope] = None, **kwargs: Any) -> ctypes.CDLL:
    """Compile a single Rust function and bind it into `env`."""
    if env is None:
        env = _caller_scope(1)
    return rust_source(code=f"{EXPORT_MARKER}\n{code}", env=env, **kwargs)
