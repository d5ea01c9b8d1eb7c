import types

import pytest

from rustinline import source
from rustinline.errors import (
    BindingGenerationError,
    CompilationError,
    UnsupportedArchitectureError,
)
from rustinline.toolchain import CargoToolchain


class FakeToolchain(CargoToolchain):
    def __init__(self, returncode=0):
        super().__init__("cargo")
        self.returncode = returncode
        self.calls = []

    def build(self, session, profile="dev", target=None, quiet=False):
        self.calls.append(
            {
                "manifest": session.manifest_path.read_text(encoding="utf-8"),
                "compile_unit": session.compile_unit_path.read_text(encoding="utf-8"),
                "profile": profile,
                "target": target,
                "quiet": quiet,
            }
        )
        if self.returncode != 0:
            raise CompilationError("failed", returncode=self.returncode)
        return 0


class Symbol:
    def __init__(self, impl):
        self.impl = impl

    def __call__(self, *args):
        return self.impl(*args)


def fake_library(**impls):
    library = types.SimpleNamespace(rustinline_free_string=Symbol(lambda ptr: None))
    for name, impl in impls.items():
        setattr(library, name, Symbol(impl))
    return library


@pytest.fixture
def loaded(monkeypatch):
    """Replace dlopen with fake libraries; records the requested paths."""
    paths = []
    libraries = {
        "add": fake_library(wrap__add=lambda a, b: a + b),
        "mul": fake_library(wrap__mul=lambda a, b: a * b),
        "noop": fake_library(wrap__noop=lambda: 3),
    }

    def fake_load(path):
        paths.append(path)
        return libraries[fake_load.next]

    fake_load.next = "add"
    monkeypatch.setattr(source, "load_library", fake_load)
    monkeypatch.setattr(source, "specific_target_name", lambda: None)
    return fake_load, paths


ADD = "#[export]\nfn add(a: f64, b: f64) -> f64 { a + b }\n"


def test_rust_source_inline_code(manager, loaded):
    fake_load, paths = loaded
    cargo = FakeToolchain()
    scope = {}

    library = source.rust_source(
        code=ADD, env=scope, session_manager=manager, toolchain=cargo, quiet=True
    )

    assert scope["add"](2.5, 4.7) == pytest.approx(7.2)
    assert library.wrap__add(1, 2) == 3
    (call,) = cargo.calls
    assert 'name = "rustinline1"' in call["manifest"]
    assert call["compile_unit"].startswith("use libc::*;\n\n/* #[export] */\nfn add")
    assert "__rustinline_export!(add," in call["compile_unit"]
    assert call["profile"] == "dev"
    assert call["quiet"] is True
    assert paths[0].parent.name == "debug"
    assert "rustinline1" in paths[0].name
    assert manager.session.bindings_path.exists()


def test_sequential_builds_get_distinct_names(manager, loaded):
    fake_load, paths = loaded
    cargo = FakeToolchain()
    scope = {}

    source.rust_source(code=ADD, env=scope, session_manager=manager, toolchain=cargo)
    fake_load.next = "mul"
    source.rust_source(
        code="#[export]\nfn mul(a: i64, b: i64) -> i64 { a * b }",
        env=scope,
        session_manager=manager,
        toolchain=cargo,
    )

    assert 'name = "rustinline1"' in cargo.calls[0]["manifest"]
    assert 'name = "rustinline2"' in cargo.calls[1]["manifest"]
    assert "rustinline1" in paths[0].name
    assert "rustinline2" in paths[1].name
    assert scope["add"](1.0, 2.0) == 3.0
    assert scope["mul"](6, 7) == 42


def test_function_without_return_type_returns_none(manager, loaded):
    fake_load, _ = loaded
    fake_load.next = "noop"
    scope = {}

    source.rust_source(
        code="#[export]\nfn noop() {}",
        env=scope,
        session_manager=manager,
        toolchain=FakeToolchain(),
    )

    assert scope["noop"]() is None


def test_compile_failure_aborts_before_bindings(manager, loaded):
    fake_load, paths = loaded
    scope = {}
    source.rust_source(
        code=ADD, env=scope, session_manager=manager, toolchain=FakeToolchain()
    )
    bindings_path = manager.session.bindings_path
    assert bindings_path.exists()

    with pytest.raises(CompilationError):
        source.rust_source(
            code="#[export]\nfn broken() -> i32 { \"nope\" }",
            env={},
            session_manager=manager,
            toolchain=FakeToolchain(returncode=101),
        )

    assert not bindings_path.exists()
    assert len(paths) == 1
    # stale sources stay around for inspection
    assert manager.session.compile_unit_path.exists()
    assert manager.session.manifest_path.exists()


@pytest.mark.parametrize("returncode", [0, 101])
def test_disabled_cache_removes_session(manager, loaded, returncode):
    cargo = FakeToolchain(returncode=returncode)
    roots = []
    original_build = cargo.build

    def recording_build(session, **kwargs):
        roots.append(session.root)
        return original_build(session, **kwargs)

    cargo.build = recording_build

    try:
        source.rust_source(
            code=ADD,
            env={},
            cache_build=False,
            session_manager=manager,
            toolchain=cargo,
        )
    except CompilationError:
        assert returncode != 0

    assert manager.session is None
    assert not roots[0].exists()


def test_disabled_cache_starts_from_fresh_session(manager, loaded):
    stale = manager.acquire()

    source.rust_source(
        code=ADD,
        env={},
        cache_build=False,
        session_manager=manager,
        toolchain=FakeToolchain(),
    )

    assert not stale.root.exists()


def test_unsupported_architecture_fails_before_cargo(manager, monkeypatch):
    def unsupported():
        raise UnsupportedArchitectureError("Windows", "ARM64")

    monkeypatch.setattr(source, "specific_target_name", unsupported)
    cargo = FakeToolchain()

    with pytest.raises(UnsupportedArchitectureError):
        source.rust_source(
            code=ADD, env={}, session_manager=manager, toolchain=cargo
        )

    assert cargo.calls == []
    assert manager.session is None


def test_unsupported_type_fails_before_cargo(manager, loaded):
    cargo = FakeToolchain()

    with pytest.raises(BindingGenerationError):
        source.rust_source(
            code="#[export]\nfn f(v: Vec<u8>) {}",
            env={},
            session_manager=manager,
            toolchain=cargo,
        )

    assert cargo.calls == []


def test_invalid_profile(manager):
    with pytest.raises(ValueError):
        source.rust_source(code=ADD, profile="fast", session_manager=manager)


def test_release_profile_and_options_reach_manifest(manager, loaded):
    _, paths = loaded
    cargo = FakeToolchain()

    source.rust_source(
        code=ADD,
        env={},
        dependencies=['rand = "0.8"'],
        patch_crates_io=['paste = { path = "../paste" }'],
        profile="release",
        api_version="0.2",
        session_manager=manager,
        toolchain=cargo,
    )

    manifest = cargo.calls[0]["manifest"]
    assert 'libc = "0.2"' in manifest
    assert 'paste = "0.2"' in manifest
    assert 'rand = "0.8"' in manifest
    assert manifest.rstrip().endswith('paste = { path = "../paste" }')
    assert cargo.calls[0]["profile"] == "release"
    assert paths[0].parent.name == "release"


def test_settings_fill_unset_arguments(manager, loaded, monkeypatch):
    monkeypatch.setenv("RUSTINLINE_QUIET", "1")
    monkeypatch.setenv("RUSTINLINE_MACROS_VERSION", "1.0")
    cargo = FakeToolchain()

    source.rust_source(code=ADD, env={}, session_manager=manager, toolchain=cargo)

    assert cargo.calls[0]["quiet"] is True
    assert 'paste = "1.0"' in cargo.calls[0]["manifest"]


def test_rust_source_from_file(manager, loaded, tmp_path):
    path = tmp_path / "adder.rs"
    path.write_text(ADD, encoding="utf-8")
    _, paths = loaded
    cargo = FakeToolchain()
    scope = {}

    source.rust_source(file=path, env=scope, session_manager=manager, toolchain=cargo)

    assert 'name = "adder"' in cargo.calls[0]["manifest"]
    assert not cargo.calls[0]["compile_unit"].startswith("use libc")
    assert "adder" in paths[0].name
    assert manager.count == 1
    assert scope["add"](1, 1) == 2


def test_rust_source_installs_into_module(manager, loaded):
    module = types.ModuleType("scratch")

    source.rust_source(
        code=ADD, env=module, session_manager=manager, toolchain=FakeToolchain()
    )

    assert module.add(2, 3) == 5


def test_rust_function_defaults_to_caller_globals(manager, loaded):
    cargo = FakeToolchain()

    source.rust_function(
        "fn add(a: f64, b: f64) -> f64 { a + b }",
        session_manager=manager,
        toolchain=cargo,
    )

    try:
        assert globals()["add"](2.5, 4.7) == pytest.approx(7.2)
        assert "/* #[export] */\nfn add" in cargo.calls[0]["compile_unit"]
    finally:
        globals().pop("add", None)
