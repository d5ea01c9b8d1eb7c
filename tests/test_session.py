from pathlib import Path

import pytest

from rustinline import session


def test_acquire_creates_layout(manager):
    build = manager.acquire()

    assert build.root.is_dir()
    assert build.src_dir.is_dir()
    assert build.bindings_dir.is_dir()
    assert build.root.parent == manager.base_dir
    assert build.compile_unit_path == build.root / "src" / "lib.rs"
    assert build.manifest_path == build.root / "Cargo.toml"
    assert build.target_dir == build.root / "target"


def test_acquire_reuses_live_session(manager):
    first = manager.acquire(reuse=True)
    second = manager.acquire(reuse=True)

    assert first is second
    assert first.root.exists()


def test_acquire_without_reuse_replaces_session(manager):
    first = manager.acquire()
    marker = first.src_dir / "lib.rs"
    marker.write_text("fn main() {}\n", encoding="utf-8")

    second = manager.acquire(reuse=False)

    assert second.root != first.root
    assert not first.root.exists()
    assert second.root.is_dir()


def test_destroy_is_idempotent(manager):
    manager.destroy()
    build = manager.acquire()

    manager.destroy()
    manager.destroy()

    assert manager.session is None
    assert not build.root.exists()


def test_destroy_clears_state_when_removal_fails(manager, monkeypatch):
    build = manager.acquire()

    def broken_remove():
        raise OSError("busy")

    monkeypatch.setattr(build, "remove", broken_remove)

    with pytest.raises(OSError):
        manager.destroy()
    assert manager.session is None


def test_library_names_are_unique_across_resets(manager):
    manager.acquire()
    first = manager.next_library_name()
    manager.acquire(reuse=False)
    second = manager.next_library_name()

    assert first == "rustinline1"
    assert second == "rustinline2"
    assert manager.count == 3


def test_create_makes_missing_base_dir(tmp_path):
    base = tmp_path / "nested" / "builds"

    build = session.BuildSession.create(base)

    assert build.root.parent == base
    assert Path(build.root).name.startswith(session.TEMP_DIR_PREFIX)
    build.remove()
    assert not build.exists()


def test_clean_build_dir_removes_default_session(tmp_path, monkeypatch, capsys):
    manager = session.SessionManager(base_dir=tmp_path)
    monkeypatch.setattr(session, "session_manager", manager)
    build = manager.acquire()

    session.clean_build_dir()

    assert not build.root.exists()
    assert manager.session is None
    assert f"removing {build.root}" in capsys.readouterr().out
