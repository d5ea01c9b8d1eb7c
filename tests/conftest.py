import sys
from pathlib import Path

import pytest  # type: ignore[import-not-found]

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from rustinline import config as rconfig, session  # noqa: E402


@pytest.fixture(autouse=True)
def reset_config_manager(monkeypatch):
    original_manager = rconfig.RustSourceConfigManager.from_dict(
        rconfig.config_manager.to_dict()
    )
    rconfig.config_manager = rconfig.RustSourceConfigManager()
    for name in (
        "RUSTINLINE_CARGO",
        "RUSTINLINE_BUILD_ROOT",
        "RUSTINLINE_PROFILE",
        "RUSTINLINE_API_VERSION",
        "RUSTINLINE_MACROS_VERSION",
        "RUSTINLINE_CACHE_BUILD",
        "RUSTINLINE_QUIET",
        "RUSTINLINE_CONFIG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    rconfig.config_manager = original_manager


@pytest.fixture
def manager(tmp_path):
    """A session manager rooted in the test's temp dir."""
    manager = session.SessionManager(base_dir=tmp_path / "builds")
    yield manager
    manager.destroy()


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--type",
        action="store",
        default="all",
        choices=("unit", "integration", "all"),
        help="Select which tests to run: unit, integration, or all.",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    selected = config.getoption("--type")
    if selected == "all":
        return

    skip_integration = pytest.mark.skip(reason="skipped by --type unit")
    skip_unit = pytest.mark.skip(reason="skipped by --type integration")

    for item in items:
        is_integration = item.get_closest_marker("integration") is not None
        if selected == "unit" and is_integration:
            item.add_marker(skip_integration)
        elif selected == "integration" and not is_integration:
            item.add_marker(skip_unit)
