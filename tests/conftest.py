"""Shared fixtures and helpers for tests."""

from pathlib import Path

import pytest

from proto_trim.schema import ProtocSchemaAccessor, ProtoPrinter

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def accessor() -> ProtocSchemaAccessor:
    """Return an accessor running the bundled protoc."""
    return ProtocSchemaAccessor()


@pytest.fixture
def printer() -> ProtoPrinter:
    return ProtoPrinter()


@pytest.fixture
def proto_tree(tmp_path: Path):
    """Write ``{relative path: text}`` below ``tmp_path`` and return the root."""

    def write(files: dict[str, str]) -> Path:
        for name, text in files.items():
            target = tmp_path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return tmp_path

    return write
