from pathlib import Path

import pytest

from bizlicense.catalog import load_catalog

BUNDLED_CATALOG = Path(__file__).resolve().parents[1] / "bizlicense" / "data" / "requirements.json"


@pytest.fixture(scope="session")
def bundled_catalog():
    """Catalog shipped with the package."""
    return load_catalog(BUNDLED_CATALOG)


@pytest.fixture
def write_catalog(tmp_path):
    """Write JSON text to a temporary catalog file and return its path."""
    def _write(text: str) -> Path:
        path = tmp_path / "requirements.json"
        path.write_text(text, encoding="utf-8")
        return path
    return _write
