"""
Pytest configuration and shared fixtures.
"""

import pytest
from pathlib import Path

from tabular_diff import Dataset, load_dataset


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def make_dataset(headers, rows, filename="test.csv"):
    """Build a Dataset from headers and a list of row dicts."""
    return Dataset(headers=list(headers), rows=[dict(r) for r in rows], filename=filename)


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def basic_prod(fixtures_dir):
    """Basic production dataset."""
    return load_dataset(fixtures_dir / "basic_prod.csv")


@pytest.fixture
def basic_dev(fixtures_dir):
    """Basic development dataset."""
    return load_dataset(fixtures_dir / "basic_dev.csv")


@pytest.fixture
def composite_key_prod(fixtures_dir):
    """Composite key (sku, locale) production dataset."""
    return load_dataset(fixtures_dir / "composite_key_prod.csv")


@pytest.fixture
def composite_key_dev(fixtures_dir):
    """Composite key (sku, locale) development dataset."""
    return load_dataset(fixtures_dir / "composite_key_dev.csv")


@pytest.fixture
def people():
    """Two-row baseline used by several scenarios."""
    return make_dataset(
        ["id", "name"],
        [{"id": "1", "name": "Alice"}, {"id": "2", "name": "Bob"}],
        filename="people.csv",
    )
