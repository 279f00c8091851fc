import pathlib
import site

import meddler
import pytest
from meddler.mapper import descriptor_cache

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear the descriptor cache and reset the default mapper around each test."""
    descriptor_cache.clear()
    meddler.set_debug(False)
    meddler.set_statement_cache(None)
    yield
    descriptor_cache.clear()
    meddler.set_debug(False)
    meddler.set_statement_cache(None)


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.postgres',
    'tests.fixtures.records',
    'tests.fixtures.sqlite',
]
