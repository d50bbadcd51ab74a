"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the randomized tournament simulations
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket_core.service import TournamentService
from bracket_core.storage import YamlBracketStore
from bracket_helpers import make_players


@pytest.fixture
def four_players():
    """Seeds 1-4 named A-D."""
    return make_players(4, names=['A', 'B', 'C', 'D'])


@pytest.fixture
def eight_players():
    return make_players(8)


@pytest.fixture
def store(tmp_path):
    """YAML store rooted in a temporary data directory."""
    return YamlBracketStore(str(tmp_path / 'data'), lock_timeout=2)


@pytest.fixture
def service(store):
    return TournamentService(store)


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Flask test client writing to a temporary data directory."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path / 'data'))
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client
