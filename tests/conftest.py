"""Pytest configuration and fixtures for CodeScope tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from codescope_cli.models import Repository
from codescope_cli.storage import RecordStore, RepositoryState


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to the sample TypeScript project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch) -> Path:
    """Point every CodeScope path at a temporary home directory."""
    base_dir = temp_dir / "home"
    db_file = base_dir / "codescope.db"
    state_file = base_dir / "state.json"
    config_file = base_dir / "config.toml"

    # Patch both config AND storage modules (storage imports at module load)
    monkeypatch.setattr("codescope_cli.config.BASE_DIR", base_dir)
    monkeypatch.setattr("codescope_cli.config.DB_FILE", db_file)
    monkeypatch.setattr("codescope_cli.config.STATE_FILE", state_file)
    monkeypatch.setattr("codescope_cli.config.CONFIG_FILE", config_file)
    monkeypatch.setattr("codescope_cli.storage.DB_FILE", db_file)
    monkeypatch.setattr("codescope_cli.storage.STATE_FILE", state_file)

    return base_dir


@pytest.fixture
def temp_state(temp_home: Path) -> RepositoryState:
    return RepositoryState()


@pytest.fixture
def temp_store(temp_dir: Path) -> Generator[RecordStore, None, None]:
    """Create a RecordStore backed by a temporary SQLite file."""
    store = RecordStore(temp_dir / "test.db")
    yield store
    store.close()


@pytest.fixture
def repository(temp_store: RecordStore) -> Repository:
    return temp_store.create_repository(
        github_url="https://github.com/acme/shop",
        name="shop",
        owner="acme",
    )


@pytest.fixture
def sample_ts_code() -> str:
    """Small TypeScript module with one named and one arrow function."""
    return """import { api } from './api';

export async function fetchUser(id: string) {
  if (!id) {
    throw new Error('missing id');
  }
  return api.get(id);
}

export const calculate = (a: number, b: number) => a + b;
"""
