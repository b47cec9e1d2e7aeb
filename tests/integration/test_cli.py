import pytest
from click.testing import CliRunner

from entitystore import __version__
from entitystore.cli import cli
from entitystore.core.config import get_settings
from entitystore.infrastructure.persistence import database


@pytest.fixture
def sqlite_env(tmp_path, monkeypatch):
    """Point the CLI at a throwaway SQLite file."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("ENTITYSTORE_DATABASE_URL", url)
    monkeypatch.setenv("ENTITYSTORE_ENVIRONMENT", "testing")
    monkeypatch.setattr(database, "_db_manager", None)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_db_then_list_entities(sqlite_env):
    runner = CliRunner()

    result = runner.invoke(cli, ["init-db", "--force"])
    assert result.exit_code == 0, result.output
    assert "Database initialized successfully." in result.output
    assert (sqlite_env / "cli.db").exists()

    result = runner.invoke(cli, ["list-entities"])
    assert result.exit_code == 0, result.output
    assert "No entities." in result.output


def test_init_db_refuses_production(sqlite_env, monkeypatch):
    monkeypatch.setenv("ENTITYSTORE_ENVIRONMENT", "production")
    get_settings.cache_clear()

    result = CliRunner().invoke(cli, ["init-db"])

    assert result.exit_code == 1
    assert "Running in production mode" in result.output


def test_backfill_count_without_keys(sqlite_env):
    result = CliRunner().invoke(cli, ["backfill-count", "not-an-id", " "])

    assert result.exit_code == 0, result.output
    assert result.output.strip().endswith("0")


def test_backfill_count_malformed_entity_id(sqlite_env):
    result = CliRunner().invoke(cli, ["backfill-count", "not-an-id", "rack_unit"])

    assert result.exit_code == 1
    assert "Invalid entity id format" in result.output
