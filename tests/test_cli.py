"""Tests for CLI command dispatch against a file-backed workspace."""
import argparse
from importlib.metadata import entry_points

import pytest

from yonk_sql_architect.cli.commands import dispatch, run
from yonk_sql_architect.config import ArchitectConfig, StorageConfig


@pytest.fixture
def config(tmp_path):
    return ArchitectConfig(storage=StorageConfig(backend="file", directory=str(tmp_path)))


def command(cmd, **kwargs):
    return argparse.Namespace(cmd=cmd, **kwargs)


@pytest.mark.asyncio
async def test_import_then_list(config, capsys):
    """Test imported tables survive into the next command."""
    code = await dispatch(
        command("import", file=None, text="CREATE TABLE `users` (`id` INT);", tags="CRM 用户"),
        config,
    )
    assert code == 0

    code = await dispatch(command("tables", tables_cmd="ls", search=""), config)
    assert code == 0

    out = capsys.readouterr().out
    assert "Imported 1 tables" in out
    assert "users" in out
    assert "CRM, 用户" in out


@pytest.mark.asyncio
async def test_import_nothing_fails(config, capsys):
    """Test a script without CREATE TABLE exits non-zero."""
    code = await dispatch(command("import", file=None, text="SELECT 1;", tags=""), config)

    assert code == 1
    assert "CREATE TABLE" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_clear_needs_confirmation(config):
    """Test clearing every table requires --yes."""
    await dispatch(command("import", file=None, text="CREATE TABLE a (id INT);", tags=""), config)

    assert await dispatch(command("tables", tables_cmd="clear", yes=False), config) == 1
    assert await dispatch(command("tables", tables_cmd="clear", yes=True), config) == 0


@pytest.mark.asyncio
async def test_tag_table_by_name(config, capsys):
    """Test tables can be addressed by name."""
    await dispatch(command("import", file=None, text="CREATE TABLE a (id INT);", tags=""), config)

    code = await dispatch(command("tables", tables_cmd="tag", table="a", tags=["X", "Y"]), config)

    assert code == 0
    assert "a: X, Y" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_tags_add(config, capsys):
    """Test adding a tag persists into the library listing."""
    await dispatch(command("tags", tags_cmd="add", tag="CRM"), config)
    await dispatch(command("tags", tags_cmd="ls"), config)

    out = capsys.readouterr().out.strip().splitlines()
    assert out[-1].startswith("Tag Library (9)")
    assert out[-1].endswith("CRM")


@pytest.mark.asyncio
async def test_ask_without_tables(config, capsys):
    """Test generation is refused before any import."""
    code = await dispatch(command("ask", requirement="anything", save=False), config)

    assert code == 1
    assert "Import at least one table" in capsys.readouterr().err


def test_console_script_resolves():
    """Test the installed yonk-sql entry point loads the CLI runner."""
    scripts = [ep for ep in entry_points(group="console_scripts") if ep.name == "yonk-sql"]

    assert len(scripts) == 1
    assert scripts[0].load() is run
