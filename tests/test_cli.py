import re

import pytest
from typer.testing import CliRunner

from notevault.cli import app

runner = CliRunner()


@pytest.fixture
def cli_env(vault_env, monkeypatch):
    monkeypatch.setenv("COLUMNS", "200")
    return vault_env


def _new(*args):
    result = runner.invoke(app, ["new", *args])
    assert result.exit_code == 0, result.output
    return re.search(r"Created (\S+):", result.output).group(1)


def test_new_list_show_edit(cli_env):
    note_id = _new("--content", "# Groceries\n\neggs\n", "--tags", "home,Food")
    files = list((cli_env / "vault").glob("*.md"))
    assert [f.name for f in files] == [f"groceries-{note_id[:8]}.md"]

    result = runner.invoke(app, ["list", "--sort", "title"])
    assert result.exit_code == 0
    assert "Groceries" in result.output
    assert "food, home" in result.output

    result = runner.invoke(app, ["edit", note_id, "--content", "# Groceries\n\nmilk\n"])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["show", note_id])
    assert "milk" in result.output


def test_edit_from_file(cli_env, tmp_path):
    note_id = _new()
    src = tmp_path / "body.md"
    src.write_text("# From file\n", encoding="utf-8")
    result = runner.invoke(app, ["edit", note_id, "--file", str(src)])
    assert result.exit_code == 0, result.output
    assert "From file" in result.output


def test_pin_tag_duplicate(cli_env):
    note_id = _new("--content", "# Pin me\n")
    assert "Pinned" in runner.invoke(app, ["pin", note_id]).output
    assert "Unpinned" in runner.invoke(app, ["pin", note_id]).output
    assert "alpha, beta" in runner.invoke(app, ["tag", note_id, "Beta,alpha"]).output

    result = runner.invoke(app, ["duplicate", note_id])
    assert result.exit_code == 0
    assert len(list((cli_env / "vault").glob("pin-me-*.md"))) == 2


def test_delete_trash_restore(cli_env):
    note_id = _new("--content", "# Old\n")
    assert runner.invoke(app, ["delete", note_id]).exit_code == 0
    assert (cli_env / "vault" / "_deleted" / f"old-{note_id[:8]}.md").exists()
    assert note_id in runner.invoke(app, ["trash"]).output

    assert runner.invoke(app, ["restore", note_id]).exit_code == 0
    assert (cli_env / "vault" / f"old-{note_id[:8]}.md").exists()
    assert "Purged 0 notes" in runner.invoke(app, ["purge"]).output


def test_changes_since(cli_env):
    _new("--content", "# Recent\n")
    result = runner.invoke(app, ["changes", "--since", "2000-01-01T00:00:00Z"])
    assert result.exit_code == 0
    assert "recent-" in result.output

    result = runner.invoke(app, ["changes", "--since", "whenever"])
    assert result.exit_code == 1


def test_missing_note_exits_1(cli_env):
    result = runner.invoke(app, ["show", "does-not-exist"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_migrate_with_no_legacy_data(cli_env):
    result = runner.invoke(app, ["migrate"])
    assert result.exit_code == 0
    assert "Nothing to migrate" in result.output


def test_export_copies_notes_to_folder(cli_env, tmp_path):
    note_id = _new("--content", "# Shipping\n")
    dest = tmp_path / "out"
    result = runner.invoke(app, ["export", "--to", str(dest)])
    assert result.exit_code == 0, result.output
    assert "Exported 1 notes" in result.output
    assert (dest / f"shipping-{note_id[:8]}.md").read_text(encoding="utf-8").startswith(f"---\nid: {note_id}\n")
    assert (dest / "attachments").is_dir()
