import json
import pytest
from click.testing import CliRunner
from bake_planner.cli import cli


@pytest.fixture(autouse=True)
def data_dir(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BAKE_DATA_DIR", str(tmp_path / "data"))
    return tmp_path / "data"


@pytest.fixture
def runner():
    return CliRunner()


def test_module_invocation_works():
    """python -m bake_planner must work (requires __main__.py)."""
    import os, subprocess, sys
    from pathlib import Path
    result = subprocess.run(
        [sys.executable, "-m", "bake_planner", "--help"],
        capture_output=True, text=True,
        env={**os.environ, "PYTHONPATH": str(Path(__file__).parents[1] / "src")},
    )
    assert result.returncode == 0
    assert "Usage" in result.stdout


def test_plan_forward(runner):
    result = runner.invoke(cli, ["plan", "--at", "08:00", "--forward"])
    assert result.exit_code == 0, result.output
    assert "Starts at 08:00" in result.output
    assert "Mixing" in result.output
    assert "Baking" in result.output


def test_plan_backward_is_default(runner):
    result = runner.invoke(cli, ["plan", "--at", "18:00"])
    assert result.exit_code == 0, result.output
    assert "Ready by 18:00" in result.output
    assert "bread ready 18:00" in result.output


def test_plan_shift_rederives_anchor(runner):
    result = runner.invoke(cli, ["plan", "--at", "18:00", "--backward", "--shift", "30"])
    assert result.exit_code == 0, result.output
    assert "Ready by 18:30" in result.output


def test_plan_rejects_bad_time(runner):
    result = runner.invoke(cli, ["plan", "--at", "8am"])
    assert result.exit_code == 1
    assert "Invalid time of day" in result.output


def test_config_set_persists_draft(runner, data_dir):
    result = runner.invoke(cli, ["config", "set", "yeast=1.0", "autolyse_enabled=true"])
    assert result.exit_code == 0, result.output
    draft = json.loads((data_dir / "draftConfig.json").read_text())
    assert draft["yeast"] == 1.0
    assert draft["autolyse_enabled"] is True

    shown = runner.invoke(cli, ["config", "show"])
    assert "autolyse_enabled" in shown.output
    assert "True" in shown.output


def test_config_set_rejects_zero_yeast(runner, data_dir):
    result = runner.invoke(cli, ["config", "set", "yeast=0"])
    assert result.exit_code == 1
    assert "Error" in result.output
    assert not (data_dir / "draftConfig.json").exists()


def test_config_set_rejects_unknown_field(runner):
    result = runner.invoke(cli, ["config", "set", "crumb=open"])
    assert result.exit_code == 1
    assert "crumb" in result.output


def test_config_set_requires_assignment(runner):
    result = runner.invoke(cli, ["config", "set", "yeast"])
    assert result.exit_code == 1
    assert "field=value" in result.output


def test_recipe_shows_weights(runner):
    runner.invoke(cli, ["config", "set", "total_flour=500", "hydration=70"])
    result = runner.invoke(cli, ["recipe"])
    assert result.exit_code == 0, result.output
    assert "500" in result.output
    assert "350" in result.output


def test_start_then_status(runner, data_dir):
    result = runner.invoke(cli, ["start"])
    assert result.exit_code == 0, result.output
    assert "Bake started" in result.output
    assert (data_dir / "session.json").exists()

    status = runner.invoke(cli, ["status"])
    assert status.exit_code == 0, status.output
    assert "Mixing" in status.output
    assert "left" in status.output


def test_config_locked_while_baking(runner):
    runner.invoke(cli, ["start"])
    result = runner.invoke(cli, ["config", "set", "yeast=1.0"])
    assert result.exit_code == 1
    assert "locked" in result.output


def test_next_without_bake_fails(runner):
    result = runner.invoke(cli, ["next"])
    assert result.exit_code == 1
    assert "No bake in progress" in result.output


def test_full_bake_lands_in_history(runner, data_dir):
    runner.invoke(cli, ["start"])
    stage_count = 6
    for _ in range(stage_count - 1):
        result = runner.invoke(cli, ["next"])
        assert result.exit_code == 0, result.output
    final = runner.invoke(cli, ["next"])
    assert "Enjoy your bread" in final.output
    assert not (data_dir / "session.json").exists()

    listing = runner.invoke(cli, ["history", "list"])
    assert listing.exit_code == 0, listing.output
    entries = json.loads((data_dir / "sessionHistory.json").read_text())
    assert [e["status"] for e in entries] == ["completed"]
    assert entries[0]["end_time"]["__type"] == "datetime"


def test_reset_abandons_bake(runner, data_dir):
    runner.invoke(cli, ["start"])
    result = runner.invoke(cli, ["reset"], input="y\n")
    assert result.exit_code == 0, result.output
    assert "Back to planning" in result.output

    entries = json.loads((data_dir / "sessionHistory.json").read_text())
    assert entries[0]["status"] == "abandoned"


def test_complete_without_bake_fails(runner):
    result = runner.invoke(cli, ["complete"])
    assert result.exit_code == 1


def test_history_empty(runner):
    result = runner.invoke(cli, ["history", "list"])
    assert result.exit_code == 0
    assert "No bakes yet" in result.output


def test_history_name_notes_delete(runner, data_dir):
    runner.invoke(cli, ["start"])
    runner.invoke(cli, ["complete"])
    entry_id = json.loads((data_dir / "sessionHistory.json").read_text())[0]["id"]

    assert runner.invoke(cli, ["history", "name", entry_id, "Rye test"]).exit_code == 0
    assert runner.invoke(cli, ["history", "notes", entry_id, "Dense crumb"]).exit_code == 0
    saved = json.loads((data_dir / "sessionHistory.json").read_text())[0]
    assert saved["name"] == "Rye test"
    assert saved["notes"] == "Dense crumb"

    assert runner.invoke(cli, ["history", "delete", entry_id]).exit_code == 0
    assert json.loads((data_dir / "sessionHistory.json").read_text()) == []


def test_history_unknown_entry(runner):
    result = runner.invoke(cli, ["history", "name", "nope", "x"])
    assert result.exit_code == 1
    assert "nope" in result.output
