import json

from typer.testing import CliRunner

from roadmap_grid.cli import app

runner = CliRunner()


def test_cli_lint_success():
    r = runner.invoke(app, ["lint", "examples/chain.yaml"])
    assert r.exit_code == 0
    assert "OK: lint passed" in r.stdout


def test_cli_lint_cycle():
    r = runner.invoke(app, ["lint", "examples/cycle.yaml"])
    assert r.exit_code == 2
    assert "L_CYCLE_DETECTED" in r.output


def test_cli_lint_json_reports_lint_and_validation():
    r = runner.invoke(app, ["lint", "examples/invalid-duplicate-id.yaml", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    sources = {(e["code"], e["source"]) for e in payload["errors"]}
    assert sources == {("L_DUPLICATE_ID", "lint"), ("E_DUPLICATE_ID", "validate")}


def test_cli_lint_root_option():
    r = runner.invoke(app, ["lint", "examples/roadmap.yaml", "--root", "SPIKE", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    codes = [e["code"] for e in payload["errors"]]
    assert codes.count("L_UNREACHABLE_TASK") == 7
