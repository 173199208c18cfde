from __future__ import annotations

import json
import os

import pytest
from click.testing import CliRunner

from starctl.cli import cli


@pytest.fixture
def integration_config():
    """Require a real console; STARCTL_CONFIG must point at its profile."""
    if not os.environ.get("STARCTL_CONFIG"):
        pytest.skip("STARCTL_CONFIG not set; integration tests need a running console")
    yield


@pytest.mark.integration
def test_functions_list_integration_json(integration_config):
    runner = CliRunner()
    res = runner.invoke(cli, ["--json-output", "functions", "list", "--all"])  # type: ignore[arg-type]
    assert res.exit_code == 0, res.output
    data = json.loads(res.output)
    names = {f["name"] for c in data["categories"] for f in c["functions"]}
    assert {"backends", "dbs", "transactions"} <= names


@pytest.mark.integration
def test_clusters_list_integration_table(integration_config):
    runner = CliRunner()
    res = runner.invoke(cli, ["clusters", "list"])  # type: ignore[arg-type]
    assert res.exit_code == 0, res.output
    # Header or empty message depending on what is registered
    assert "ACTIVE" in res.output or "No clusters found" in res.output


@pytest.mark.integration
def test_system_show_dbs_integration(integration_config):
    runner = CliRunner()
    res = runner.invoke(cli, ["--json-output", "system", "show", "dbs"])  # type: ignore[arg-type]
    assert res.exit_code == 0, res.output
    data = json.loads(res.output)
    assert data["breadcrumb"] == ["dbs"]
    if data["rows"]:
        # dbs is nestable, so some column is always marked for drilling
        assert data["navigable_column"] in data["columns"]


@pytest.mark.integration
def test_drill_into_first_database_integration(integration_config):
    runner = CliRunner()
    res = runner.invoke(cli, ["--json-output", "system", "show", "dbs"])  # type: ignore[arg-type]
    data = json.loads(res.output)
    if not data["rows"]:
        pytest.skip("no databases on the active cluster")

    key = str(data["rows"][0][data["navigable_column"]])
    res = runner.invoke(cli, ["--json-output", "system", "show", "dbs", "--path", key])  # type: ignore[arg-type]
    assert res.exit_code == 0, res.output
    assert json.loads(res.output)["breadcrumb"] == ["dbs", key]
