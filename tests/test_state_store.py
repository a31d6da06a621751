"""Tests for DeploymentRecord model and write/load helpers."""

from __future__ import annotations

import json

import pytest

from ibc_deploy.errors import ConfigurationError
from ibc_deploy.state.models import DeploymentRecord
from ibc_deploy.state.store import (
    config_dir,
    latest_deployment_record,
    load_deployment_record,
    write_deployment_record,
)


@pytest.fixture(autouse=True)
def _xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


# ---------------------------------------------------------------------------
# DeploymentRecord model
# ---------------------------------------------------------------------------


class TestDeploymentRecordModel:
    """DeploymentRecord instantiation and serialisation."""

    def test_defaults(self):
        rec = DeploymentRecord()
        assert rec.network == ""
        assert rec.dry_run is False
        assert rec.addresses == {}
        assert len(rec.run_id) == 20

    def test_to_sorted_json_deterministic(self):
        kwargs = dict(
            run_id="20260101120000",
            network="localnet",
            addresses={"IBCClient": "0x2", "Bytes": "0x1"},
        )
        assert (
            DeploymentRecord(**kwargs).to_sorted_json()
            == DeploymentRecord(**kwargs).to_sorted_json()
        )

    def test_to_sorted_json_keys_sorted(self):
        rec = DeploymentRecord(run_id="20260101120000", network="n")
        keys = list(json.loads(rec.to_sorted_json()).keys())
        assert keys == sorted(keys)

    def test_plan_steps_keep_order(self):
        steps = ["provision Migrations()", "provision library Bytes"]
        rec = DeploymentRecord(plan_steps=steps)
        assert json.loads(rec.to_sorted_json())["plan_steps"] == steps


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TestConfigDir:
    def test_uses_xdg_config_home(self, tmp_path):
        path = config_dir()
        assert path == tmp_path / "xdg" / "ibc-deploy"
        assert path.is_dir()


class TestWriteLoad:
    def test_roundtrip(self):
        rec = DeploymentRecord(
            run_id="20260101120000",
            network="localnet",
            rpc_url="http://127.0.0.1:8545",
            addresses={"Migrations": "0xm", "Bytes": "0xb"},
        )
        path = write_deployment_record(rec)
        assert path.name == "deployment_localnet_20260101120000.json"
        assert load_deployment_record(path) == rec

    def test_trailing_newline(self):
        path = write_deployment_record(DeploymentRecord(network="n"))
        assert path.read_text().endswith("}\n")

    def test_unsafe_network_name_sanitised(self):
        rec = DeploymentRecord(run_id="20260101120000", network="eth/main net")
        path = write_deployment_record(rec)
        assert path.name == "deployment_eth_main_net_20260101120000.json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_deployment_record(tmp_path / "nope.json")

    def test_invalid_file(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"addresses": "not-a-dict"}')
        with pytest.raises(ConfigurationError, match="Invalid deployment record"):
            load_deployment_record(bad)


class TestLatest:
    def test_none_when_empty(self):
        assert latest_deployment_record() is None

    def test_newest_wins(self):
        write_deployment_record(DeploymentRecord(run_id="20260101000000", network="a"))
        newest = write_deployment_record(
            DeploymentRecord(run_id="20260301000000", network="a"),
        )
        write_deployment_record(DeploymentRecord(run_id="20260201000000", network="a"))
        assert latest_deployment_record("a") == newest

    def test_filters_by_network(self):
        a = write_deployment_record(DeploymentRecord(run_id="20260101000000", network="a"))
        write_deployment_record(DeploymentRecord(run_id="20260301000000", network="b"))
        assert latest_deployment_record("a") == a
        assert latest_deployment_record("c") is None

    def test_network_prefix_not_matched(self):
        local = write_deployment_record(
            DeploymentRecord(run_id="20260101000000", network="local"),
        )
        fork = write_deployment_record(
            DeploymentRecord(run_id="20260102000000", network="local_fork"),
        )
        assert latest_deployment_record("local") == local
        assert latest_deployment_record("local_fork") == fork
        assert latest_deployment_record() == fork


class TestRunId:
    def test_back_to_back_runs_get_separate_files(self):
        first = write_deployment_record(DeploymentRecord(network="n"))
        second = write_deployment_record(DeploymentRecord(network="n"))
        assert first != second
        assert len(list(config_dir().glob("deployment_n_*.json"))) == 2
