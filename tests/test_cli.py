"""
tests/test_cli.py

CLI: keygen, log-access, records and verify against a ledger file.
"""

import json

import pytest
from click.testing import CliRunner

from accessledger.cli import cli
from accessledger.core.crypto import Ed25519KeyManager


@pytest.fixture
def env(tmp_path):
    return {
        "ACCESSLEDGER_KEY_PATH": str(tmp_path / "owner.pem"),
        "ACCESSLEDGER_LEDGER_PATH": str(tmp_path / "ledger.jsonl"),
        "ACCESSLEDGER_CONFIRMATION_TIMEOUT": "5",
    }


@pytest.fixture
def runner():
    return CliRunner()


class TestKeygen:

    def test_prints_identity(self, runner, tmp_path):
        path = tmp_path / "owner.pem"
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code == 0
        assert result.output.strip() == Ed25519KeyManager.from_file(path).identity

    def test_refuses_overwrite(self, runner, tmp_path):
        path = tmp_path / "owner.pem"
        runner.invoke(cli, ["keygen", str(path)])
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code != 0


class TestLogAccessAndRecords:

    def test_round_trip(self, runner, env, tmp_path):
        first = runner.invoke(cli, ["log-access", "63:5A:59:31", "1", "--success"], env=env)
        assert first.exit_code == 0, first.output
        assert json.loads(first.output)["success"] is True

        second = runner.invoke(cli, ["log-access", "63:5A:59:31", "2", "--failure"], env=env)
        assert second.exit_code == 0, second.output

        ledger = env["ACCESSLEDGER_LEDGER_PATH"]
        listing = runner.invoke(cli, ["records", ledger, "--format", "json"])
        assert listing.exit_code == 0
        data = json.loads(listing.output)
        assert data["count"] == 2
        assert [r["fingerprintId"] for r in data["records"]] == ["1", "2"]
        assert [r["success"] for r in data["records"]] == [True, False]

        human = runner.invoke(cli, ["records", ledger])
        assert "GRANTED" in human.output
        assert "DENIED" in human.output

    def test_blank_rfid_fails(self, runner, env):
        result = runner.invoke(cli, ["log-access", " ", "1"], env=env)
        assert result.exit_code == 1
        assert json.loads(result.output)["errorKind"] == "InvalidInput"


class TestVerify:

    def _populate(self, runner, env, n=3):
        for i in range(n):
            runner.invoke(cli, ["log-access", f"rfid-{i}", str(i)], env=env)
        return env["ACCESSLEDGER_LEDGER_PATH"]

    def test_valid_ledger(self, runner, env):
        ledger = self._populate(runner, env)
        result = runner.invoke(cli, ["verify", ledger, "--format", "json"])
        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["valid"] is True
        assert report["records"] == 3

    def test_tampered_ledger(self, runner, env, tmp_path):
        ledger = self._populate(runner, env)
        path = tmp_path / "ledger.jsonl"
        lines = path.read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[1])
        entry["record"]["rfidId"] = "FF:FF:FF:FF"
        lines[1] = json.dumps(entry)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

        result = runner.invoke(cli, ["verify", ledger, "--format", "compact"])
        assert result.exit_code == 1
        assert result.output.startswith("INVALID")

    def test_missing_ledger(self, runner, tmp_path):
        result = runner.invoke(cli, ["verify", str(tmp_path / "nope.jsonl"), "--quiet"])
        assert result.exit_code == 2
