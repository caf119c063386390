"""
Tests for the command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from auctioneer.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


class TestGenesisCommands:
    """Tests for `genesis default` and `genesis validate`."""

    def test_default_prints_json(self, runner):
        result = runner.invoke(cli, ["genesis", "default"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["next_auction_id"] == 1
        assert data["auctions"] == []

    def test_default_to_file_then_validate(self, runner, tmp_path):
        path = tmp_path / "genesis.json"

        result = runner.invoke(cli, ["genesis", "default", "-o", str(path)])
        assert result.exit_code == 0
        assert path.exists()

        result = runner.invoke(cli, ["genesis", "validate", str(path)])
        assert result.exit_code == 0
        assert "Genesis valid" in result.output

    def test_validate_rejects_bad_file(self, runner, tmp_path):
        path = tmp_path / "genesis.json"
        path.write_text(json.dumps({"next_auction_id": 0}))

        result = runner.invoke(cli, ["genesis", "validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid genesis" in result.output

    def test_validate_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["genesis", "validate", str(tmp_path / "missing.json")])
        assert result.exit_code == 1


class TestParamsCommands:
    """Tests for `params show`."""

    def test_show_defaults(self, runner, monkeypatch):
        monkeypatch.delenv("AUCTION_BID_DURATION", raising=False)
        monkeypatch.delenv("AUCTION_MAX_AUCTION_DURATION", raising=False)

        result = runner.invoke(cli, ["params", "show"])

        assert result.exit_code == 0
        assert "max_auction_duration: 172800s" in result.output
        assert "bid_duration:         3600s" in result.output

    def test_show_env_file(self, runner, tmp_path, monkeypatch):
        monkeypatch.delenv("AUCTION_INCREMENT_DEBT", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("AUCTION_INCREMENT_DEBT=0.25\n")

        result = runner.invoke(cli, ["params", "show", "--env-file", str(env_file)])

        assert result.exit_code == 0
        assert "increment_debt:       0.25" in result.output

    def test_show_invalid(self, runner, monkeypatch):
        monkeypatch.setenv("AUCTION_BID_DURATION", "-5")

        result = runner.invoke(cli, ["params", "show"])

        assert result.exit_code == 1
        assert "Invalid params" in result.output


class TestDemo:
    """Tests for the scripted walkthrough."""

    def test_demo_all(self, runner):
        result = runner.invoke(cli, ["demo"])

        assert result.exit_code == 0, result.output
        assert "Bob receives 100usdx, 10.5token burned" in result.output
        assert "Alice is minted 960mint-token" in result.output
        assert "Returned 10coll" in result.output
        assert "Demo complete" in result.output

    def test_demo_single_scenario(self, runner):
        result = runner.invoke(cli, ["demo", "--scenario", "debt"])

        assert result.exit_code == 0, result.output
        assert "Debt auction" in result.output
        assert "Surplus auction" not in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert "0.1.0" in result.output
