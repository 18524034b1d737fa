"""CLI commands that need no network access."""

from __future__ import annotations

import os

import pytest
from click.testing import CliRunner

from beacon_faucet.cli import cli


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("BEACON_FAUCET_"):
            monkeypatch.delenv(key)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "faucet.toml"
    path.write_text(
        "[daemon]\n"
        f'db_path = "{tmp_path / "state.db"}"\n'
        "\n[networks.sepolia-eth]\n"
        'rpc_url = "http://127.0.0.1:8545"\n'
        'channel = "faucet"\n'
    )
    return path


def test_status(config_file):
    result = CliRunner().invoke(cli, ["-c", str(config_file), "status"])
    assert result.exit_code == 0, result.output
    assert "Secret:      (not set)" in result.output
    assert "request-sepolia-eth" in result.output
    assert "channel=#faucet" in result.output
    assert "queue-mainnet" in result.output


def test_init_db(config_file, tmp_path):
    result = CliRunner().invoke(cli, ["-c", str(config_file), "init-db"])
    assert result.exit_code == 0, result.output
    assert "request_sepolia: 0 records" in result.output
    assert "request_hoodi: 0 records" in result.output
    assert (tmp_path / "state.db").exists()


def test_run_requires_secret(config_file):
    result = CliRunner().invoke(cli, ["-c", str(config_file), "run"])
    assert result.exit_code == 1
    assert "No faucet private key configured" in result.output


def test_queue_unknown_network(config_file):
    result = CliRunner().invoke(cli, ["-c", str(config_file), "queue", "goerli"])
    assert result.exit_code == 1
    assert "Unknown queue network: goerli" in result.output
