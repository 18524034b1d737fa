"""Configuration loading from TOML and environment."""

from __future__ import annotations

import os

import pytest

from beacon_faucet.config import ether_to_wei, load_config
from beacon_faucet.models.config import TRANSACTION_COST_BUFFER, VALIDATOR_DEPOSIT, WEI_PER_ETHER

TOML = """
[daemon]
log_level = "debug"
db_path = "/tmp/beacon-faucet-test/state.db"
upstream_timeout = 10
retry_max_delay = 60

[discord]
guild_id = "123"
allowed_role_ids = ["1", "2"]
listen_port = 9000

[beacon]
api_url = "http://beacon:5052"
network_name = "Holesky"
enabled = false

[networks.sepolia-eth]
rpc_url = "http://sepolia:8545"
request_amount_ether = "0.5"
channel = "sepolia-faucet"

[networks.gnosis-xdai]
name = "Gnosis"
currency = "xDAI"
rpc_url = "http://gnosis:8545"
rate_limit_days = 1
request_amount_ether = 0.01
min_reserve_ether = 1

[queues.holesky]
name = "Holesky"
api_queue_url = "https://holesky.beaconcha.in/api/v1/validators/queue"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("BEACON_FAUCET_"):
            monkeypatch.delenv(key)


def test_defaults_without_file():
    cfg = load_config(None)
    assert set(cfg.networks) == {"sepolia-eth", "hoodi-eth"}
    assert cfg.networks["sepolia-eth"].request_amount == WEI_PER_ETHER
    assert cfg.networks["sepolia-eth"].table_name == "request_sepolia"
    assert cfg.networks["hoodi-eth"].request_amount == VALIDATOR_DEPOSIT + TRANSACTION_COST_BUFFER
    assert cfg.networks["hoodi-eth"].rate_limit_days == 28
    assert set(cfg.queues) == {"mainnet", "hoodi"}
    assert cfg.upstream_timeout == 30
    assert cfg.db_path.endswith(".beacon_faucet/state.db")


def test_missing_file_falls_back_to_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.toml")
    assert cfg.log_level == "info"


def test_toml_sections(tmp_path):
    path = tmp_path / "faucet.toml"
    path.write_text(TOML)
    cfg = load_config(path)

    assert cfg.log_level == "debug"
    assert cfg.upstream_timeout == 10
    assert cfg.retry_max_delay == 60
    assert cfg.discord.guild_id == "123"
    assert cfg.discord.allowed_role_ids == ["1", "2"]
    assert cfg.discord.listen_port == 9000
    assert cfg.beacon.api_url == "http://beacon:5052"
    assert cfg.beacon.network_name == "Holesky"
    assert cfg.beacon.enabled is False

    sepolia = cfg.networks["sepolia-eth"]
    assert sepolia.rpc_url == "http://sepolia:8545"
    assert sepolia.request_amount == WEI_PER_ETHER // 2
    assert sepolia.channel == "sepolia-faucet"
    assert sepolia.name == "Sepolia"

    gnosis = cfg.networks["gnosis-xdai"]
    assert gnosis.currency == "xDAI"
    assert gnosis.command == "request-gnosis-xdai"
    assert gnosis.table_name == "request_gnosis_xdai"
    assert gnosis.request_amount == WEI_PER_ETHER // 100
    assert gnosis.min_reserve == WEI_PER_ETHER

    assert cfg.queues["holesky"].name == "Holesky"


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "faucet.toml"
    path.write_text(TOML)
    monkeypatch.setenv("BEACON_FAUCET_SECRET", "0xabc")
    monkeypatch.setenv("BEACON_FAUCET_DISCORD_TOKEN", "tok")
    monkeypatch.setenv("BEACON_FAUCET_GUILD_ID", "456")
    monkeypatch.setenv("BEACON_FAUCET_ROLE_IDS", "10, 20 ,")
    monkeypatch.setenv("BEACON_FAUCET_FARMER_ROLE_ID", "666")
    monkeypatch.setenv("BEACON_FAUCET_BEACON_API_URL", "http://other:5052")
    monkeypatch.setenv("BEACON_FAUCET_SEPOLIA_ETH_RPC_URL", "http://env-sepolia:8545")
    monkeypatch.setenv("BEACON_FAUCET_HOODI_ETH_CHANNEL_NAME", "hoodi-faucet")

    cfg = load_config(path)
    assert cfg.faucet_secret == "0xabc"
    assert cfg.discord.token == "tok"
    assert cfg.discord.guild_id == "456"
    assert cfg.discord.allowed_role_ids == ["10", "20"]
    assert cfg.discord.farmer_role_id == "666"
    assert cfg.beacon.api_url == "http://other:5052"
    assert cfg.networks["sepolia-eth"].rpc_url == "http://env-sepolia:8545"
    assert cfg.networks["hoodi-eth"].channel == "hoodi-faucet"


def test_ether_to_wei_is_exact():
    assert ether_to_wei("32.0001") == VALIDATOR_DEPOSIT + TRANSACTION_COST_BUFFER
    assert ether_to_wei(1) == WEI_PER_ETHER
