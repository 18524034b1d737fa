"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from beacon_faucet.models.config import (
    WEI_PER_ETHER,
    DaemonConfig,
    NetworkSettings,
    QueueTarget,
    default_networks,
    default_queues,
)


def ether_to_wei(value: object) -> int:
    """Convert an ether amount from config (number or string) to wei."""
    return int(Decimal(str(value)) * WEI_PER_ETHER)


def _id_list(value: object) -> list[str]:
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value or [])
    return [str(i).strip() for i in items if str(i).strip()]


def _env_key(network_key: str) -> str:
    return network_key.upper().replace("-", "_")


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "BEACON_FAUCET_",
) -> DaemonConfig:
    """Load daemon configuration from TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (BEACON_FAUCET_SECRET, etc.)
        2. TOML config file
        3. Defaults from DaemonConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = DaemonConfig(networks=default_networks(), queues=default_queues())

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)
    if v := daemon.get("db_path"):
        cfg.db_path = str(v)
    if v := daemon.get("upstream_timeout"):
        cfg.upstream_timeout = float(v)
    if v := daemon.get("confirm_timeout"):
        cfg.confirm_timeout = float(v)
    if v := daemon.get("retry_delay"):
        cfg.retry_delay = float(v)
    if v := daemon.get("retry_max_delay"):
        cfg.retry_max_delay = float(v)

    # ── Wallet / ENS ───────────────────────────────────────
    if v := raw.get("wallet", {}).get("secret"):
        cfg.faucet_secret = str(v)
    if v := raw.get("ens", {}).get("rpc_url"):
        cfg.ens_rpc_url = str(v)

    # ── Discord section ────────────────────────────────────
    discord = raw.get("discord", {})
    d = cfg.discord
    for name in (
        "token", "application_id", "public_key", "guild_id", "alert_channel_id",
        "operator_user_id", "farmer_role_id", "listen_host", "api_base",
    ):
        if v := discord.get(name):
            setattr(d, name, str(v))
    if v := discord.get("listen_port"):
        d.listen_port = int(v)
    if "allowed_role_ids" in discord:
        d.allowed_role_ids = _id_list(discord["allowed_role_ids"])
    if "verification_channel_ids" in discord:
        d.verification_channel_ids = _id_list(discord["verification_channel_ids"])

    # ── Beacon section ─────────────────────────────────────
    beacon = raw.get("beacon", {})
    b = cfg.beacon
    if "enabled" in beacon:
        b.enabled = bool(beacon["enabled"])
    for name in (
        "api_url", "network_key", "network_name", "validator_explorer_root",
        "auto_post_channel_id",
    ):
        if v := beacon.get(name):
            setattr(b, name, str(v))
    if v := beacon.get("slots_per_epoch"):
        b.slots_per_epoch = int(v)

    # ── Networks ───────────────────────────────────────────
    for key, section in raw.get("networks", {}).items():
        net = cfg.networks.get(key) or NetworkSettings(
            key=key,
            name=section.get("name", key),
            currency=section.get("currency", f"{key} ETH"),
        )
        _apply_network(net, section)
        cfg.networks[key] = net

    # ── Queues ─────────────────────────────────────────────
    for key, section in raw.get("queues", {}).items():
        queue = cfg.queues.get(key)
        if queue is None:
            queue = QueueTarget(key=key, name=section.get("name", key), api_queue_url="")
        if v := section.get("name"):
            queue.name = str(v)
        if v := section.get("api_queue_url"):
            queue.api_queue_url = str(v)
        cfg.queues[key] = queue

    # ── Environment variable overrides (highest priority) ──
    env = os.environ
    if v := env.get(f"{env_prefix}SECRET"):
        cfg.faucet_secret = v
    if v := env.get(f"{env_prefix}ENS_RPC_URL"):
        cfg.ens_rpc_url = v
    if v := env.get(f"{env_prefix}BEACON_API_URL"):
        b.api_url = v
    if v := env.get(f"{env_prefix}DISCORD_TOKEN"):
        d.token = v
    if v := env.get(f"{env_prefix}DISCORD_PUBLIC_KEY"):
        d.public_key = v
    if v := env.get(f"{env_prefix}DISCORD_APPLICATION_ID"):
        d.application_id = v
    if v := env.get(f"{env_prefix}GUILD_ID"):
        d.guild_id = v
    if v := env.get(f"{env_prefix}ALERT_CHANNEL_ID"):
        d.alert_channel_id = v
    if v := env.get(f"{env_prefix}OPERATOR_USER_ID"):
        d.operator_user_id = v
    if v := env.get(f"{env_prefix}ROLE_IDS"):
        d.allowed_role_ids = _id_list(v)
    if v := env.get(f"{env_prefix}FARMER_ROLE_ID"):
        d.farmer_role_id = v
    for key, net in cfg.networks.items():
        if v := env.get(f"{env_prefix}{_env_key(key)}_RPC_URL"):
            net.rpc_url = v
        if v := env.get(f"{env_prefix}{_env_key(key)}_CHANNEL_NAME"):
            net.channel = v

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _apply_network(net: NetworkSettings, section: dict) -> None:
    for name in ("name", "currency", "rpc_url", "table", "explorer_tx_root",
                 "channel", "enough_reason", "info_message"):
        if v := section.get(name):
            setattr(net, name, str(v))
    if v := section.get("rate_limit_days"):
        net.rate_limit_days = float(v)
    if v := section.get("request_amount_ether"):
        net.request_amount = ether_to_wei(v)
    if v := section.get("min_reserve_ether"):
        net.min_reserve = ether_to_wei(v)
