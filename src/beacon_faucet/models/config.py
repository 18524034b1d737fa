"""Configuration models for the daemon."""

from __future__ import annotations

from dataclasses import dataclass, field

WEI_PER_ETHER = 10**18

# Upper bound on the cost of a plain value transfer, kept out of every send.
TRANSACTION_COST_BUFFER = 10**14  # 0.0001 ETH
VALIDATOR_DEPOSIT = 32 * WEI_PER_ETHER


@dataclass
class NetworkSettings:
    """One dispensing network as declared in configuration."""

    key: str  # command suffix, e.g. "sepolia-eth"
    name: str  # display name, e.g. "Sepolia"
    currency: str
    rpc_url: str = ""
    table: str = ""  # rate-limit table, defaults to request_<key>
    rate_limit_days: float = 7
    request_amount: int = WEI_PER_ETHER  # wei
    min_reserve: int = VALIDATOR_DEPOSIT + 2 * TRANSACTION_COST_BUFFER  # wei
    explorer_tx_root: str = ""
    channel: str | None = None  # restrict requests to this channel name
    enough_reason: str = "It should be plenty already for a few transactions"
    info_message: str = ""  # body of the <key>-msg informational command

    @property
    def command(self) -> str:
        return f"request-{self.key}"

    @property
    def table_name(self) -> str:
        return self.table or "request_" + self.key.replace("-", "_")


@dataclass
class QueueTarget:
    """A beacon chain whose activation/exit queues can be queried."""

    key: str  # command suffix, e.g. "mainnet"
    name: str
    api_queue_url: str


@dataclass
class BeaconSettings:
    """Consensus-layer node used by the health monitor."""

    enabled: bool = True
    api_url: str = "http://127.0.0.1:5052"
    network_key: str = "mainnet"
    network_name: str = "Mainnet"
    validator_explorer_root: str = "https://beaconcha.in/validator/"
    slots_per_epoch: int = 32
    auto_post_channel_id: str = ""  # post each participation sample here


@dataclass
class DiscordSettings:
    """Chat platform credentials and identities."""

    token: str = ""
    application_id: str = ""
    public_key: str = ""  # hex ed25519 key used to sign interactions
    guild_id: str = ""
    alert_channel_id: str = ""
    operator_user_id: str = ""
    allowed_role_ids: list[str] = field(default_factory=list)
    farmer_role_id: str = ""
    verification_channel_ids: list[str] = field(default_factory=list)
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080
    api_base: str = "https://discord.com/api/v10"


@dataclass
class DaemonConfig:
    """Complete daemon configuration."""

    # Daemon
    log_level: str = "info"
    db_path: str = "~/.beacon_faucet/state.db"
    upstream_timeout: float = 30.0  # seconds per external call
    confirm_timeout: float = 600.0  # seconds to wait for one confirmation
    retry_delay: float = 5.0  # first reconnect / login retry delay
    retry_max_delay: float = 300.0

    # Wallet
    faucet_secret: str = ""  # hex private key, loaded from BEACON_FAUCET_SECRET
    ens_rpc_url: str = ""  # mainnet RPC used for name resolution

    networks: dict[str, NetworkSettings] = field(default_factory=dict)
    queues: dict[str, QueueTarget] = field(default_factory=dict)
    beacon: BeaconSettings = field(default_factory=BeaconSettings)
    discord: DiscordSettings = field(default_factory=DiscordSettings)


def default_networks() -> dict[str, NetworkSettings]:
    return {
        "sepolia-eth": NetworkSettings(
            key="sepolia-eth",
            name="Sepolia",
            currency="Sepolia ETH",
            table="request_sepolia",
            rate_limit_days=7,
            request_amount=WEI_PER_ETHER,
            min_reserve=WEI_PER_ETHER + 2 * TRANSACTION_COST_BUFFER,
            explorer_tx_root="https://sepolia.etherscan.io/tx/",
            enough_reason="It should be plenty already for a few transactions",
            info_message=(
                "can request Sepolia ETH to test transactions on the Sepolia testnet"
                " with the `/request-sepolia-eth` command once verified."
            ),
        ),
        "hoodi-eth": NetworkSettings(
            key="hoodi-eth",
            name="Hoodi",
            currency="Hoodi ETH",
            table="request_hoodi",
            rate_limit_days=28,
            request_amount=VALIDATOR_DEPOSIT + TRANSACTION_COST_BUFFER,
            explorer_tx_root="https://hoodi.etherscan.io/tx/",
            enough_reason="It should be plenty already for a validator deposit",
            info_message=(
                "can request enough Hoodi ETH for a validator deposit"
                " with the `/request-hoodi-eth` command once verified."
            ),
        ),
    }


def default_queues() -> dict[str, QueueTarget]:
    return {
        "mainnet": QueueTarget(
            key="mainnet",
            name="Mainnet",
            api_queue_url="https://beaconcha.in/api/v1/validators/queue",
        ),
        "hoodi": QueueTarget(
            key="hoodi",
            name="Hoodi",
            api_queue_url="https://hoodi.beaconcha.in/api/v1/validators/queue",
        ),
    }
