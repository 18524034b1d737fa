"""Shared fixtures for beacon_faucet tests."""

from __future__ import annotations

import pytest
from eth_account import Account
from pytest_metadata.plugin import metadata_key

from beacon_faucet.beacon.monitor import ChainHealthMonitor
from beacon_faucet.faucet.orchestrator import RequestOrchestrator
from beacon_faucet.faucet.registry import NetworkRegistry
from beacon_faucet.models.config import (
    BeaconSettings,
    DaemonConfig,
    DiscordSettings,
    default_networks,
    default_queues,
)
from beacon_faucet.retry import Backoff
from beacon_faucet.storage.sqlite import SQLiteRequestStore

from tests.factories import ENS_ADDRESS, FARMER_ROLE, VERIFIED_ROLE, make_network
from tests.mocks import (
    FakeClock,
    MockAlertSink,
    MockBeacon,
    MockChain,
    MockChannels,
    MockResolver,
)

# Well-known development key (never holds real funds)
TEST_SECRET = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

TABLES = ["request_sepolia", "request_hoodi"]


def explorer_link(tx_root: str, kind: str, id: str, label: str | None = None) -> str:
    """Build an HTML anchor to a network's block explorer for the report."""
    url = tx_root.replace("/tx/", f"/{kind}/") + id
    text = label or f"{id[:8]}...{id[-4:]}"
    return f'<a href="{url}" target="_blank">{text}</a>'


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add the network set to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Networks"] = ", ".join(n.name for n in default_networks().values())
    meta["Beacon network"] = BeaconSettings().network_name


def pytest_html_results_summary(prefix, summary, postfix):
    """Link the test wallet on each default network's explorer in the report."""
    address = Account.from_key(TEST_SECRET).address
    links = "<br/>".join(
        f"{net.name}: {explorer_link(net.explorer_tx_root, 'address', address)}"
        for net in default_networks().values()
    )
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Test Wallet Explorer Links</strong><br/>"
        f"{links}"
        "</div>"
    )


def make_test_config(**overrides) -> DaemonConfig:
    """Build a DaemonConfig suitable for testing."""
    networks = default_networks()
    for net in networks.values():
        net.rpc_url = f"http://127.0.0.1:8545/{net.key}"
    defaults = dict(
        db_path=":memory:",
        upstream_timeout=1,
        confirm_timeout=5,
        retry_delay=0.01,
        retry_max_delay=0.05,
        faucet_secret=TEST_SECRET,
        ens_rpc_url="http://127.0.0.1:8545/mainnet",
        networks=networks,
        queues=default_queues(),
        beacon=BeaconSettings(api_url="http://127.0.0.1:5052"),
        discord=DiscordSettings(
            token="test-token",
            application_id="app-1",
            public_key="00" * 32,
            guild_id="guild-1",
            alert_channel_id="chan-alerts",
            operator_user_id="9999",
            allowed_role_ids=[VERIFIED_ROLE],
            farmer_role_id=FARMER_ROLE,
        ),
    )
    defaults.update(overrides)
    return DaemonConfig(**defaults)


@pytest.fixture
def test_config():
    """Default DaemonConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteRequestStore."""
    s = SQLiteRequestStore(":memory:")
    await s.initialize(TABLES)
    yield s
    await s.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def chain():
    return MockChain()


@pytest.fixture
def resolver():
    return MockResolver({"alice.eth": ENS_ADDRESS})


@pytest.fixture
def channels():
    return MockChannels()


@pytest.fixture
def network(chain):
    return make_network(chain)


@pytest.fixture
def registry(network):
    return NetworkRegistry([network])


@pytest.fixture
def orchestrator(registry, store, resolver, channels, alerts, clock):
    """RequestOrchestrator over mocks with the verified role required."""
    return RequestOrchestrator(
        registry,
        store,
        resolver,
        channels=channels,
        allowed_role_ids={VERIFIED_ROLE},
        farmer_role_id=FARMER_ROLE,
        alerts=alerts,
        clock=clock,
    )


@pytest.fixture
def beacon():
    return MockBeacon()


@pytest.fixture
def alerts():
    return MockAlertSink()


@pytest.fixture
def monitor(beacon, alerts, clock):
    """ChainHealthMonitor over mocks with no real sleeping."""
    async def _no_sleep(delay: float) -> None:
        return None

    return ChainHealthMonitor(
        beacon,
        alerts,
        BeaconSettings(network_name="Mainnet"),
        backoff=Backoff(initial=1, maximum=8, jitter=0),
        clock=clock,
        sleep=_no_sleep,
    )
