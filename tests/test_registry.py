"""Network registry, pending set, and wallet report."""

from __future__ import annotations

import logging

import pytest

from beacon_faucet.errors import UpstreamError
from beacon_faucet.faucet.registry import NetworkConfig, NetworkRegistry, PendingSet
from beacon_faucet.models.config import WEI_PER_ETHER

from tests.conftest import explorer_link, make_test_config, pytest_html_results_summary
from tests.factories import make_network
from tests.mocks import MockChain


def test_pending_set_hold_and_release():
    pending = PendingSet()
    with pending.hold("1") as acquired:
        assert acquired
        assert "1" in pending
        with pending.hold("1") as again:
            assert not again
        # The refused second hold leaves the first in place
        assert "1" in pending
    assert "1" not in pending


def test_pending_set_releases_on_exception():
    pending = PendingSet()
    with pytest.raises(RuntimeError):
        with pending.hold("1"):
            raise RuntimeError("boom")
    assert len(pending) == 0


def test_from_config_skips_networks_without_rpc():
    cfg = make_test_config()
    cfg.networks["hoodi-eth"].rpc_url = ""
    built = []

    def _factory(settings):
        built.append(settings.key)
        return MockChain()

    registry = NetworkRegistry.from_config(cfg, _factory)
    assert built == ["sepolia-eth"]
    assert len(registry) == 1
    assert registry.tables() == ["request_sepolia"]
    network = registry.get("sepolia-eth")
    assert isinstance(network, NetworkConfig)
    assert network.rate_limit_seconds == 7 * 86400


def test_get_by_key():
    registry = NetworkRegistry([make_network(MockChain())])
    assert registry.get("sepolia-eth").command == "request-sepolia-eth"
    assert registry.get("hoodi-eth") is None


def test_networks_have_their_own_pending_sets():
    a = make_network(MockChain())
    b = make_network(MockChain(), key="hoodi-eth", table="request_hoodi")
    assert a.pending is not b.pending


def test_explorer_url():
    network = make_network(MockChain())
    assert network.explorer_url("0xabc") == "https://sepolia.etherscan.io/tx/0xabc"


async def test_wallet_report(caplog):
    rich = MockChain(faucet_balance=10 * WEI_PER_ETHER)
    poor = MockChain(faucet_balance=0)
    broken = MockChain()
    broken.balance_error = UpstreamError("balance", "refused")
    registry = NetworkRegistry([
        make_network(rich),
        make_network(poor, key="hoodi-eth", name="Hoodi", table="request_hoodi"),
        make_network(broken, key="other-eth", name="Other", table="request_other"),
    ])

    with caplog.at_level(logging.INFO, logger="beacon_faucet.faucet.registry"):
        await registry.log_wallet_status()

    text = caplog.text
    assert "There are 10 potential remaining requests for the Sepolia faucet" in text
    assert "Not enough Sepolia ETH to provide services for the Hoodi faucet" in text
    assert "Could not read Other faucet balance" in text


def test_explorer_link_swaps_path_kind():
    link = explorer_link("https://sepolia.etherscan.io/tx/", "address", "0x" + "ab" * 20)
    assert 'href="https://sepolia.etherscan.io/address/0x' in link
    assert ">0xababab...abab</a>" in link


def test_report_summary_links_each_default_network():
    prefix: list[str] = []
    pytest_html_results_summary(prefix, [], [])

    assert len(prefix) == 1
    assert "https://sepolia.etherscan.io/address/0x" in prefix[0]
    assert "https://hoodi.etherscan.io/address/0x" in prefix[0]
