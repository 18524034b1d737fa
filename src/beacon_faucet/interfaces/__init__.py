"""Protocol interfaces for all beacon_faucet components."""

from beacon_faucet.interfaces.beacon import BeaconAPI
from beacon_faucet.interfaces.chain import ChainClient, NameResolver
from beacon_faucet.interfaces.chat import AlertSink, ChannelResolver, Interaction
from beacon_faucet.interfaces.store import RequestStore

__all__ = [
    "BeaconAPI",
    "ChainClient", "NameResolver",
    "AlertSink", "ChannelResolver", "Interaction",
    "RequestStore",
]
