"""Consensus-layer monitoring: head stream, participation, slashings, queues."""

from beacon_faucet.beacon.client import BeaconClient
from beacon_faucet.beacon.monitor import ChainHealthMonitor

__all__ = ["BeaconClient", "ChainHealthMonitor"]
