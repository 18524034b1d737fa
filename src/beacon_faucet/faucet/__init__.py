"""Faucet request handling: registry, decoy, orchestrator."""

from beacon_faucet.faucet.orchestrator import RequestOrchestrator
from beacon_faucet.faucet.registry import NetworkConfig, NetworkRegistry, PendingSet

__all__ = ["NetworkConfig", "NetworkRegistry", "PendingSet", "RequestOrchestrator"]
