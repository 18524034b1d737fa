"""Execution-layer access for the dispensing wallets."""

from beacon_faucet.chain.web3_client import EnsNameResolver, Web3ChainClient

__all__ = ["EnsNameResolver", "Web3ChainClient"]
