"""beacon_faucet - testnet faucet and beacon chain health monitor."""

__version__ = "0.1.0"
