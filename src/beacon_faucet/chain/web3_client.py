"""web3.py implementation of the ChainClient and NameResolver protocols."""

from __future__ import annotations

import asyncio
import logging

from ens import AsyncENS
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3

from beacon_faucet.errors import UpstreamError, with_deadline

log = logging.getLogger(__name__)

PLAIN_TRANSFER_GAS = 21_000
RECEIPT_POLL_LATENCY = 2.0


class Web3ChainClient:
    """Dispensing wallet bound to one JSON-RPC endpoint.

    Transfers from the wallet are built, signed, and submitted one at a
    time so concurrent requests never reuse a nonce. Waiting for the
    confirmation happens outside that lock.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        network_name: str = "",
        timeout: float = 30.0,
        confirm_timeout: float = 600.0,
    ) -> None:
        self._w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._account: LocalAccount = Account.from_key(private_key)
        self._network_name = network_name or rpc_url
        self._timeout = timeout
        self._confirm_timeout = confirm_timeout
        self._send_lock = asyncio.Lock()
        self._chain_id: int | None = None

    @property
    def faucet_address(self) -> str:
        return self._account.address

    def is_address(self, value: str) -> bool:
        return AsyncWeb3.is_address(value)

    async def get_balance(self, address: str) -> int:
        checksum = AsyncWeb3.to_checksum_address(address)
        try:
            return await with_deadline(
                self._w3.eth.get_balance(checksum),
                self._timeout,
                f"{self._network_name} balance of {checksum}",
            )
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(f"{self._network_name} balance of {checksum}", exc) from exc

    async def _fees(self) -> tuple[int, int]:
        latest = await self._w3.eth.get_block("latest")
        priority = await self._w3.eth.max_priority_fee
        base = latest.get("baseFeePerGas", 0)
        return base * 2 + priority, priority

    async def _build_and_send(self, to: str, amount: int) -> str:
        if self._chain_id is None:
            self._chain_id = await self._w3.eth.chain_id
        nonce = await self._w3.eth.get_transaction_count(self._account.address, "pending")
        max_fee, priority = await self._fees()
        tx = {
            "to": AsyncWeb3.to_checksum_address(to),
            "value": amount,
            "nonce": nonce,
            "gas": PLAIN_TRANSFER_GAS,
            "maxFeePerGas": max_fee,
            "maxPriorityFeePerGas": priority,
            "chainId": self._chain_id,
            "type": 2,
        }
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        return AsyncWeb3.to_hex(tx_hash)

    async def send(self, to: str, amount: int) -> str:
        what = f"{self._network_name} transfer to {to}"
        async with self._send_lock:
            try:
                tx_hash = await with_deadline(self._build_and_send(to, amount), self._timeout, what)
            except UpstreamError:
                raise
            except Exception as exc:
                raise UpstreamError(what, exc) from exc
        log.info("Submitted %s wei to %s on %s (tx=%s)", amount, to, self._network_name, tx_hash)
        return tx_hash

    async def wait_for_confirmation(self, tx_hash: str) -> None:
        what = f"{self._network_name} confirmation of {tx_hash}"
        try:
            receipt = await with_deadline(
                self._w3.eth.wait_for_transaction_receipt(
                    tx_hash,
                    timeout=self._confirm_timeout,
                    poll_latency=RECEIPT_POLL_LATENCY,
                ),
                self._confirm_timeout + self._timeout,
                what,
            )
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(what, exc) from exc
        if receipt.get("status") != 1:
            raise UpstreamError(what, "transaction reverted")

    async def close(self) -> None:
        try:
            await self._w3.provider.disconnect()
        except Exception:
            log.debug("Provider disconnect failed for %s", self._network_name, exc_info=True)


class EnsNameResolver:
    """Resolves ENS names on the reference network (mainnet)."""

    def __init__(self, rpc_url: str, timeout: float = 30.0) -> None:
        self._w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._ens = AsyncENS.from_web3(self._w3)
        self._timeout = timeout

    async def resolve_name(self, name: str) -> str | None:
        what = f"ENS resolution of {name}"
        try:
            address = await with_deadline(self._ens.address(name), self._timeout, what)
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(what, exc) from exc
        return str(address) if address else None

    async def close(self) -> None:
        try:
            await self._w3.provider.disconnect()
        except Exception:
            log.debug("ENS provider disconnect failed", exc_info=True)
