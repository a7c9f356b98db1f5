"""Abstract interface for Bitcoin Core communication.

Concrete nodes only provide a transport (:meth:`NodeInterface._call`); the
RPC methods an inscription needs, and the parsing of their results, live
here so both transports behave identically.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from mcp_ordinals.transactions import Unspent

logger = logging.getLogger(__name__)

SATS_PER_BTC = 100_000_000

# estimatesmartfee reports BTC/kvB
BTC_PER_KVB_TO_SAT_PER_VB = SATS_PER_BTC / 1000

FALLBACK_FEE_RATE_BTC_KVB = 0.0001


@dataclass
class NodeInfo:
    """Bitcoin node information."""
    connected: bool
    network: str
    block_height: int
    version: int
    errors: str = ""


@dataclass
class UTXO:
    """Unspent transaction output as reported by the node wallet."""
    txid: str
    vout: int
    amount: float  # BTC
    confirmations: int
    script_pubkey: str

    @property
    def value_sats(self) -> int:
        return int(round(self.amount * SATS_PER_BTC))

    def to_unspent(self) -> Unspent:
        """Funding output for a commit transaction."""
        return Unspent(txid=self.txid, vout=self.vout, value=self.value_sats)


@dataclass
class TransactionInfo:
    """Transaction information."""
    txid: str
    blockhash: Optional[str]
    confirmations: int
    time: Optional[int]
    hex: str
    decoded: dict


def btc_kvb_to_sat_vb(rate: float) -> float:
    return rate * BTC_PER_KVB_TO_SAT_PER_VB


class NodeInterface(ABC):
    """Bitcoin Core access used for funding lookups and broadcast."""

    @abstractmethod
    async def _call(self, method: str, *args: Any) -> Any:
        """Invoke a Bitcoin Core RPC method, raising RuntimeError on failure."""
        pass  # pragma: no cover

    async def get_info(self) -> NodeInfo:
        """Get node status and network info.

        Never raises; an unreachable node is reported as disconnected.
        """
        try:
            chain_info = await self._call("getblockchaininfo")
            network_info = await self._call("getnetworkinfo")
        except (RuntimeError, OSError) as e:
            logger.warning("Node unreachable: %s", e)
            return NodeInfo(
                connected=False,
                network="unknown",
                block_height=0,
                version=0,
                errors=str(e),
            )

        return NodeInfo(
            connected=True,
            network=chain_info["chain"],
            block_height=chain_info["blocks"],
            version=network_info["version"],
            errors=chain_info.get("warnings", "") or "",
        )

    async def list_utxos(
        self,
        min_confirmations: int = 1,
        min_amount: float = 0,
    ) -> list[UTXO]:
        """List available UTXOs holding at least ``min_amount`` BTC."""
        result = await self._call("listunspent", min_confirmations)

        return [
            UTXO(
                txid=u["txid"],
                vout=u["vout"],
                amount=u["amount"],
                confirmations=u["confirmations"],
                script_pubkey=u["scriptPubKey"],
            )
            for u in result or []
            if u["amount"] >= min_amount
        ]

    async def get_transaction(self, txid: str) -> TransactionInfo:
        """Get transaction details, falling back to the wallet for unindexed txs."""
        try:
            result = await self._call("getrawtransaction", txid, True)
        except RuntimeError:
            result = await self._call("gettransaction", txid)

        return TransactionInfo(
            txid=result["txid"],
            blockhash=result.get("blockhash"),
            confirmations=result.get("confirmations", 0),
            time=result.get("time"),
            hex=result["hex"],
            decoded=result,
        )

    async def send_raw_transaction(
        self,
        tx_hex: str,
        max_fee_rate: Optional[float] = None,
    ) -> str:
        """Broadcast signed transaction, return txid."""
        if max_fee_rate:
            return await self._call("sendrawtransaction", tx_hex, max_fee_rate)
        return await self._call("sendrawtransaction", tx_hex)

    async def test_mempool_accept(self, tx_hex: str) -> dict[str, Any]:
        """Test if transaction would be accepted (dry run)."""
        result = await self._call("testmempoolaccept", [tx_hex])
        return result[0] if result else {"allowed": False}

    async def estimate_fee(self, conf_target: int = 6) -> float:
        """Estimate fee rate in BTC/kvB."""
        result = await self._call("estimatesmartfee", conf_target)
        return (result or {}).get("feerate", FALLBACK_FEE_RATE_BTC_KVB)
