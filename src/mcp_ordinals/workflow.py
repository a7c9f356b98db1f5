"""Commit/reveal inscription workflow.

Ties the builders and the signer together in the only order that produces
a valid pair: build commit, sign commit, build reveal from the signed
commit, sign reveal. Broadcasting is a separate async step so the core
stays free of I/O.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from bitcoinutils.transactions import Transaction

from mcp_ordinals.config import DEFAULT_CONFIG, Config
from mcp_ordinals.envelope import Inscription
from mcp_ordinals.errors import BroadcastError
from mcp_ordinals.node.interface import NodeInterface
from mcp_ordinals.signer import SigningBackend, sign_key_path, sign_script_path
from mcp_ordinals.transactions import (
    INSCRIPTION_VOUT,
    Unspent,
    build_commit,
    build_reveal,
    calculate_fee_sats,
    commit_prevouts,
    reveal_prevouts,
)

logger = logging.getLogger(__name__)


@dataclass
class PreparedInscription:
    """A signed commit/reveal pair ready for broadcast."""

    inscription: Inscription
    commit_tx: Transaction
    reveal_tx: Transaction
    fee_rate: float
    commit_fee_sats: int
    inscription_value: int

    @property
    def commit_hex(self) -> str:
        return self.commit_tx.serialize()

    @property
    def reveal_hex(self) -> str:
        return self.reveal_tx.serialize()

    @property
    def commit_txid(self) -> str:
        return self.commit_tx.get_txid()

    @property
    def reveal_txid(self) -> str:
        return self.reveal_tx.get_txid()

    @property
    def commit_vsize(self) -> int:
        return self.commit_tx.get_vsize()

    @property
    def reveal_vsize(self) -> int:
        return self.reveal_tx.get_vsize()

    @property
    def reveal_fee_sats(self) -> int:
        return self.inscription_value - self.reveal_tx.outputs[0].amount

    def summary(self) -> dict[str, Any]:
        return {
            "content_type": self.inscription.mime.decode("utf-8", errors="replace"),
            "payload_length": len(self.inscription.data),
            "inscription_address": self.inscription.spend_info.address(),
            "fee_rate_sat_vb": self.fee_rate,
            "commit": {
                "txid": self.commit_txid,
                "vsize": self.commit_vsize,
                "fee_sats": self.commit_fee_sats,
                "inscription_value": self.inscription_value,
                "change": self.commit_tx.outputs[1].amount,
            },
            "reveal": {
                "txid": self.reveal_txid,
                "vsize": self.reveal_vsize,
                "fee_sats": self.reveal_fee_sats,
            },
        }


def prepare_inscription(
    inscription: Inscription,
    unspent: Unspent,
    backend: SigningBackend,
    fee_rate: float,
    config: Optional[Config] = None,
) -> PreparedInscription:
    """Build and sign the commit and reveal transactions for an inscription.

    Args:
        inscription: Envelope committed to the backend's public key
        unspent: Funding output paying to the backend's key-path address
        backend: Signing key
        fee_rate: Fee rate in sat/vB for both transactions
        config: Dust floor and reveal size policy

    Returns:
        The signed pair with fee details

    Raises:
        InsufficientFundsError: If the funding output is too small
        ValueError: If the backend key is not the inscription's internal key
    """
    config = config or DEFAULT_CONFIG
    spend_info = inscription.spend_info

    commit_tx = build_commit(unspent, spend_info, fee_rate, config=config, backend=backend)
    sign_key_path(commit_tx, commit_prevouts(unspent, spend_info), backend)

    reveal_tx = build_reveal(commit_tx, spend_info, config=config)
    sign_script_path(reveal_tx, reveal_prevouts(commit_tx), backend, inscription)

    inscription_value = commit_tx.outputs[INSCRIPTION_VOUT].amount
    commit_fee = unspent.value - sum(output.amount for output in commit_tx.outputs)

    prepared = PreparedInscription(
        inscription=inscription,
        commit_tx=commit_tx,
        reveal_tx=reveal_tx,
        fee_rate=fee_rate,
        commit_fee_sats=commit_fee,
        inscription_value=inscription_value,
    )
    # Final fee must not fall short of the rate applied to the signed size
    if commit_fee < calculate_fee_sats(fee_rate, prepared.commit_vsize):
        raise RuntimeError(
            f"Commit fee {commit_fee} below {fee_rate} sat/vB for "
            f"{prepared.commit_vsize} vB"
        )

    logger.debug(
        "Prepared inscription: commit %s (%d vB), reveal %s (%d vB)",
        prepared.commit_txid, prepared.commit_vsize,
        prepared.reveal_txid, prepared.reveal_vsize,
    )
    return prepared


async def _send(node: NodeInterface, stage: str, tx_hex: str) -> str:
    try:
        txid = await node.send_raw_transaction(tx_hex)
    except RuntimeError as e:
        raise BroadcastError(stage, str(e)) from e
    logger.info("Broadcast %s transaction %s", stage, txid)
    return txid


async def broadcast_raw_pair(
    node: NodeInterface,
    commit_hex: str,
    reveal_hex: str,
    dry_run: bool = True,
) -> dict[str, Any]:
    """Broadcast a signed commit/reveal pair, commit first.

    In dry-run mode only the commit is checked with ``testmempoolaccept``;
    the reveal spends an output the node has not seen yet.

    Raises:
        BroadcastError: If the node rejects either transaction
    """
    if dry_run:
        try:
            result = await node.test_mempool_accept(commit_hex)
        except RuntimeError as e:
            raise BroadcastError("commit", str(e)) from e
        return {
            "dry_run": True,
            "commit": result,
            "would_broadcast": bool(result.get("allowed")),
        }

    commit_txid = await _send(node, "commit", commit_hex)
    try:
        reveal_txid = await _send(node, "reveal", reveal_hex)
    except BroadcastError as e:
        e.txid = commit_txid
        raise

    return {
        "dry_run": False,
        "commit_txid": commit_txid,
        "reveal_txid": reveal_txid,
    }


async def broadcast_inscription(
    node: NodeInterface,
    prepared: PreparedInscription,
    dry_run: bool = True,
) -> dict[str, Any]:
    """Broadcast a prepared inscription. See :func:`broadcast_raw_pair`."""
    return await broadcast_raw_pair(node, prepared.commit_hex, prepared.reveal_hex, dry_run)
