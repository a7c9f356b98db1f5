"""Commit and reveal transaction assembly.

The commit transaction spends one funding output into two P2TR outputs:

- vout 0 commits to the inscription envelope and holds enough value to pay
  for the reveal (dust floor + estimated reveal fee);
- vout 1 returns the change to the signer's plain key-path address.

The reveal transaction spends commit vout 0 through the envelope leaf and
pays the dust floor back to the signer.

Commit fees use a two-phase estimate. A provisional transaction with zero
change is given a realistic witness, its vsize is measured, and only then
is the final change value fixed.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from bitcoinutils.transactions import Transaction, TxInput, TxOutput, TxWitnessInput

from mcp_ordinals.config import DEFAULT_CONFIG, Config
from mcp_ordinals.envelope import SpendInfo
from mcp_ordinals.errors import InsufficientFundsError, ValueOverflowError
from mcp_ordinals.signer import PrevOut, SigningBackend, sign_key_path

logger = logging.getLogger(__name__)

INSCRIPTION_VOUT = 0
CHANGE_VOUT = 1

# nSequence enabling replace-by-fee without a relative lock time
RBF_NO_LOCKTIME_SEQUENCE = 0xFFFFFFFD

TX_VERSION = (2).to_bytes(4, "little")

MAX_MONEY = 21_000_000 * 100_000_000

SCHNORR_SIGNATURE_SIZE = 64


@dataclass(frozen=True)
class Unspent:
    """A confirmed output available to fund a commit transaction."""

    txid: str
    vout: int
    value: int  # sats


def calculate_fee_sats(fee_rate: float, vsize: int) -> int:
    """Satoshis paid by ``vsize`` vbytes at ``fee_rate`` sat/vB.

    Rounded up, so a commit or reveal never pays below the requested rate.
    """
    return math.ceil(fee_rate * vsize)


def inscription_output_value(fee_rate: float, config: Optional[Config] = None) -> int:
    """Value of the commit output that the reveal will spend.

    Covers the dust-floor reveal output plus the estimated reveal fee.
    """
    config = config or DEFAULT_CONFIG
    return config.dust_floor_sats + calculate_fee_sats(
        fee_rate, config.reveal_tx_size_estimate_bytes
    )


def _check_value(value: int, what: str) -> int:
    if value > MAX_MONEY:
        raise ValueOverflowError(f"{what} of {value} sats exceeds MAX_MONEY")
    return value


def _tx_input(txid: str, vout: int) -> TxInput:
    return TxInput(txid, vout, sequence=RBF_NO_LOCKTIME_SEQUENCE.to_bytes(4, "little"))


def commit_prevouts(unspent: Unspent, spend_info: SpendInfo) -> List[PrevOut]:
    """Previous outputs of a commit transaction.

    The funding output is assumed to be the signer's own key-path P2TR
    output.
    """
    return [PrevOut(value=unspent.value, script_pub_key=spend_info.key_path_script_pub_key())]


def reveal_prevouts(commit_tx: Transaction) -> List[PrevOut]:
    """Previous outputs of a reveal transaction spending ``commit_tx``."""
    output = commit_tx.outputs[INSCRIPTION_VOUT]
    return [PrevOut(value=output.amount, script_pub_key=output.script_pubkey)]


def _commit_tx(unspent: Unspent, spend_info: SpendInfo, inscription_value: int, change: int) -> Transaction:
    outputs = [
        TxOutput(inscription_value, spend_info.script_pub_key()),
        TxOutput(change, spend_info.key_path_script_pub_key()),
    ]
    return Transaction([_tx_input(unspent.txid, unspent.vout)], outputs, version=TX_VERSION, has_segwit=True)


def _provisional_vsize(
    unspent: Unspent,
    spend_info: SpendInfo,
    inscription_value: int,
    backend: Optional[SigningBackend],
) -> int:
    tx = _commit_tx(unspent, spend_info, inscription_value, 0)
    if backend is not None:
        sign_key_path(tx, commit_prevouts(unspent, spend_info), backend)
    else:
        tx.witnesses.append(TxWitnessInput([bytes(SCHNORR_SIGNATURE_SIZE).hex()]))
    return tx.get_vsize()


def build_commit(
    unspent: Unspent,
    spend_info: SpendInfo,
    fee_rate: float,
    *,
    config: Optional[Config] = None,
    backend: Optional[SigningBackend] = None,
) -> Transaction:
    """Build the unsigned commit transaction.

    Args:
        unspent: Funding output, owned by the spend info's internal key
        spend_info: Taproot commitment of the inscription envelope
        fee_rate: Fee rate in sat/vB, applied to both commit and reveal
        config: Dust floor and reveal size policy (defaults when omitted)
        backend: Signer used for a throwaway signature while measuring size;
            a 64-byte placeholder witness is used when omitted

    Returns:
        Unsigned transaction with one input and outputs
        [inscription commitment, change]

    Raises:
        ValueError: If fee_rate is negative
        InsufficientFundsError: If the funding output cannot cover the
            commitment output plus the commit fee
        ValueOverflowError: If an output value exceeds MAX_MONEY
    """
    config = config or DEFAULT_CONFIG
    if fee_rate < 0:
        raise ValueError(f"Fee rate must be non-negative, got {fee_rate}")

    _check_value(unspent.value, "Unspent value")
    inscription_value = _check_value(
        inscription_output_value(fee_rate, config), "Inscription output"
    )

    vsize = _provisional_vsize(unspent, spend_info, inscription_value, backend)
    fee = _check_value(calculate_fee_sats(fee_rate, vsize), "Commit fee")

    required = inscription_value + fee
    change = unspent.value - required
    if change < 0:
        raise InsufficientFundsError(unspent.value, required)
    if change < config.dust_floor_sats:
        logger.warning(
            "Commit change of %d sats is below the %d sat dust floor",
            change, config.dust_floor_sats,
        )

    logger.debug(
        "Commit: vsize=%d fee=%d inscription=%d change=%d",
        vsize, fee, inscription_value, change,
    )
    return _commit_tx(unspent, spend_info, inscription_value, change)


def build_reveal(
    commit_tx: Transaction,
    spend_info: SpendInfo,
    *,
    config: Optional[Config] = None,
) -> Transaction:
    """Build the unsigned reveal transaction spending the commitment output.

    The single output pays exactly the dust floor to the signer's key-path
    address; everything above it in the commitment output is the reveal fee.

    Raises:
        ValueError: If the commitment output does not commit to ``spend_info``
        InsufficientFundsError: If the commitment output is below the dust floor
    """
    config = config or DEFAULT_CONFIG
    if len(commit_tx.outputs) <= INSCRIPTION_VOUT:
        raise ValueError("Commit transaction has no inscription output")

    committed = commit_tx.outputs[INSCRIPTION_VOUT]
    if committed.script_pubkey.to_bytes() != spend_info.script_pub_key().to_bytes():
        raise ValueError(
            f"Commit output {INSCRIPTION_VOUT} does not commit to this inscription"
        )
    if committed.amount < config.dust_floor_sats:
        raise InsufficientFundsError(committed.amount, config.dust_floor_sats)

    reveal = Transaction(
        [_tx_input(commit_tx.get_txid(), INSCRIPTION_VOUT)],
        [TxOutput(config.dust_floor_sats, spend_info.key_path_script_pub_key())],
        version=TX_VERSION,
        has_segwit=True,
    )
    logger.debug(
        "Reveal: spends %s:%d (%d sats), fee=%d",
        commit_tx.get_txid(), INSCRIPTION_VOUT, committed.amount,
        committed.amount - config.dust_floor_sats,
    )
    return reveal
