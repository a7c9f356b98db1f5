"""Taproot signing for commit (key path) and reveal (script path) inputs.

The signer depends on a small capability interface, :class:`SigningBackend`,
rather than on a concrete key type. A backend signs a 32-byte digest with
BIP340 Schnorr and can produce its BIP341-tweaked counterpart.

Two spending modes are supported and dispatched once in :func:`sign_input`:

- :class:`KeyPath` signs the key-spend sighash with the tweaked key and
  writes ``[signature]``.
- :class:`ScriptPath` signs the script-spend sighash for the envelope leaf
  with the untweaked key and writes
  ``[signature, leaf script, control block]``.

Both modes hash over every previous output of the transaction (BIP341
``SIGHASH_DEFAULT``). The only field a signer writes is the witness of the
input it signs.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from bitcoinutils.keys import PrivateKey
from bitcoinutils.schnorr import schnorr_sign, schnorr_verify
from bitcoinutils.script import Script
from bitcoinutils.transactions import Transaction, TxWitnessInput
from bitcoinutils.utils import calculate_tweak, tweak_taproot_privkey

from mcp_ordinals.envelope import Inscription
from mcp_ordinals.errors import PrevoutMismatchError

logger = logging.getLogger(__name__)

KEY_SPEND_FLAG = 0
SCRIPT_SPEND_FLAG = 1


@dataclass(frozen=True)
class PrevOut:
    """An output being spent, as needed for Taproot signature hashing."""

    value: int
    script_pub_key: Script


class SigningBackend(ABC):
    """Schnorr signing capability required by the signer."""

    @abstractmethod
    def x_only_public_key(self) -> bytes:
        """32-byte x-only public key of this signer."""
        pass  # pragma: no cover

    @abstractmethod
    def sign_schnorr(self, digest: bytes) -> bytes:
        """Return a 64-byte BIP340 signature over a 32-byte digest."""
        pass  # pragma: no cover

    @abstractmethod
    def tap_tweak(self, merkle_root: Optional[bytes] = None) -> "SigningBackend":
        """Return the backend for the BIP341-tweaked key."""
        pass  # pragma: no cover


class PrivateKeyBackend(SigningBackend):
    """Signing backend over a bitcoinutils private key.

    Nonces use deterministic auxiliary randomness derived from the secret
    and the digest, so signing the same transaction twice yields the same
    signature.
    """

    def __init__(self, private_key: PrivateKey):
        self.private_key = private_key
        self._secret = private_key.to_bytes()
        self._x_only = bytes.fromhex(private_key.get_public_key().to_x_only_hex())

    @classmethod
    def from_wif(cls, wif: str) -> "PrivateKeyBackend":
        return cls(PrivateKey.from_wif(wif))

    @property
    def public_key(self):
        return self.private_key.get_public_key()

    def x_only_public_key(self) -> bytes:
        return self._x_only

    def sign_schnorr(self, digest: bytes) -> bytes:
        if len(digest) != 32:
            raise ValueError(f"Digest must be 32 bytes, got {len(digest)}")
        aux_rand = hashlib.sha256(self._secret + digest).digest()
        return schnorr_sign(digest, self._secret, aux_rand)

    def tap_tweak(self, merkle_root: Optional[bytes] = None) -> "PrivateKeyBackend":
        tweak = calculate_tweak(self.public_key, merkle_root)
        return PrivateKeyBackend(PrivateKey(b=tweak_taproot_privkey(self._secret, tweak)))


@dataclass(frozen=True)
class KeyPath:
    """Spend a Taproot output through its tweaked output key.

    ``merkle_root`` is the script tree root of the output being spent, or
    None for outputs committing to no scripts.
    """

    merkle_root: Optional[bytes] = None


@dataclass(frozen=True)
class ScriptPath:
    """Spend a Taproot output by revealing an inscription envelope leaf."""

    inscription: Inscription

    @property
    def script(self) -> Script:
        return self.inscription.script

    @property
    def control_block(self) -> bytes:
        return self.inscription.spend_info.control_block


SpendingMode = Union[KeyPath, ScriptPath]


def _check_input(tx: Transaction, prevouts: Sequence[PrevOut], input_index: int) -> None:
    if len(prevouts) != len(tx.inputs):
        raise PrevoutMismatchError(len(prevouts), len(tx.inputs))
    if not 0 <= input_index < len(tx.inputs):
        raise ValueError(f"Input index {input_index} out of range for {len(tx.inputs)} inputs")


def signature_hash(
    tx: Transaction,
    prevouts: Sequence[PrevOut],
    mode: SpendingMode,
    input_index: int = 0,
) -> bytes:
    """BIP341 signature hash (SIGHASH_DEFAULT) of one input under ``mode``."""
    _check_input(tx, prevouts, input_index)
    script_pubkeys = [prevout.script_pub_key for prevout in prevouts]
    amounts = [prevout.value for prevout in prevouts]

    if isinstance(mode, KeyPath):
        return tx.get_transaction_taproot_digest(
            txin_index=input_index,
            script_pubkeys=script_pubkeys,
            amounts=amounts,
            ext_flag=KEY_SPEND_FLAG,
        )
    if isinstance(mode, ScriptPath):
        return tx.get_transaction_taproot_digest(
            txin_index=input_index,
            script_pubkeys=script_pubkeys,
            amounts=amounts,
            ext_flag=SCRIPT_SPEND_FLAG,
            script=mode.script,
        )
    raise TypeError(f"Unknown spending mode: {mode!r}")


def _set_witness(tx: Transaction, input_index: int, stack: List[str]) -> None:
    while len(tx.witnesses) < len(tx.inputs):
        tx.witnesses.append(TxWitnessInput([]))
    tx.witnesses[input_index] = TxWitnessInput(stack)
    tx.has_segwit = True


def sign_input(
    tx: Transaction,
    prevouts: Sequence[PrevOut],
    backend: SigningBackend,
    mode: SpendingMode,
    input_index: int = 0,
) -> Transaction:
    """Sign one Taproot input and write its witness.

    Args:
        tx: Unsigned transaction; only ``tx.witnesses[input_index]`` is written
        prevouts: Every output spent by ``tx``, in input order
        backend: Untweaked signing key
        mode: KeyPath or ScriptPath
        input_index: Input to sign

    Returns:
        The same transaction, with the input's witness populated

    Raises:
        PrevoutMismatchError: If prevouts and inputs differ in number
        ValueError: If the input index is out of range, or the backend key is
            not the internal key of a script-path inscription
    """
    if isinstance(mode, ScriptPath):
        expected = mode.inscription.spend_info.internal_key_x_only
        if backend.x_only_public_key() != expected:
            raise ValueError(
                "Signing key does not match the inscription internal key "
                f"({backend.x_only_public_key().hex()} != {expected.hex()})"
            )

    digest = signature_hash(tx, prevouts, mode, input_index)

    if isinstance(mode, KeyPath):
        signature = backend.tap_tweak(mode.merkle_root).sign_schnorr(digest)
        stack = [signature.hex()]
    else:
        signature = backend.sign_schnorr(digest)
        stack = [signature.hex(), mode.script.to_hex(), mode.control_block.hex()]

    _set_witness(tx, input_index, stack)
    logger.debug(
        "Signed input %d via %s path (witness items: %d)",
        input_index, "key" if isinstance(mode, KeyPath) else "script", len(stack),
    )
    return tx


def sign_key_path(
    tx: Transaction,
    prevouts: Sequence[PrevOut],
    backend: SigningBackend,
    input_index: int = 0,
) -> Transaction:
    """Key-path sign an input spending a script-less P2TR output."""
    return sign_input(tx, prevouts, backend, KeyPath(), input_index)


def sign_script_path(
    tx: Transaction,
    prevouts: Sequence[PrevOut],
    backend: SigningBackend,
    inscription: Inscription,
    input_index: int = 0,
) -> Transaction:
    """Script-path sign an input spending an inscription commit output."""
    return sign_input(tx, prevouts, backend, ScriptPath(inscription), input_index)


def verify_input(
    tx: Transaction,
    prevouts: Sequence[PrevOut],
    mode: SpendingMode,
    input_index: int = 0,
) -> bool:
    """Check the Schnorr signature in an input's witness.

    Key-path witnesses are checked against the output key in the spent
    scriptPubKey. Script-path witnesses must carry the inscription's exact
    leaf script and control block, and are checked against the internal key.
    This does not execute the script.
    """
    if input_index >= len(tx.witnesses):
        return False
    stack = tx.witnesses[input_index].stack
    digest = signature_hash(tx, prevouts, mode, input_index)

    if isinstance(mode, KeyPath):
        if len(stack) != 1:
            return False
        pubkey = prevouts[input_index].script_pub_key.to_bytes()[2:]
    else:
        if len(stack) != 3:
            return False
        if stack[1] != mode.script.to_hex() or stack[2] != mode.control_block.hex():
            return False
        pubkey = mode.control_block[1:33]

    signature = bytes.fromhex(stack[0])
    if len(signature) != 64 or len(pubkey) != 32:
        return False
    return schnorr_verify(digest, pubkey, signature)
