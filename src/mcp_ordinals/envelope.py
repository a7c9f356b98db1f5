"""Ordinal inscription envelopes and their Taproot commitments.

The envelope is a Taproot leaf script that carries MIME-typed data inside a
branch a script interpreter never executes:

    OP_FALSE OP_IF
      "ord"
      0x01            (1-byte push holding 1: content-type tag)
      <mime>
      <>              (zero-length push: body separator)
      <chunk> ...     (data, at most 520 bytes per push)
    OP_ENDIF

Indexers parse this layout byte for byte, including the asymmetric
``01 01`` / ``00`` separators, so it must not be normalized.

The same envelope serves both stages of an inscription. At commit time its
merkle root is folded into the output key. At reveal time the script and
control block go into the witness of the spending input.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from bitcoinutils.keys import PublicKey
from bitcoinutils.script import Script
from bitcoinutils.utils import (
    ControlBlock,
    get_tag_hashed_merkle_root,
    prepend_compact_size,
    tagged_hash,
    tapleaf_tagged_hash,
)

from mcp_ordinals.primitives import (
    MAX_SCRIPT_ELEMENT_SIZE,
    OP_0,
    OP_ENDIF,
    OP_IF,
    read_op,
)

logger = logging.getLogger(__name__)

ORD_MARKER = b"ord"
CONTENT_TYPE_TAG = b"\x01"
BODY_SEPARATOR = b""
TAPSCRIPT_LEAF_VERSION = 0xC0
OP_CHECKSIG = 0xAC


@dataclass(frozen=True)
class SpendInfo:
    """Taproot spend data for a single-leaf tree over an envelope script."""

    internal_key: PublicKey
    leaf_script: Script
    leaf_hash: bytes
    merkle_root: bytes
    output_key: bytes
    output_key_parity: bool
    control_block: bytes

    @property
    def internal_key_x_only(self) -> bytes:
        return bytes.fromhex(self.internal_key.to_x_only_hex())

    def script_pub_key(self) -> Script:
        """P2TR output script committing to the envelope: OP_1 <output_key>."""
        return Script(["OP_1", self.output_key.hex()])

    def key_path_script_pub_key(self) -> Script:
        """P2TR output script of the bare internal key (no script tree)."""
        return self.internal_key.get_taproot_address().to_script_pub_key()

    def address(self) -> str:
        """Bech32m address of the committing output on the configured network."""
        return self.internal_key.get_taproot_address([[self.leaf_script]]).to_string()


def chunk_data(data: bytes, size: int = MAX_SCRIPT_ELEMENT_SIZE) -> List[bytes]:
    """Split data into consecutive pushes of at most ``size`` bytes.

    Empty data yields no chunks at all.
    """
    return [data[i:i + size] for i in range(0, len(data), size)]


def tapleaf_hash(script: bytes, leaf_version: int = TAPSCRIPT_LEAF_VERSION) -> bytes:
    """BIP341 TapLeaf hash of raw leaf script bytes."""
    return tagged_hash(bytes([leaf_version]) + prepend_compact_size(script), "TapLeaf")


def envelope_script(mime: bytes, chunks: List[bytes]) -> Script:
    """Lay out the envelope tokens; bitcoinutils picks the minimal push for each."""
    return Script(
        ["OP_0", "OP_IF", ORD_MARKER.hex(), CONTENT_TYPE_TAG.hex(), mime.hex() or "OP_0", "OP_0"]
        + [chunk.hex() for chunk in chunks]
        + ["OP_ENDIF"]
    )


def _commit(script: Script, internal_key: PublicKey) -> SpendInfo:
    tree = [[script]]

    try:
        leaf_hash = tapleaf_tagged_hash(script)
        merkle_root = get_tag_hashed_merkle_root(tree)
        address = internal_key.get_taproot_address(tree)
        output_key = bytes.fromhex(address.to_witness_program())
        parity = bool(address.is_odd())
        control_block = bytes.fromhex(
            ControlBlock(internal_key, tree, 0, is_odd=parity).to_hex()
        )
    except Exception as exc:
        raise RuntimeError(f"Inscription spend info must always build: {exc}") from exc

    expected_cb = bytes([TAPSCRIPT_LEAF_VERSION | int(parity)]) + bytes.fromhex(
        internal_key.to_x_only_hex()
    )
    if control_block != expected_cb or len(output_key) != 32:
        raise RuntimeError("Taproot commitment produced an inconsistent control block")

    return SpendInfo(
        internal_key=internal_key,
        leaf_script=script,
        leaf_hash=leaf_hash,
        merkle_root=merkle_root,
        output_key=output_key,
        output_key_parity=parity,
        control_block=control_block,
    )


def build_envelope(
    mime: bytes,
    data: bytes,
    internal_key: PublicKey,
) -> Tuple[Script, SpendInfo]:
    """Build an inscription envelope and its single-leaf Taproot commitment.

    Args:
        mime: Content type bytes (may be empty)
        data: Inscription body (may be empty; split into 520-byte pushes)
        internal_key: Key the Taproot output commits to

    Returns:
        Tuple of (leaf script, spend info)

    Raises:
        RuntimeError: If the Taproot commitment cannot be constructed
    """
    chunks = chunk_data(bytes(data))
    script = envelope_script(bytes(mime), chunks)
    spend_info = _commit(script, internal_key)

    logger.debug(
        "Built envelope: mime=%d bytes, data=%d bytes in %d chunks, script=%d bytes",
        len(mime), len(data), len(chunks), len(script.to_bytes()),
    )
    return script, spend_info


class Inscription:
    """An envelope bound to one internal key, built once and shared read-only.

    The commit output and the reveal witness must both come from this single
    object; recomputing spend info with different inputs in between would
    break the link between the committed merkle root and the control block.
    """

    def __init__(self, mime: bytes, data: bytes, internal_key: PublicKey):
        self.mime = bytes(mime)
        self.data = bytes(data)
        self.script, self.spend_info = build_envelope(self.mime, self.data, internal_key)

    @property
    def internal_key(self) -> PublicKey:
        return self.spend_info.internal_key

    def __repr__(self) -> str:
        return (
            f"Inscription(mime={self.mime!r}, data={len(self.data)} bytes, "
            f"output_key={self.spend_info.output_key.hex()})"
        )


@dataclass
class DecodedInscription:
    """Content recovered from an envelope leaf script."""

    mime: bytes
    data: bytes
    chunks: int

    @property
    def content_type(self) -> str:
        return self.mime.decode("utf-8", errors="replace")


def _expect_push(script: bytes, pos: int, what: str) -> Tuple[bytes, int]:
    _, pushed, pos = read_op(script, pos)
    if pushed is None:
        raise ValueError(f"Expected {what} push at offset {pos - 1}")
    return pushed, pos


def decode_inscription(script: bytes) -> DecodedInscription:
    """Parse an envelope leaf script back into its content type and body.

    A leading ``<32-byte key> OP_CHECKSIG`` spending condition is accepted
    and skipped.

    Args:
        script: Raw leaf script bytes

    Returns:
        Decoded inscription

    Raises:
        ValueError: If the script is not a well-formed envelope
    """
    pos = 0
    if len(script) >= 34 and script[0] == 0x20 and script[33] == OP_CHECKSIG:
        pos = 34

    opcode, pushed, pos = read_op(script, pos)
    if opcode != OP_0:
        raise ValueError(f"Envelope must start with OP_FALSE, got opcode {opcode:#x}")
    opcode, pushed, pos = read_op(script, pos)
    if opcode != OP_IF:
        raise ValueError(f"Expected OP_IF after OP_FALSE, got opcode {opcode:#x}")

    marker, pos = _expect_push(script, pos, "marker")
    if marker != ORD_MARKER:
        raise ValueError(f"Invalid envelope marker: expected {ORD_MARKER!r}, got {marker!r}")

    tag, pos = _expect_push(script, pos, "content-type tag")
    if tag != CONTENT_TYPE_TAG:
        raise ValueError(f"Invalid content-type tag: {tag.hex() or 'empty'}")

    mime, pos = _expect_push(script, pos, "content type")

    separator, pos = _expect_push(script, pos, "body separator")
    if separator != BODY_SEPARATOR:
        raise ValueError(f"Invalid body separator: {separator.hex()}")

    body: List[bytes] = []
    while True:
        opcode, pushed, pos = read_op(script, pos)
        if pushed is None:
            if opcode != OP_ENDIF:
                raise ValueError(f"Unexpected opcode {opcode:#x} in envelope body")
            break
        if len(pushed) > MAX_SCRIPT_ELEMENT_SIZE:
            raise ValueError(
                f"Body push of {len(pushed)} bytes exceeds {MAX_SCRIPT_ELEMENT_SIZE}"
            )
        body.append(pushed)

    if pos != len(script):
        raise ValueError(f"Trailing bytes after OP_ENDIF: {len(script) - pos}")

    return DecodedInscription(mime=mime, data=b"".join(body), chunks=len(body))


def parse_internal_key(key_hex: str) -> PublicKey:
    """Parse a compressed (33-byte) or x-only (32-byte) public key from hex.

    X-only keys are lifted to the even-y point as BIP340 prescribes.

    Raises:
        ValueError: If the hex is malformed or has the wrong length
    """
    try:
        raw = bytes.fromhex(key_hex)
    except ValueError:
        raise ValueError(f"Invalid hex string for public key: {key_hex!r}")

    if len(raw) == 32:
        raw = b"\x02" + raw
    if len(raw) != 33 or raw[0] not in (2, 3):
        raise ValueError(f"Public key must be 32-byte x-only or 33-byte compressed, got {len(raw)} bytes")
    return PublicKey(raw.hex())
