"""BRC-20 token protocol implementation.

BRC-20 operations are JSON inscriptions read by off-chain indexers:
- Mint: Mint tokens
- Transfer: Transfer tokens

Indexers match the exact JSON bytes, so records serialize compactly with
the fields in the order ``p, op, tick, amt``.

Ticker length is counted in Python ``str`` characters, i.e. Unicode code
points: ``"ordi"`` and ``"🐸🐸🐸🐸"`` are both valid 4-character tickers.

Reference: https://domo-2.gitbook.io/brc-20-experiment/
"""

import json
from dataclasses import dataclass
from typing import Union

from bitcoinutils.keys import PublicKey

from mcp_ordinals.config import DEFAULT_CONTENT_TYPE
from mcp_ordinals.envelope import Inscription
from mcp_ordinals.errors import TickerLengthError
from mcp_ordinals.protocols.base import Protocol

PROTOCOL = "brc-20"
TICKER_LENGTH = 4
OP_MINT = "mint"
OP_TRANSFER = "transfer"


@dataclass(frozen=True)
class BRC20Record(Protocol):
    """A single BRC-20 operation.

    ``op`` is free text at this layer; use :func:`mint` or :func:`transfer`
    for the operations indexers recognize. ``amt`` is an opaque decimal
    string and is not validated.
    """

    op: str
    tick: str
    amt: str
    p: str = PROTOCOL

    content_type = DEFAULT_CONTENT_TYPE

    def __post_init__(self):
        if len(self.tick) != TICKER_LENGTH:
            raise TickerLengthError(self.tick)

    def to_dict(self) -> dict:
        return {
            "p": self.p,
            "op": self.op,
            "tick": self.tick,
            "amt": self.amt,
        }

    def to_json(self) -> str:
        """Convert to BRC-20 JSON format."""
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False)

    def to_bytes(self) -> bytes:
        return self.to_json().encode('utf-8')


def new_record(operation: str, ticker: str, amount: str) -> BRC20Record:
    """Create a BRC-20 record.

    Raises:
        TickerLengthError: If ticker is not exactly 4 characters
    """
    return BRC20Record(op=operation, tick=ticker, amt=amount)


def mint(ticker: str, amount: str) -> BRC20Record:
    return new_record(OP_MINT, ticker, amount)


def transfer(ticker: str, amount: str) -> BRC20Record:
    return new_record(OP_TRANSFER, ticker, amount)


def brc20_inscription(
    internal_key: PublicKey,
    ticker: str,
    operation: str,
    amount: str,
) -> Inscription:
    """Build the inscription envelope for a BRC-20 operation."""
    return new_record(operation, ticker, amount).to_inscription(internal_key)


def mint_inscription(internal_key: PublicKey, ticker: str, amount: str) -> Inscription:
    return brc20_inscription(internal_key, ticker, OP_MINT, amount)


def transfer_inscription(internal_key: PublicKey, ticker: str, amount: str) -> Inscription:
    return brc20_inscription(internal_key, ticker, OP_TRANSFER, amount)


class BRC20Protocol:
    """BRC-20 protocol parser and helpers."""

    @staticmethod
    def parse(payload: Union[str, bytes]) -> BRC20Record:
        """Parse BRC-20 JSON into a record.

        Args:
            payload: BRC-20 JSON as text or UTF-8 bytes

        Returns:
            Parsed record

        Raises:
            ValueError: If not valid BRC-20 JSON
        """
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("BRC-20 payload must be a JSON object")

        if data.get("p") != PROTOCOL:
            raise ValueError(f"Not a BRC-20 inscription: p={data.get('p')}")

        missing = [name for name in ("op", "tick", "amt") if name not in data]
        if missing:
            raise ValueError(f"BRC-20 payload missing fields: {', '.join(missing)}")

        return new_record(str(data["op"]), str(data["tick"]), str(data["amt"]))
