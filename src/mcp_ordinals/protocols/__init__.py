"""Protocol payloads carried by inscriptions."""

from mcp_ordinals.protocols.base import Protocol
from mcp_ordinals.protocols.brc20 import (
    BRC20Protocol,
    BRC20Record,
    brc20_inscription,
    mint,
    mint_inscription,
    new_record,
    transfer,
    transfer_inscription,
)

__all__ = [
    "Protocol",
    "BRC20Protocol",
    "BRC20Record",
    "brc20_inscription",
    "mint",
    "mint_inscription",
    "new_record",
    "transfer",
    "transfer_inscription",
]
