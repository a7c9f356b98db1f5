"""Bitcoin Core node access for funding lookups and broadcast."""

from mcp_ordinals.node.interface import (
    NodeInterface,
    NodeInfo,
    UTXO,
    TransactionInfo,
    btc_kvb_to_sat_vb,
)
from mcp_ordinals.node.cli import BitcoinCLI
from mcp_ordinals.node.rpc import BitcoinRPC

__all__ = [
    "NodeInterface",
    "NodeInfo",
    "UTXO",
    "TransactionInfo",
    "btc_kvb_to_sat_vb",
    "BitcoinCLI",
    "BitcoinRPC",
]
