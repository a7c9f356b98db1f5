"""MCP server for ordinal inscriptions and BRC-20 operations.

This server exposes tools for building inscription envelopes, creating and
parsing BRC-20 payloads, preparing signed commit/reveal transaction pairs,
and talking to a Bitcoin Core node for funding lookups and broadcast.
"""

import functools
import inspect
import logging
from pathlib import Path
from typing import Optional

from bitcoinutils.setup import setup
from mcp.server.fastmcp import FastMCP

from mcp_ordinals.config import Config, ConnectionMethod, load_config
from mcp_ordinals.envelope import Inscription, decode_inscription, parse_internal_key
from mcp_ordinals.errors import BroadcastError
from mcp_ordinals.node.cli import BitcoinCLI
from mcp_ordinals.node.interface import NodeInterface, btc_kvb_to_sat_vb
from mcp_ordinals.node.rpc import BitcoinRPC
from mcp_ordinals.protocols.brc20 import BRC20Protocol, brc20_inscription, mint, transfer
from mcp_ordinals.signer import PrivateKeyBackend
from mcp_ordinals.transactions import Unspent
from mcp_ordinals.workflow import broadcast_raw_pair, prepare_inscription

logger = logging.getLogger(__name__)

CONFIG_PATHS = [
    Path("mcp-ordinals.toml"),
    Path.home() / ".config" / "mcp-ordinals" / "config.toml",
]


def _tool_errors(fn):
    """Report caller mistakes (bad input, insufficient funds) as tool results."""
    if inspect.iscoroutinefunction(fn):
        @functools.wraps(fn)
        async def async_wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except (ValueError, ArithmeticError) as e:
                return {"error": str(e)}
        return async_wrapper

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (ValueError, ArithmeticError) as e:
            return {"error": str(e)}
    return wrapper


def _decode_content(content: str, encoding: str) -> bytes:
    if encoding == "hex":
        try:
            return bytes.fromhex(content)
        except ValueError:
            raise ValueError(f"Invalid hex string: {content!r}")
    return content.encode(encoding)


def _inscription_result(inscription: Inscription) -> dict:
    spend_info = inscription.spend_info
    return {
        "content_type": inscription.mime.decode("utf-8", errors="replace"),
        "content_size": len(inscription.data),
        "script_hex": inscription.script.to_hex(),
        "script_size": len(inscription.script.to_bytes()),
        "leaf_hash": spend_info.leaf_hash.hex(),
        "output_key": spend_info.output_key.hex(),
        "control_block": spend_info.control_block.hex(),
        "commit_address": spend_info.address(),
    }


def create_server(config: Optional[Config] = None) -> FastMCP:
    """Create and configure the MCP server with all tools.

    Args:
        config: Optional configuration. If not provided, uses defaults.

    Returns:
        Configured FastMCP server instance.
    """
    if config is None:
        config = Config()

    # Address rendering in bitcoinutils is process-global
    setup(config.bitcoinutils_network)

    mcp = FastMCP("mcp-ordinals")

    mcp._config = config
    mcp._node: Optional[NodeInterface] = None

    def get_node() -> NodeInterface:
        """Get or create the node interface."""
        if mcp._node is None:
            if config.connection_method == ConnectionMethod.CLI:
                mcp._node = BitcoinCLI(config)
            else:
                mcp._node = BitcoinRPC(config)
        return mcp._node

    # =========================================================================
    # Inscription Envelopes (offline)
    # =========================================================================

    @mcp.tool()
    @_tool_errors
    def build_inscription_envelope(
        content: str,
        internal_key_hex: str,
        content_type: str = config.content_type,
        encoding: str = "utf-8",
    ) -> dict:
        """Build an ordinal inscription envelope and its Taproot commitment.

        Args:
            content: Inscription body
            internal_key_hex: Compressed or x-only public key the commit
                output is locked to
            content_type: MIME type of the body
            encoding: Content encoding ('utf-8' or 'hex')

        Returns:
            Dictionary with the leaf script, control block and commit address.
        """
        data = _decode_content(content, encoding)
        if len(data) > config.max_data_size:
            raise ValueError(
                f"Content of {len(data)} bytes exceeds max_data_size ({config.max_data_size})"
            )

        key = parse_internal_key(internal_key_hex)
        inscription = Inscription(content_type.encode("utf-8"), data, key)
        return _inscription_result(inscription)

    @mcp.tool()
    @_tool_errors
    def decode_inscription_script(script_hex: str) -> dict:
        """Parse an inscription envelope leaf script.

        Args:
            script_hex: Leaf script as hex string

        Returns:
            Dictionary with content type and body.
        """
        try:
            script = bytes.fromhex(script_hex)
        except ValueError:
            raise ValueError(f"Invalid hex string: {script_hex!r}")

        decoded = decode_inscription(script)
        result = {
            "content_type": decoded.content_type,
            "content_hex": decoded.data.hex(),
            "content_size": len(decoded.data),
            "chunks": decoded.chunks,
        }
        try:
            result["content_utf8"] = decoded.data.decode("utf-8")
        except UnicodeDecodeError:
            result["content_utf8"] = None
        return result

    # =========================================================================
    # BRC-20
    # =========================================================================

    @mcp.tool()
    @_tool_errors
    def create_brc20_mint(tick: str, amount: str, internal_key_hex: str) -> dict:
        """Create a BRC-20 mint inscription.

        Args:
            tick: Token ticker (exactly 4 characters)
            amount: Amount to mint, as a decimal string
            internal_key_hex: Public key the commit output is locked to

        Returns:
            Dictionary with the JSON payload and the envelope.
        """
        record = mint(tick, amount)
        inscription = record.to_inscription(parse_internal_key(internal_key_hex))
        return {"operation": record.op, "json": record.to_json(), **_inscription_result(inscription)}

    @mcp.tool()
    @_tool_errors
    def create_brc20_transfer(tick: str, amount: str, internal_key_hex: str) -> dict:
        """Create a BRC-20 transfer inscription.

        Args:
            tick: Token ticker (exactly 4 characters)
            amount: Amount to transfer, as a decimal string
            internal_key_hex: Public key the commit output is locked to

        Returns:
            Dictionary with the JSON payload and the envelope.
        """
        record = transfer(tick, amount)
        inscription = record.to_inscription(parse_internal_key(internal_key_hex))
        return {"operation": record.op, "json": record.to_json(), **_inscription_result(inscription)}

    @mcp.tool()
    @_tool_errors
    def parse_brc20(json_str: str) -> dict:
        """Parse and validate a BRC-20 JSON payload."""
        record = BRC20Protocol.parse(json_str)
        return {"valid": True, **record.to_dict()}

    # =========================================================================
    # Commit / Reveal
    # =========================================================================

    @mcp.tool()
    @_tool_errors
    def prepare_brc20_inscription(
        private_key_wif: str,
        txid: str,
        vout: int,
        value: int,
        op: str,
        tick: str,
        amount: str,
        fee_rate: float = config.default_fee_rate,
    ) -> dict:
        """Build and sign the commit and reveal transactions for a BRC-20 operation.

        The funding output must pay to the key-path Taproot address of the
        private key. Nothing is broadcast.

        Args:
            private_key_wif: Signing key (WIF)
            txid: Funding output transaction ID
            vout: Funding output index
            value: Funding output value in sats
            op: BRC-20 operation ('mint' or 'transfer')
            tick: Token ticker (exactly 4 characters)
            amount: Amount, as a decimal string
            fee_rate: Fee rate in sat/vB

        Returns:
            Dictionary with signed commit/reveal hex and a fee summary.
        """
        backend = PrivateKeyBackend.from_wif(private_key_wif)
        inscription = brc20_inscription(backend.public_key, tick, op, amount)
        prepared = prepare_inscription(
            inscription,
            Unspent(txid=txid, vout=vout, value=value),
            backend,
            fee_rate,
            config,
        )
        return {
            "commit_hex": prepared.commit_hex,
            "reveal_hex": prepared.reveal_hex,
            "summary": prepared.summary(),
        }

    # =========================================================================
    # Bitcoin Core Interface
    # =========================================================================

    @mcp.tool()
    async def get_node_info() -> dict:
        """Check connection and network status.

        Returns:
            Dictionary with node information including connection status,
            network, block height, and version.
        """
        node = get_node()
        info = await node.get_info()
        return {
            "connected": info.connected,
            "network": info.network,
            "block_height": info.block_height,
            "version": info.version,
            "errors": info.errors if info.errors else None,
        }

    @mcp.tool()
    async def list_utxos(
        min_confirmations: int = 1,
        min_amount: float = 0.0,
    ) -> dict:
        """List available UTXOs for funding commit transactions.

        Args:
            min_confirmations: Minimum confirmations required (default: 1)
            min_amount: Minimum UTXO amount in BTC (default: 0.0)

        Returns:
            Dictionary with list of UTXOs, values in BTC and sats.
        """
        node = get_node()
        utxos = await node.list_utxos(min_confirmations, min_amount)

        return {
            "count": len(utxos),
            "utxos": [
                {
                    "txid": u.txid,
                    "vout": u.vout,
                    "amount": u.amount,
                    "value_sats": u.value_sats,
                    "confirmations": u.confirmations,
                }
                for u in utxos
            ],
        }

    @mcp.tool()
    async def estimate_fee(conf_target: int = 6) -> dict:
        """Estimate a fee rate for confirmation within ``conf_target`` blocks."""
        node = get_node()
        rate = await node.estimate_fee(conf_target)
        return {
            "conf_target": conf_target,
            "fee_rate_btc_kvb": rate,
            "fee_rate_sat_vb": btc_kvb_to_sat_vb(rate),
        }

    @mcp.tool()
    async def broadcast_transaction(
        tx_hex: str,
        dry_run: Optional[bool] = None,
        max_fee_rate: Optional[float] = None,
    ) -> dict:
        """Send a signed transaction to the network.

        Args:
            tx_hex: Signed transaction as hex string
            dry_run: If True, only test without broadcasting
                (default: the configured dry_run_default)
            max_fee_rate: Maximum fee rate in BTC/kvB (optional)

        Returns:
            Dictionary with result. For dry_run, includes 'allowed' status.
            For actual broadcast, includes 'txid'.
        """
        node = get_node()
        if dry_run is None:
            dry_run = config.dry_run_default

        if dry_run:
            result = await node.test_mempool_accept(tx_hex)
            return {
                "dry_run": True,
                "allowed": result.get("allowed", False),
                "reject_reason": result.get("reject-reason"),
            }

        txid = await node.send_raw_transaction(tx_hex, max_fee_rate)
        logger.info("Broadcast transaction %s", txid)
        return {
            "dry_run": False,
            "txid": txid,
            "broadcast": True,
        }

    @mcp.tool()
    async def broadcast_inscription(
        commit_hex: str,
        reveal_hex: str,
        dry_run: Optional[bool] = None,
    ) -> dict:
        """Broadcast a signed commit/reveal pair, commit first.

        Args:
            commit_hex: Signed commit transaction hex
            reveal_hex: Signed reveal transaction hex
            dry_run: If True, only test the commit with testmempoolaccept
                (default: the configured dry_run_default)

        Returns:
            Dictionary with both txids, or the dry-run result. A rejected
            transaction is reported with the failing stage.
        """
        if dry_run is None:
            dry_run = config.dry_run_default
        try:
            return await broadcast_raw_pair(get_node(), commit_hex, reveal_hex, dry_run)
        except BroadcastError as e:
            return {"error": str(e), "stage": e.stage, "commit_txid": e.txid}

    @mcp.tool()
    async def get_transaction(txid: str) -> dict:
        """Fetch transaction details.

        Args:
            txid: Transaction ID (hash)

        Returns:
            Dictionary with transaction details.
        """
        node = get_node()
        tx = await node.get_transaction(txid)

        return {
            "txid": tx.txid,
            "blockhash": tx.blockhash,
            "confirmations": tx.confirmations,
            "time": tx.time,
            "hex": tx.hex,
        }

    return mcp


def find_config() -> Config:
    """Load config from the first standard location that exists."""
    for path in CONFIG_PATHS:
        if path.exists():
            return load_config(path)
    return Config()


def main():
    """Entry point for the MCP server."""
    config = find_config()

    # stdout carries the MCP stdio protocol
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    server = create_server(config)
    server.run()


if __name__ == "__main__":
    main()
