"""Integration tests for complete workflows.

These tests verify that all components work together correctly:
- BRC-20 record -> envelope -> commit -> reveal on the signet reference key
- Prepared pair broadcast through the server tools
- Envelope build/decode through the server
"""

import json

import pytest
from unittest.mock import AsyncMock

from mcp_ordinals.envelope import decode_inscription
from mcp_ordinals.node.interface import NodeInterface
from mcp_ordinals.protocols import BRC20Protocol, BRC20Record, transfer_inscription
from mcp_ordinals.server import create_server
from mcp_ordinals.signer import KeyPath, ScriptPath, verify_input
from mcp_ordinals.transactions import commit_prevouts, reveal_prevouts
from mcp_ordinals.workflow import prepare_inscription

from conftest import (
    SIGNET_COMMIT_OUTPUT_KEY,
    SIGNET_ENVELOPE_HEX,
    SIGNET_FUNDING_TXID,
    SIGNET_KEY_PATH_OUTPUT_KEY,
)


class TestSignetTransferWorkflow:
    """The signet 'sats' transfer, rebuilt from the published key."""

    def test_full_workflow(self, signet_backend, signet_unspent):
        """Record -> inscription -> signed commit and reveal."""
        record = BRC20Record(op="transfer", tick="sats", amt="20", p="")
        inscription = record.to_inscription(signet_backend.public_key)
        assert inscription.script.to_hex() == SIGNET_ENVELOPE_HEX

        prepared = prepare_inscription(inscription, signet_unspent, signet_backend, 1.0)
        commit, reveal = prepared.commit_tx, prepared.reveal_tx

        # Commit: 1 in, 2 out
        assert len(commit.inputs) == 1 and len(commit.outputs) == 2
        assert commit.inputs[0].txid == SIGNET_FUNDING_TXID
        assert commit.outputs[0].amount == 746
        assert commit.outputs[0].script_pubkey.to_hex() == "5120" + SIGNET_COMMIT_OUTPUT_KEY
        assert commit.outputs[1].amount == 701871 - 746 - prepared.commit_fee_sats
        assert commit.outputs[1].script_pubkey.to_hex() == "5120" + SIGNET_KEY_PATH_OUTPUT_KEY

        # Reveal: 1 in, 1 out, spending commit vout 0
        assert len(reveal.inputs) == 1 and len(reveal.outputs) == 1
        assert reveal.inputs[0].txid == commit.get_txid()
        assert reveal.inputs[0].txout_index == 0
        assert reveal.outputs[0].amount == 546

        assert verify_input(commit, commit_prevouts(signet_unspent, inscription.spend_info), KeyPath())
        assert verify_input(reveal, reveal_prevouts(commit), ScriptPath(inscription))

        # Revealed witness script decodes back to the record
        revealed = decode_inscription(bytes.fromhex(reveal.witnesses[0].stack[1]))
        assert json.loads(revealed.data) == record.to_dict()

    def test_repeat_runs_are_byte_identical(self, signet_backend, signet_unspent):
        first = prepare_inscription(
            transfer_inscription(signet_backend.public_key, "sats", "20"),
            signet_unspent, signet_backend, 1.0,
        )
        second = prepare_inscription(
            transfer_inscription(signet_backend.public_key, "sats", "20"),
            signet_unspent, signet_backend, 1.0,
        )

        assert first.commit_hex == second.commit_hex
        assert first.reveal_hex == second.reveal_hex

    @pytest.mark.parametrize("fee_rate", [0.5, 1.0, 2.0, 7.5, 25.0])
    def test_change_never_negative(self, signet_backend, signet_unspent, fee_rate):
        prepared = prepare_inscription(
            transfer_inscription(signet_backend.public_key, "sats", "20"),
            signet_unspent, signet_backend, fee_rate,
        )

        assert prepared.commit_tx.outputs[1].amount >= 0
        assert prepared.commit_fee_sats >= fee_rate * prepared.commit_vsize
        assert prepared.reveal_fee_sats >= fee_rate * prepared.reveal_vsize


class TestServerWorkflow:
    """Prepare and broadcast through the MCP tools."""

    @pytest.mark.asyncio
    async def test_prepare_then_broadcast(self, backend):
        server = create_server()
        node = AsyncMock(spec=NodeInterface)
        node.send_raw_transaction.side_effect = ["commit", "reveal"]
        server._node = node

        tools = server._tool_manager._tools
        prepared = tools["prepare_brc20_inscription"].fn(
            backend.private_key.to_wif(), SIGNET_FUNDING_TXID, 1, 100000,
            "mint", "ordi", "1000", 2.0,
        )
        result = await tools["broadcast_inscription"].fn(
            prepared["commit_hex"], prepared["reveal_hex"], dry_run=False,
        )

        sent = [c.args[0] for c in node.send_raw_transaction.await_args_list]
        assert sent == [prepared["commit_hex"], prepared["reveal_hex"]]
        assert result["reveal_txid"] == "reveal"

    def test_envelope_tool_roundtrip(self, signet_inscription):
        server = create_server()
        tools = server._tool_manager._tools

        built = tools["create_brc20_transfer"].fn(
            "sats", "20", signet_inscription.internal_key.to_x_only_hex()
        )
        decoded = tools["decode_inscription_script"].fn(built["script_hex"])
        record = tools["parse_brc20"].fn(decoded["content_utf8"])

        assert BRC20Protocol.parse(built["json"]).tick == record["tick"] == "sats"
