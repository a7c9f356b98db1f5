"""Tests for script push primitives."""

import pytest
from bitcoinutils.script import Script

from mcp_ordinals.primitives import (
    read_op,
    OP_0,
    OP_ENDIF,
    OP_PUSHDATA1,
    OP_PUSHDATA2,
    OP_PUSHDATA4,
)


def push(data: bytes) -> bytes:
    """Serialize a single data push the way envelopes are serialized."""
    return Script([data.hex()]).to_bytes()


class TestReadOp:
    """Test reading script operations."""

    @pytest.mark.parametrize("size,opcode", [
        (0, OP_0),
        (1, 1),
        (75, 75),
        (76, OP_PUSHDATA1),
        (255, OP_PUSHDATA1),
        (256, OP_PUSHDATA2),
        (520, OP_PUSHDATA2),
    ])
    def test_reads_back_pushes(self, size, opcode):
        """Every push encoding reads back to the same bytes."""
        data = b"\xab" * size
        script = push(data) + bytes([OP_ENDIF])

        read_opcode, pushed, pos = read_op(script, 0)

        assert read_opcode == opcode
        assert pushed == data
        assert script[pos] == OP_ENDIF

    def test_pushdata2_length_is_little_endian(self):
        script = push(b"x" * 520)

        assert script[1:3] == bytes.fromhex("0802")
        assert read_op(script, 0)[2] == len(script)

    def test_reads_pushdata4(self):
        """PUSHDATA4 is decoded even though envelopes never need it."""
        data = b"x" * 10
        script = bytes([OP_PUSHDATA4]) + len(data).to_bytes(4, "little") + data

        opcode, pushed, pos = read_op(script, 0)

        assert opcode == OP_PUSHDATA4
        assert pushed == data
        assert pos == len(script)

    def test_non_push_opcode(self):
        """Non-push opcodes return no data."""
        opcode, pushed, pos = read_op(bytes([OP_ENDIF]), 0)

        assert opcode == OP_ENDIF
        assert pushed is None
        assert pos == 1

    def test_end_of_script(self):
        """Reading past the end fails."""
        with pytest.raises(ValueError, match="expected an opcode"):
            read_op(b"", 0)

    def test_truncated_direct_push(self):
        """Direct push longer than the script fails."""
        with pytest.raises(ValueError, match="truncated"):
            read_op(bytes([5]) + b"abc", 0)

    def test_truncated_pushdata1(self):
        """PUSHDATA1 without its length byte fails."""
        with pytest.raises(ValueError, match="Truncated PUSHDATA1"):
            read_op(bytes([OP_PUSHDATA1]), 0)

    def test_truncated_pushdata2(self):
        """PUSHDATA2 without its length bytes fails."""
        with pytest.raises(ValueError, match="Truncated PUSHDATA2"):
            read_op(bytes([OP_PUSHDATA2, 0x01]), 0)

    def test_truncated_pushdata4(self):
        """PUSHDATA4 without its length bytes fails."""
        with pytest.raises(ValueError, match="Truncated PUSHDATA4"):
            read_op(bytes([OP_PUSHDATA4, 0x01, 0x00]), 0)
