"""Bitcoin script push-data decoding.

Envelopes are serialized by bitcoinutils; this reads them back out of a
revealed leaf script one operation at a time.
"""

from typing import Optional, Tuple

# Bitcoin script opcodes
OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_IF = 0x63
OP_ENDIF = 0x68

# Largest element a script may push onto the stack
MAX_SCRIPT_ELEMENT_SIZE = 520


def read_op(script: bytes, pos: int) -> Tuple[int, Optional[bytes], int]:
    """Read one script operation starting at ``pos``.

    Args:
        script: Script bytes
        pos: Offset of the opcode to read

    Returns:
        Tuple of (opcode, pushed data or None for non-push opcodes, next offset)

    Raises:
        ValueError: If the script ends mid-operation
    """
    if pos >= len(script):
        raise ValueError("Script truncated: expected an opcode")

    opcode = script[pos]
    pos += 1

    if opcode < OP_PUSHDATA1:
        length = opcode
    elif opcode == OP_PUSHDATA1:
        if pos >= len(script):
            raise ValueError("Truncated PUSHDATA1 script")
        length = script[pos]
        pos += 1
    elif opcode == OP_PUSHDATA2:
        if pos + 2 > len(script):
            raise ValueError("Truncated PUSHDATA2 script")
        length = int.from_bytes(script[pos:pos+2], 'little')
        pos += 2
    elif opcode == OP_PUSHDATA4:
        if pos + 4 > len(script):
            raise ValueError("Truncated PUSHDATA4 script")
        length = int.from_bytes(script[pos:pos+4], 'little')
        pos += 4
    else:
        return opcode, None, pos

    if pos + length > len(script):
        raise ValueError(f"Script truncated: expected {length} bytes, got {len(script) - pos}")
    return opcode, script[pos:pos+length], pos + length
