"""Exception hierarchy for inscription building and broadcast.

Validation errors subclass ValueError and funds errors subclass
ArithmeticError, so callers can catch either the specific class or the
builtin family.
"""

from typing import Optional


class InscriptionError(Exception):
    """Base class for all mcp-ordinals errors."""


class ValidationError(InscriptionError, ValueError):
    """Caller-supplied data violates a structural precondition."""


class TickerLengthError(ValidationError):
    """BRC-20 ticker is not exactly 4 characters."""

    def __init__(self, ticker: str):
        self.ticker = ticker
        super().__init__(
            f"Tick must be exactly 4 characters, got {len(ticker)}: {ticker!r}"
        )


class PrevoutMismatchError(ValidationError):
    """Previous outputs do not line up with the transaction inputs."""

    def __init__(self, prevouts: int, inputs: int):
        self.prevouts = prevouts
        self.inputs = inputs
        super().__init__(
            f"Expected one previous output per input: got {prevouts} prevouts "
            f"for {inputs} inputs"
        )


class FundsError(InscriptionError, ArithmeticError):
    """Value arithmetic failed (underflow or overflow)."""


class InsufficientFundsError(FundsError):
    """Funding output cannot cover the outputs plus fee."""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient funds: need at least {required} sats, "
            f"unspent output holds {available} sats"
        )


class ValueOverflowError(FundsError):
    """An output value exceeds the maximum money supply."""


class BroadcastError(InscriptionError, RuntimeError):
    """Node rejected a transaction during broadcast."""

    def __init__(self, stage: str, message: str, txid: Optional[str] = None):
        self.stage = stage
        self.txid = txid
        super().__init__(f"{stage} broadcast failed: {message}")
