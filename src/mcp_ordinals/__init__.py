"""MCP server for ordinal inscriptions and BRC-20 commit/reveal transactions."""

__version__ = "0.1.0"

# Server entry points
from mcp_ordinals.server import create_server, main

# Configuration
from mcp_ordinals.config import Config, Network, ConnectionMethod

# Errors
from mcp_ordinals.errors import (
    InscriptionError,
    ValidationError,
    TickerLengthError,
    PrevoutMismatchError,
    FundsError,
    InsufficientFundsError,
    ValueOverflowError,
    BroadcastError,
)

# Envelope
from mcp_ordinals.envelope import (
    Inscription,
    SpendInfo,
    build_envelope,
    decode_inscription,
)

# Transactions and signing
from mcp_ordinals.transactions import Unspent, build_commit, build_reveal
from mcp_ordinals.signer import (
    KeyPath,
    PrivateKeyBackend,
    ScriptPath,
    SigningBackend,
    sign_input,
    sign_key_path,
    sign_script_path,
    verify_input,
)
from mcp_ordinals.workflow import (
    PreparedInscription,
    broadcast_inscription,
    prepare_inscription,
)

__all__ = [
    # Version
    "__version__",
    # Server
    "create_server",
    "main",
    # Config
    "Config",
    "Network",
    "ConnectionMethod",
    # Errors
    "InscriptionError",
    "ValidationError",
    "TickerLengthError",
    "PrevoutMismatchError",
    "FundsError",
    "InsufficientFundsError",
    "ValueOverflowError",
    "BroadcastError",
    # Envelope
    "Inscription",
    "SpendInfo",
    "build_envelope",
    "decode_inscription",
    # Transactions
    "Unspent",
    "build_commit",
    "build_reveal",
    # Signing
    "KeyPath",
    "PrivateKeyBackend",
    "ScriptPath",
    "SigningBackend",
    "sign_input",
    "sign_key_path",
    "sign_script_path",
    "verify_input",
    # Workflow
    "PreparedInscription",
    "broadcast_inscription",
    "prepare_inscription",
]
