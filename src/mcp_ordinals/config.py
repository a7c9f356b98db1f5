"""Configuration loading and management."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

try:
    import tomli
except ImportError:  # pragma: no cover
    import tomllib as tomli  # Python 3.11+


class ConnectionMethod(Enum):
    """Bitcoin Core connection method."""
    CLI = "cli"
    RPC = "rpc"


class Network(Enum):
    """Bitcoin network."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


# Default RPC ports per network
DEFAULT_PORTS = {
    Network.MAINNET: 8332,
    Network.TESTNET: 18332,
    Network.SIGNET: 38332,
    Network.REGTEST: 18443,
}

# bitcoinutils network names; signet shares testnet address parameters
BITCOINUTILS_NETWORKS = {
    Network.MAINNET: "mainnet",
    Network.TESTNET: "testnet",
    Network.SIGNET: "testnet",
    Network.REGTEST: "regtest",
}

DEFAULT_DUST_FLOOR_SATS = 546
# Expected vsize of a signed single-input, single-output BRC-20 reveal
DEFAULT_REVEAL_TX_SIZE_ESTIMATE_BYTES = 200
DEFAULT_CONTENT_TYPE = "text/plain;charset=utf-8"


@dataclass
class Config:
    """Server and inscription configuration."""

    # Connection settings
    connection_method: ConnectionMethod = ConnectionMethod.CLI
    network: Network = Network.TESTNET

    # CLI settings
    cli_path: str = "bitcoin-cli"
    cli_datadir: str = ""

    # RPC settings
    rpc_host: str = "127.0.0.1"
    rpc_port: Optional[int] = None
    rpc_user: str = ""
    rpc_password: str = ""

    # Safety settings
    dry_run_default: bool = True
    max_data_size: int = 102400  # 100KB

    # Inscription policy
    dust_floor_sats: int = DEFAULT_DUST_FLOOR_SATS
    reveal_tx_size_estimate_bytes: int = DEFAULT_REVEAL_TX_SIZE_ESTIMATE_BYTES
    default_fee_rate: float = 1.0  # sat/vB
    content_type: str = DEFAULT_CONTENT_TYPE

    # Logging
    log_level: str = "WARNING"

    @property
    def default_rpc_port(self) -> int:
        """Get default RPC port for current network."""
        return DEFAULT_PORTS[self.network]

    def get_rpc_port(self) -> int:
        """Get configured or default RPC port."""
        return self.rpc_port if self.rpc_port else self.default_rpc_port

    @property
    def bitcoinutils_network(self) -> str:
        """Network name understood by bitcoinutils.setup()."""
        return BITCOINUTILS_NETWORKS[self.network]


DEFAULT_CONFIG = Config()


def load_config(path: Path) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to config file

    Returns:
        Loaded configuration, merged with defaults

    Raises:
        ValueError: If the inscription policy values are out of range
    """
    if not path.exists():
        return Config()

    with open(path, "rb") as f:
        data = tomli.load(f)

    conn = data.get("connection", {})
    cli = data.get("cli", {})
    rpc = data.get("rpc", {})
    safety = data.get("safety", {})
    inscription = data.get("inscription", {})
    logging_section = data.get("logging", {})

    config = Config(
        connection_method=ConnectionMethod(conn.get("method", "cli")),
        network=Network(conn.get("network", "testnet")),
        cli_path=cli.get("path", "bitcoin-cli"),
        cli_datadir=cli.get("datadir", ""),
        rpc_host=rpc.get("host", "127.0.0.1"),
        rpc_port=rpc.get("port"),
        rpc_user=rpc.get("user", ""),
        rpc_password=rpc.get("password", ""),
        dry_run_default=safety.get("dry_run_default", True),
        max_data_size=safety.get("max_data_size", 102400),
        dust_floor_sats=inscription.get("dust_floor_sats", DEFAULT_DUST_FLOOR_SATS),
        reveal_tx_size_estimate_bytes=inscription.get(
            "reveal_tx_size_estimate_bytes", DEFAULT_REVEAL_TX_SIZE_ESTIMATE_BYTES
        ),
        default_fee_rate=float(inscription.get("default_fee_rate", 1.0)),
        content_type=inscription.get("content_type", DEFAULT_CONTENT_TYPE),
        log_level=str(logging_section.get("level", "WARNING")).upper(),
    )

    if config.dust_floor_sats < 0:
        raise ValueError(f"dust_floor_sats must be non-negative, got {config.dust_floor_sats}")
    if config.reveal_tx_size_estimate_bytes <= 0:
        raise ValueError(
            "reveal_tx_size_estimate_bytes must be positive, "
            f"got {config.reveal_tx_size_estimate_bytes}"
        )
    if config.default_fee_rate < 0:
        raise ValueError(f"default_fee_rate must be non-negative, got {config.default_fee_rate}")

    return config
