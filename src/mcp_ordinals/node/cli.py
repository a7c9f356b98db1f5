"""Bitcoin Core CLI (subprocess) transport."""

import asyncio
import json
import logging
from typing import Any

from mcp_ordinals.config import Config, Network
from mcp_ordinals.node.interface import NodeInterface

logger = logging.getLogger(__name__)

# Network CLI flags
NETWORK_FLAGS = {
    Network.MAINNET: [],
    Network.TESTNET: ["-testnet"],
    Network.SIGNET: ["-signet"],
    Network.REGTEST: ["-regtest"],
}


def _format_arg(arg: Any) -> str:
    # bitcoin-cli parses each argument as JSON, except plain strings
    if isinstance(arg, bool):
        return "true" if arg else "false"
    if isinstance(arg, (list, dict)):
        return json.dumps(arg)
    return str(arg)


class BitcoinCLI(NodeInterface):
    """Bitcoin Core access through the bitcoin-cli binary."""

    def __init__(self, config: Config):
        self.config = config
        self.cli_path = config.cli_path
        self.network = config.network
        self.datadir = config.cli_datadir

    def _build_command(self, method: str, *args: Any) -> list[str]:
        cmd = [self.cli_path]
        cmd.extend(NETWORK_FLAGS.get(self.network, []))
        if self.datadir:
            cmd.append(f"-datadir={self.datadir}")
        cmd.append(method)
        cmd.extend(_format_arg(arg) for arg in args)
        return cmd

    async def _call(self, method: str, *args: Any) -> Any:
        """Execute bitcoin-cli command and parse JSON response."""
        cmd = self._build_command(method, *args)
        logger.debug("bitcoin-cli %s", method)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise RuntimeError(f"bitcoin-cli not found at {self.cli_path}") from e

        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            error_msg = stderr.decode().strip()
            raise RuntimeError(f"bitcoin-cli error: {error_msg}")

        output = stdout.decode().strip()
        if not output:
            return None

        try:
            return json.loads(output)
        except json.JSONDecodeError:
            # Some commands return plain text (e.g. a txid)
            return output
