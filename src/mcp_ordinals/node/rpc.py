"""Bitcoin Core JSON-RPC transport."""

import base64
import logging
from typing import Any

import httpx

from mcp_ordinals.config import Config
from mcp_ordinals.node.interface import NodeInterface

logger = logging.getLogger(__name__)


class BitcoinRPC(NodeInterface):
    """Bitcoin Core access over JSON-RPC."""

    def __init__(self, config: Config, timeout: float = 30.0):
        self.config = config
        self.url = f"http://{config.rpc_host}:{config.get_rpc_port()}"

        credentials = f"{config.rpc_user}:{config.rpc_password}"
        auth_bytes = base64.b64encode(credentials.encode()).decode()

        self._headers = {
            "Authorization": f"Basic {auth_bytes}",
            "Content-Type": "application/json",
        }

        self._client = httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def _call(self, method: str, *args: Any) -> Any:
        """Execute JSON-RPC call."""
        self._request_id += 1

        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": list(args),
        }
        logger.debug("RPC %s (id=%d)", method, self._request_id)

        try:
            response = await self._client.post(
                self.url,
                json=payload,
                headers=self._headers,
            )
        except httpx.HTTPError as e:
            raise RuntimeError(f"RPC transport error: {e}") from e

        if response.status_code == 401:
            raise RuntimeError("RPC authentication failed")

        # Bitcoin Core answers RPC errors with HTTP 500 and a JSON body
        try:
            data = response.json()
        except ValueError as e:
            raise RuntimeError(
                f"RPC returned non-JSON response (HTTP {response.status_code})"
            ) from e

        if data.get("error"):
            error = data["error"]
            raise RuntimeError(f"RPC error {error['code']}: {error['message']}")

        return data.get("result")

    async def close(self):
        """Close HTTP client."""
        await self._client.aclose()
