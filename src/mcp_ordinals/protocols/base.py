"""Base protocol class for inscription payloads."""

from abc import ABC, abstractmethod

from bitcoinutils.keys import PublicKey

from mcp_ordinals.envelope import Inscription


class Protocol(ABC):
    """Base class for structured inscription payloads."""

    content_type: str = "application/octet-stream"

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Convert to the raw inscription body."""
        pass

    def to_inscription(self, internal_key: PublicKey) -> Inscription:
        """Wrap the payload in an envelope committed to ``internal_key``."""
        return Inscription(self.content_type.encode("utf-8"), self.to_bytes(), internal_key)
