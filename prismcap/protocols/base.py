"""
Protocol handler base classes and types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class Layer(IntEnum):
    """Protocol layer enumeration."""
    DATA_LINK = 2
    NETWORK = 3
    TRANSPORT = 4
    APPLICATION = 7


@dataclass
class ProtocolContext:
    """Per-frame state shared by the handlers decoding that frame.

    ``layers`` collects the record each successful handler produced, keyed by
    handler name; the decoder turns it into a DecodedPacket at the end.
    """
    frame: bytes
    layers: dict[str, Any] = field(default_factory=dict)

    @property
    def transport(self) -> str | None:
        if 'tcp' in self.layers:
            return 'tcp'
        if 'udp' in self.layers:
            return 'udp'
        return None

    @property
    def ports(self) -> tuple[int, int] | None:
        info = self.layers.get('tcp') or self.layers.get('udp')
        if info is None:
            return None
        return info.src_port, info.dst_port


@dataclass
class ParseResult:
    """Result returned by protocol handler."""
    success: bool
    data: bytes = b""  # Remaining data after this layer's header
    info: object | None = None  # Decoded record (e.g. IPInfo)
    next_protocol: str | None = None  # Name of the handler for ``data``


class BaseProtocolHandler(ABC):
    """
    Abstract base class for protocol handlers.

    A handler decodes one layer from the bytes the previous layer left over.
    It reports failure through ``ParseResult(success=False)`` and never raises
    for malformed input.
    """

    name: str = ""
    layer: Layer = Layer.APPLICATION

    # Higher runs first among application handlers
    priority: int = 0

    @abstractmethod
    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        """
        Parse protocol from payload.

        Args:
            payload: Bytes starting at this layer's header
            context: Frame being decoded, with the layers decoded so far

        Returns:
            ParseResult with the decoded record and the remaining data
        """

    def can_parse(self, payload: bytes, context: ProtocolContext) -> bool:
        """Cheap check run before ``parse``; application handlers override it."""
        return len(payload) > 0

    @classmethod
    def handler_id(cls) -> str:
        """Get unique handler identifier."""
        return f"{cls.layer.name.lower()}.{cls.name}"
