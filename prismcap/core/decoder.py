"""
ProtocolDecoder - runs the handler chain over one frame.

Each handler decodes its layer and names the next protocol; the chain stops
at the first layer that fails or has no successor. A failed layer is left
absent in the resulting DecodedPacket while every layer below it is kept, so
decoding a frame never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator

import prismcap.protocols  # noqa: F401  registers the built-in handlers
from prismcap.core.packet import DecodedPacket
from prismcap.protocols.base import Layer, ProtocolContext
from prismcap.protocols.registry import ProtocolHandlerRegistry, get_global_registry

if TYPE_CHECKING:
    from prismcap.core.reader import RawRecord
    from prismcap.protocols.base import BaseProtocolHandler


APPLICATION = 'application'


class ProtocolDecoder:
    """
    Frame decoder.

    Examples:
        >>> decoder = ProtocolDecoder()
        >>> pkt = decoder.decode(frame_bytes)
        >>> if pkt.tcp and pkt.tcp.syn:
        ...     print(pkt.ip.src, '->', pkt.ip.dst)

    Args:
        registry: Handler registry to resolve protocol names (default: global)
        link_protocol: Name of the first handler to run (default: 'ethernet')

    Application handlers are looked up once, on the first frame that reaches
    the application layer; handlers registered afterwards need a new decoder.
    """

    def __init__(
        self,
        registry: ProtocolHandlerRegistry | None = None,
        link_protocol: str = 'ethernet',
    ):
        self._registry = registry or get_global_registry()
        self._link_protocol = link_protocol
        self._handlers: dict[str, BaseProtocolHandler | None] = {}
        self._app_handlers: list[BaseProtocolHandler] | None = None

    def _handler(self, name: str) -> BaseProtocolHandler | None:
        if name not in self._handlers:
            handler_cls = self._registry.get(name)
            self._handlers[name] = handler_cls() if handler_cls else None
        return self._handlers[name]

    def _application_handlers(self) -> list[BaseProtocolHandler]:
        """Application detectors in priority order, resolved on first use."""
        if self._app_handlers is None:
            self._app_handlers = [
                self._handler(handler_cls.name)
                for handler_cls in self._registry.get_by_layer(Layer.APPLICATION)
            ]
        return self._app_handlers

    def _detect_application(self, payload: bytes, context: ProtocolContext) -> None:
        if not payload:
            return
        for handler in self._application_handlers():
            if not handler.can_parse(payload, context):
                continue
            result = handler.parse(payload, context)
            if result.success:
                context.layers[APPLICATION] = result.info
                return

    def decode(
        self,
        frame: bytes,
        timestamp: float = 0.0,
        length: int | None = None,
        index: int = -1,
    ) -> DecodedPacket:
        """
        Decode every layer of a frame.

        Args:
            frame: Captured frame bytes, starting at the link layer
            timestamp: Capture time in seconds
            length: Original on-wire length (defaults to ``len(frame)``)
            index: Position of the frame in its capture

        Returns:
            DecodedPacket with the layers that decoded
        """
        frame = bytes(frame)
        context = ProtocolContext(frame=frame)
        payload = frame
        proto: str | None = self._link_protocol

        while proto is not None:
            if proto == APPLICATION:
                self._detect_application(payload, context)
                break
            handler = self._handler(proto)
            if handler is None:
                break
            result = handler.parse(payload, context)
            if not result.success:
                break
            context.layers[handler.name] = result.info
            payload = result.data
            proto = result.next_protocol

        layers = context.layers
        return DecodedPacket(
            index=index,
            timestamp=timestamp,
            length=len(frame) if length is None else length,
            captured_length=len(frame),
            data=frame,
            eth=layers.get('ethernet'),
            ip=layers.get('ipv4') or layers.get('ipv6'),
            tcp=layers.get('tcp'),
            udp=layers.get('udp'),
            app=layers.get(APPLICATION),
        )

    def decode_record(self, record: RawRecord, index: int = -1) -> DecodedPacket:
        """Decode a container record, keeping its timing and length metadata."""
        return self.decode(
            record.data,
            timestamp=record.timestamp,
            length=record.length,
            index=index,
        )

    def decode_records(self, records: Iterable[RawRecord]) -> Iterator[DecodedPacket]:
        """Decode records lazily, numbering them from zero."""
        for index, record in enumerate(records):
            yield self.decode_record(record, index)


_default_decoder: ProtocolDecoder | None = None


def decode(frame: bytes, timestamp: float = 0.0, length: int | None = None,
           index: int = -1) -> DecodedPacket:
    """Decode a frame with a shared default decoder."""
    global _default_decoder
    if _default_decoder is None:
        _default_decoder = ProtocolDecoder()
    return _default_decoder.decode(frame, timestamp=timestamp, length=length, index=index)
