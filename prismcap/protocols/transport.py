"""
Transport layer protocol handlers (TCP, UDP).
"""

from __future__ import annotations

import struct

from prismcap.core.packet import TCPInfo, UDPInfo
from prismcap.protocols.base import BaseProtocolHandler, ProtocolContext, ParseResult, Layer
from prismcap.protocols.registry import register_protocol


TCP_MIN_HDR_LEN = 20
UDP_HDR_LEN = 8


@register_protocol('tcp', Layer.TRANSPORT, priority=100)
class TCPHandler(BaseProtocolHandler):
    """TCP transport layer handler."""

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        if len(payload) < TCP_MIN_HDR_LEN:
            return ParseResult(success=False)

        sport, dport, seq, ack, off_flags = struct.unpack('>HHIIH', payload[:14])
        header_len = (off_flags >> 12) * 4

        # A data offset below 5 words or options past the captured bytes
        # leave the fixed header usable but no payload
        if TCP_MIN_HDR_LEN <= header_len <= len(payload):
            data = payload[header_len:]
            next_proto = 'application'
        else:
            data = b""
            next_proto = None

        info = TCPInfo(
            src_port=sport,
            dst_port=dport,
            seq=seq,
            ack=ack,
            flags=off_flags & 0x01FF,
            payload_len=len(data),
        )
        return ParseResult(success=True, data=data, info=info, next_protocol=next_proto)


@register_protocol('udp', Layer.TRANSPORT, priority=100)
class UDPHandler(BaseProtocolHandler):
    """UDP transport layer handler."""

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        if len(payload) < UDP_HDR_LEN:
            return ParseResult(success=False)

        sport, dport, length = struct.unpack('>HHH', payload[:6])
        info = UDPInfo(src_port=sport, dst_port=dport, length=length)

        return ParseResult(
            success=True,
            data=payload[UDP_HDR_LEN:],
            info=info,
            next_protocol='application',
        )
