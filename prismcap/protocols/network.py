"""
Network layer protocol handlers (IPv4, IPv6).
"""

from __future__ import annotations

import socket

import dpkt

from prismcap.core.packet import IPInfo
from prismcap.protocols.base import BaseProtocolHandler, ProtocolContext, ParseResult, Layer
from prismcap.protocols.registry import register_protocol


IPV4_MIN_HDR_LEN = 20
IPV6_HDR_LEN = 40

_NEXT_BY_PROTO = {
    dpkt.ip.IP_PROTO_TCP: 'tcp',
    dpkt.ip.IP_PROTO_UDP: 'udp',
}


@register_protocol('ipv4', Layer.NETWORK, priority=100)
class IPv4Handler(BaseProtocolHandler):
    """IPv4 network layer handler."""

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        if len(payload) < IPV4_MIN_HDR_LEN:
            return ParseResult(success=False)

        header_len = (payload[0] & 0x0F) * 4
        proto = payload[9]
        info = IPInfo(
            version=4,
            src=socket.inet_ntop(socket.AF_INET, payload[12:16]),
            dst=socket.inet_ntop(socket.AF_INET, payload[16:20]),
            protocol_number=proto,
            header_len=header_len,
        )

        # IHL below 5 words: addresses are usable, the transport offset is not
        if header_len < IPV4_MIN_HDR_LEN:
            return ParseResult(success=True, info=info)

        # Transport sees the rest of the frame, not just the IP total length
        return ParseResult(
            success=True,
            data=payload[header_len:],
            info=info,
            next_protocol=_NEXT_BY_PROTO.get(proto),
        )


@register_protocol('ipv6', Layer.NETWORK, priority=100)
class IPv6Handler(BaseProtocolHandler):
    """IPv6 handler. Extension headers are not traversed."""

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        if len(payload) < IPV6_HDR_LEN:
            return ParseResult(success=False)

        next_header = payload[6]
        info = IPInfo(
            version=6,
            src=socket.inet_ntop(socket.AF_INET6, payload[8:24]),
            dst=socket.inet_ntop(socket.AF_INET6, payload[24:40]),
            protocol_number=next_header,
            header_len=IPV6_HDR_LEN,
        )

        return ParseResult(
            success=True,
            data=payload[IPV6_HDR_LEN:],
            info=info,
            next_protocol=_NEXT_BY_PROTO.get(next_header),
        )
