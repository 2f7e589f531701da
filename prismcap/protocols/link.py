"""
Link layer protocol handler (Ethernet II).
"""

from __future__ import annotations

import struct

import dpkt

from prismcap.core.packet import EthernetInfo
from prismcap.protocols.base import BaseProtocolHandler, ProtocolContext, ParseResult, Layer
from prismcap.protocols.registry import register_protocol


ETH_HDR_LEN = 14

# EtherTypes that continue decoding
_NEXT_BY_ETHERTYPE = {
    dpkt.ethernet.ETH_TYPE_IP: 'ipv4',
    dpkt.ethernet.ETH_TYPE_IP6: 'ipv6',
}


@register_protocol('ethernet', Layer.DATA_LINK, priority=100)
class EthernetHandler(BaseProtocolHandler):
    """Ethernet II handler: fixed 14-byte header, no VLAN tag handling."""

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        if len(payload) < ETH_HDR_LEN:
            return ParseResult(success=False)

        etype = struct.unpack('>H', payload[12:14])[0]
        info = EthernetInfo.from_bytes(src=payload[6:12], dst=payload[0:6], ether_type=etype)

        return ParseResult(
            success=True,
            data=payload[ETH_HDR_LEN:],
            info=info,
            next_protocol=_NEXT_BY_ETHERTYPE.get(etype),
        )
