"""
Application layer detectors (HTTP, TLS ClientHello, DNS).

Detection is heuristic: each handler looks at the payload bytes (and, for
DNS, the ports) and the first one that accepts the payload wins. Handlers
run in priority order: HTTP, TLS, DNS.
"""

from __future__ import annotations

import struct

from prismcap.core.packet import AppInfo, AppKind
from prismcap.protocols.base import BaseProtocolHandler, ProtocolContext, ParseResult, Layer
from prismcap.protocols.registry import register_protocol


HTTP_PREFIXES = (b'GET ', b'POST', b'PUT ', b'DELE', b'HTTP')
HTTP_LINE_LIMIT = 200

# TLS record/handshake constants
CONTENT_TYPE_HANDSHAKE = 0x16
CLIENT_HELLO_TYPE = 0x01
EXT_SERVER_NAME = 0x0000
SNI_PREFIX = "SNI: "
CLIENT_HELLO_SUMMARY = "Client Hello"

# Record header (5) + handshake type (1) + length (3) + version (2) + random (32)
_SESSION_ID_OFFSET = 5 + 1 + 3 + 2 + 32

DNS_PORT = 53
DNS_HEADER_LEN = 12


def _u8(buf: bytes, pos: int) -> int:
    return struct.unpack_from('!B', buf, pos)[0]


def _u16(buf: bytes, pos: int) -> int:
    return struct.unpack_from('!H', buf, pos)[0]


def parse_client_hello_sni(payload: bytes) -> str | None:
    """
    Walk a TLS record holding a ClientHello and return the SNI hostname.

    Returns None when the hello carries no server_name extension. Raises
    ``struct.error`` or ``ValueError`` when a length field points outside the
    payload.

    An extension header whose four bytes end exactly at the end of the
    extensions list is still read, so a bodiless server_name in that spot
    raises rather than being skipped.
    """
    pos = _SESSION_ID_OFFSET
    session_id_len = _u8(payload, pos)
    pos += 1 + session_id_len

    cipher_suites_len = _u16(payload, pos)
    pos += 2 + cipher_suites_len

    compression_len = _u8(payload, pos)
    pos += 1 + compression_len

    extensions_len = _u16(payload, pos)
    pos += 2
    extensions_end = min(pos + extensions_len, len(payload))

    while pos + 4 <= extensions_end:
        ext_type, ext_len = struct.unpack_from('!HH', payload, pos)
        if ext_type == EXT_SERVER_NAME:
            # list length (2), name type (1), name length (2), name
            name_len = _u16(payload, pos + 7)
            name = payload[pos + 9:pos + 9 + name_len]
            if len(name) != name_len:
                raise ValueError("server_name runs past the payload")
            return name.decode('latin-1')
        pos += 4 + ext_len

    return None


def parse_dns_qname(payload: bytes) -> str:
    """
    Decode the first question name of a DNS message.

    Labels are read from byte 12 until a zero label or a compression pointer.
    Pointers are not followed, so compressed names come back truncated.
    """
    labels = []
    pos = DNS_HEADER_LEN
    while pos < len(payload):
        length = payload[pos]
        if length == 0 or (length & 0xC0) == 0xC0:
            break
        pos += 1
        labels.append(payload[pos:pos + length].decode('latin-1'))
        pos += length
    return '.'.join(labels)


@register_protocol('http', Layer.APPLICATION, priority=100)
class HTTPHandler(BaseProtocolHandler):
    """HTTP request/response line detector (TCP only)."""

    def can_parse(self, payload: bytes, context: ProtocolContext) -> bool:
        return context.transport == 'tcp' and payload[:4] in HTTP_PREFIXES

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        line = payload[:HTTP_LINE_LIMIT].split(b'\n', 1)[0]
        summary = line.decode('latin-1').strip()
        return ParseResult(success=True, info=AppInfo(AppKind.HTTP, summary))


@register_protocol('tls', Layer.APPLICATION, priority=90)
class TLSHandler(BaseProtocolHandler):
    """TLS ClientHello detector with SNI extraction (TCP only)."""

    def can_parse(self, payload: bytes, context: ProtocolContext) -> bool:
        return (
            context.transport == 'tcp'
            and len(payload) > 6
            and payload[0] == CONTENT_TYPE_HANDSHAKE
            and payload[5] == CLIENT_HELLO_TYPE
        )

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        try:
            sni = parse_client_hello_sni(payload)
        except (struct.error, ValueError):
            sni = None

        summary = f"{SNI_PREFIX}{sni}" if sni is not None else CLIENT_HELLO_SUMMARY
        return ParseResult(success=True, info=AppInfo(AppKind.TLS, summary))


@register_protocol('dns', Layer.APPLICATION, priority=80)
class DNSHandler(BaseProtocolHandler):
    """DNS question-name decoder, tried whenever either port is 53."""

    def can_parse(self, payload: bytes, context: ProtocolContext) -> bool:
        ports = context.ports
        return (
            ports is not None
            and DNS_PORT in ports
            and len(payload) > DNS_HEADER_LEN
        )

    def parse(self, payload: bytes, context: ProtocolContext) -> ParseResult:
        qname = parse_dns_qname(payload)
        return ParseResult(success=True, info=AppInfo(AppKind.DNS, f"Query: {qname}"))
