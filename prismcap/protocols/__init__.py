"""Protocol handler modules.

Importing this package registers the built-in handlers with the global
registry.
"""

from prismcap.protocols.base import (
    BaseProtocolHandler,
    ProtocolContext,
    ParseResult,
    Layer
)
from prismcap.protocols.registry import (
    register_protocol,
    get_global_registry as get_protocol_registry,
    ProtocolHandlerRegistry
)
from prismcap.protocols.link import EthernetHandler
from prismcap.protocols.network import IPv4Handler, IPv6Handler
from prismcap.protocols.transport import TCPHandler, UDPHandler
from prismcap.protocols.application import (
    HTTPHandler,
    TLSHandler,
    DNSHandler,
    parse_client_hello_sni,
    parse_dns_qname,
)

__all__ = [
    'BaseProtocolHandler',
    'ProtocolContext',
    'ParseResult',
    'Layer',
    'register_protocol',
    'get_protocol_registry',
    'ProtocolHandlerRegistry',
    'EthernetHandler',
    'IPv4Handler',
    'IPv6Handler',
    'TCPHandler',
    'UDPHandler',
    'HTTPHandler',
    'TLSHandler',
    'DNSHandler',
    'parse_client_hello_sni',
    'parse_dns_qname',
]
