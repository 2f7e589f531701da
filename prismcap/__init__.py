"""
prismcap - Python capture analysis library

Decodes classic pcap captures into layered packets (Ethernet, IPv4/IPv6,
TCP/UDP, HTTP/TLS/DNS detection) using dpkt, then aggregates directional
flows, follows TCP streams and runs simple security heuristics.

Example usage:
    from prismcap import CaptureAnalyzer, aggregate, follow, scan

    analyzer = CaptureAnalyzer()
    packets = analyzer.decode(open('traffic.pcap', 'rb').read())

    flows = aggregate(packets)
    for key, flow in flows.items():
        print(f"{key}: {flow.count} packets, {flow.value} bytes")

    for ip, name in flows.hostnames.items():
        print(f"  {ip} is {name}")

    stream = follow(packets[0], packets)
    print(stream.transcript)

    for alert in scan(packets):
        print(alert.kind, alert.details)
"""

from prismcap.core.packet import (
    AppKind,
    AppInfo,
    DecodedPacket,
    EthernetInfo,
    IPInfo,
    TCPInfo,
    UDPInfo,
)
from prismcap.core.reader import (
    CaptureHeader,
    CaptureReader,
    FormatError,
    RawRecord,
    parse_capture,
)
from prismcap.core.decoder import ProtocolDecoder
from prismcap.core.flow import (
    Flow,
    FlowAggregator,
    FlowKey,
    FlowTable,
    aggregate,
    packets_in_window,
)
from prismcap.core.analyzer import (
    CaptureAnalyzer,
    DecodeFailure,
    DecodeSuccess,
    DecodeTask,
    ProgressMessage,
)
from prismcap.protocols.base import BaseProtocolHandler, ProtocolContext, ParseResult, Layer
from prismcap.protocols.registry import register_protocol, get_global_registry
from prismcap.reassembly.tcp_stream import (
    InvalidSeedError,
    StreamChunk,
    StreamReassembler,
    StreamRecord,
    follow,
    stream_packets,
)
from prismcap.analysis.security import (
    DnsTunnelingAlert,
    PortScanAlert,
    SecurityAlert,
    Severity,
    scan,
)
from prismcap.analysis.stats import (
    HostSummary,
    Timeline,
    host_summary,
    protocol_distribution,
    top_talkers,
    traffic_timeline,
)

__version__ = "0.1.0"

__all__ = [
    # Entry point
    'CaptureAnalyzer',
    'DecodeTask',
    'ProgressMessage',
    'DecodeSuccess',
    'DecodeFailure',

    # Container
    'CaptureHeader',
    'CaptureReader',
    'RawRecord',
    'FormatError',
    'parse_capture',

    # Packets
    'ProtocolDecoder',
    'DecodedPacket',
    'EthernetInfo',
    'IPInfo',
    'TCPInfo',
    'UDPInfo',
    'AppInfo',
    'AppKind',

    # Protocol handlers
    'BaseProtocolHandler',
    'ProtocolContext',
    'ParseResult',
    'Layer',
    'register_protocol',
    'get_global_registry',

    # Flows
    'Flow',
    'FlowKey',
    'FlowTable',
    'FlowAggregator',
    'aggregate',
    'packets_in_window',

    # Streams
    'InvalidSeedError',
    'StreamChunk',
    'StreamRecord',
    'StreamReassembler',
    'follow',
    'stream_packets',

    # Security
    'SecurityAlert',
    'PortScanAlert',
    'DnsTunnelingAlert',
    'Severity',
    'scan',

    # Statistics
    'HostSummary',
    'Timeline',
    'host_summary',
    'protocol_distribution',
    'top_talkers',
    'traffic_timeline',
]
