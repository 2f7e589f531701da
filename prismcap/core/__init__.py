"""Core prismcap modules."""

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
from prismcap.core.decoder import ProtocolDecoder, decode
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
    DecodeCancelled,
    DecodeFailure,
    DecodeSuccess,
    DecodeTask,
    ProgressMessage,
)

__all__ = [
    'AppKind',
    'AppInfo',
    'DecodedPacket',
    'EthernetInfo',
    'IPInfo',
    'TCPInfo',
    'UDPInfo',
    'CaptureHeader',
    'CaptureReader',
    'FormatError',
    'RawRecord',
    'parse_capture',
    'ProtocolDecoder',
    'decode',
    'Flow',
    'FlowAggregator',
    'FlowKey',
    'FlowTable',
    'aggregate',
    'packets_in_window',
    'CaptureAnalyzer',
    'DecodeCancelled',
    'DecodeFailure',
    'DecodeSuccess',
    'DecodeTask',
    'ProgressMessage',
]
