"""Reassembly modules."""

from prismcap.reassembly.tcp_stream import (
    InvalidSeedError,
    StreamChunk,
    StreamKey,
    StreamReassembler,
    StreamRecord,
    classify_payload,
    extract_payload,
    follow,
    stream_packets,
)

__all__ = [
    'InvalidSeedError',
    'StreamChunk',
    'StreamKey',
    'StreamReassembler',
    'StreamRecord',
    'classify_payload',
    'extract_payload',
    'follow',
    'stream_packets',
]
