"""
TCP stream following.

Collects every segment of one TCP conversation (both directions) and renders
its payload as a readable transcript. Segments are ordered by capture time,
not by sequence number, so retransmissions and out-of-order segments appear
where they arrived on the wire.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, NamedTuple

import numpy as np

if TYPE_CHECKING:
    from prismcap.core.packet import DecodedPacket


logger = logging.getLogger(__name__)

ETH_HDR_LEN = 14
IPV6_HDR_LEN = 40
TCP_MIN_HDR_LEN = 20

PREVIEW_LIMIT = 500
HEX_PREVIEW_LEN = 16
TEXT_RATIO = 0.7
BINARY_STREAM_RATIO = 0.1

TRUNCATED_MARKER = '... (truncated)'
BINARY_TAG = ' [Binary/Encrypted]'
BINARY_BANNER = '*** STREAM CONTAINS BINARY/ENCRYPTED DATA ***'
EMPTY_TRANSCRIPT = 'Empty stream (only handshake/control packets).'

OUTBOUND = '→'
INBOUND = '←'

# Tab, LF, CR
_PRINTABLE_CONTROLS = np.array([9, 10, 13], dtype=np.uint8)


class InvalidSeedError(ValueError):
    """Raised when a stream is requested from a packet without IP and TCP layers."""


class StreamKey(NamedTuple):
    """Directed 4-tuple of a TCP segment."""
    src_ip: str
    src_port: int
    dst_ip: str
    dst_port: int

    @classmethod
    def of(cls, pkt: DecodedPacket) -> StreamKey:
        return cls(pkt.ip.src, pkt.tcp.src_port, pkt.ip.dst, pkt.tcp.dst_port)

    def reverse(self) -> StreamKey:
        return StreamKey(self.dst_ip, self.dst_port, self.src_ip, self.src_port)


@dataclass(frozen=True)
class StreamChunk:
    """One payload-bearing segment of a followed stream."""
    timestamp: float
    direction: str
    length: int
    kind: str  # 'text' or 'binary'
    text: str

    @property
    def is_text(self) -> bool:
        return self.kind == 'text'

    def render(self) -> str:
        if self.is_text:
            return f"[{self.timestamp:.4f}] {self.direction} ({self.length} bytes):\n{self.text}\n\n"
        return f"[{self.timestamp:.4f}] {self.direction} ({self.length} bytes){BINARY_TAG}\n{self.text}\n\n"


@dataclass
class StreamRecord:
    """
    A followed TCP conversation.

    Attributes:
        key: 4-tuple of the seed packet (its direction is the outbound side)
        packets: Member packets ordered by timestamp
        chunks: Rendered payload segments, in packet order
        total_payload_bytes: Sum of all payload lengths
        text_bytes: Payload bytes of segments classified as text
    """
    key: StreamKey
    packets: list[DecodedPacket] = field(default_factory=list)
    chunks: list[StreamChunk] = field(default_factory=list)
    total_payload_bytes: int = 0
    text_bytes: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    @property
    def is_binary(self) -> bool:
        """True when text segments make up less than 10% of the payload."""
        return not self.is_empty and self.text_bytes < self.total_payload_bytes * BINARY_STREAM_RATIO

    @property
    def transcript(self) -> str:
        if self.is_empty:
            return EMPTY_TRANSCRIPT
        body = ''.join(chunk.render() for chunk in self.chunks)
        if self.is_binary:
            return f"{BINARY_BANNER}\nTotal Payload: {self.total_payload_bytes} bytes\n\n{body}"
        return body

    def sequence_trace(self) -> list[tuple[float, int, int, str]]:
        """
        Per-packet points for a time/sequence plot.

        Returns:
            List of (seconds since first packet, seq, payload_len, direction)
        """
        if not self.packets:
            return []
        t0 = self.packets[0].timestamp
        return [
            (
                p.timestamp - t0,
                p.tcp.seq,
                p.tcp.payload_len,
                OUTBOUND if StreamKey.of(p) == self.key else INBOUND,
            )
            for p in self.packets
        ]


def _seed_key(seed: DecodedPacket) -> StreamKey:
    if seed.ip is None or seed.tcp is None:
        raise InvalidSeedError("Stream seed must carry both an IP and a TCP layer")
    return StreamKey.of(seed)


def stream_packets(seed: DecodedPacket, packets: Iterable[DecodedPacket]) -> list[DecodedPacket]:
    """
    Members of the seed's conversation in either direction, sorted by timestamp.

    The sort is stable, so packets sharing a timestamp keep their input order.
    """
    key = _seed_key(seed)
    both = (key, key.reverse())
    members = [
        p for p in packets
        if p.ip is not None and p.tcp is not None and StreamKey.of(p) in both
    ]
    members.sort(key=lambda p: p.timestamp)
    return members


def extract_payload(pkt: DecodedPacket) -> bytes:
    """
    Re-slice the TCP payload out of the raw frame.

    The IP header length comes from the IHL nibble (fixed 40 bytes for IPv6)
    and the TCP header length from the data offset nibble. A data offset
    below 5 words yields no payload, as it does in the decoder.
    """
    data = pkt.data
    offset = ETH_HDR_LEN
    if offset >= len(data):
        return b""

    if pkt.ip is not None and pkt.ip.version == 6:
        offset += IPV6_HDR_LEN
    else:
        offset += (data[offset] & 0x0F) * 4

    if offset + 12 >= len(data):
        return b""
    tcp_header_len = (data[offset + 12] >> 4) * 4
    if tcp_header_len < TCP_MIN_HDR_LEN:
        return b""

    return data[offset + tcp_header_len:]


def classify_payload(payload: bytes) -> tuple[str, str]:
    """
    Decide whether a payload is text and render it.

    Only the first 500 bytes are inspected. More than 70% printable bytes
    (0x20-0x7E plus tab, LF, CR) makes it text, rendered with other bytes
    replaced by '.'. Anything else is rendered as a short hex snippet.

    Returns:
        (kind, rendering) where kind is 'text' or 'binary'
    """
    preview = np.frombuffer(payload[:PREVIEW_LIMIT], dtype=np.uint8)
    printable = ((preview >= 0x20) & (preview <= 0x7E)) | np.isin(preview, _PRINTABLE_CONTROLS)

    if preview.size and np.count_nonzero(printable) / preview.size > TEXT_RATIO:
        shown = np.where(printable, preview, ord('.')).astype(np.uint8).tobytes().decode('ascii')
        if len(payload) > PREVIEW_LIMIT:
            shown += TRUNCATED_MARKER
        return 'text', shown

    hex_bytes = ''.join(f"{b:02x} " for b in payload[:HEX_PREVIEW_LEN])
    return 'binary', f"Hex: {hex_bytes}..."


def follow(seed: DecodedPacket, packets: Iterable[DecodedPacket]) -> StreamRecord:
    """
    Follow the TCP conversation the seed packet belongs to.

    Args:
        seed: Any packet of the conversation; its direction is shown as outbound
        packets: All decoded packets of the capture

    Returns:
        StreamRecord with ordered members and the rendered transcript

    Raises:
        InvalidSeedError: If the seed has no IP or no TCP layer
    """
    key = _seed_key(seed)
    record = StreamRecord(key=key, packets=stream_packets(seed, packets))

    for pkt in record.packets:
        payload = extract_payload(pkt)
        if not payload:
            continue
        kind, text = classify_payload(payload)
        direction = OUTBOUND if StreamKey.of(pkt) == key else INBOUND
        record.chunks.append(StreamChunk(
            timestamp=pkt.timestamp,
            direction=direction,
            length=len(payload),
            kind=kind,
            text=text,
        ))
        record.total_payload_bytes += len(payload)
        if kind == 'text':
            record.text_bytes += len(payload)

    logger.debug(
        "Followed %s:%d -> %s:%d: %d packets, %d payload bytes",
        key.src_ip, key.src_port, key.dst_ip, key.dst_port,
        len(record.packets), record.total_payload_bytes,
    )
    return record


class StreamReassembler:
    """Object form of :func:`follow` and :func:`stream_packets`."""

    def follow(self, seed: DecodedPacket, packets: Iterable[DecodedPacket]) -> StreamRecord:
        return follow(seed, packets)

    def stream_packets(self, seed: DecodedPacket, packets: Iterable[DecodedPacket]) -> list[DecodedPacket]:
        return stream_packets(seed, packets)
