"""
Capture-wide statistics: protocol mix, top talkers, per-host totals and a
byte timeline.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Mapping, NamedTuple, Sequence

import numpy as np

if TYPE_CHECKING:
    from prismcap.core.flow import Flow
    from prismcap.core.packet import DecodedPacket


DEFAULT_TOP_TALKERS = 10
DEFAULT_TIMELINE_BINS = 60


@dataclass(frozen=True)
class HostSummary:
    """Traffic totals of one IP address across all flows."""
    ip: str
    sent_bytes: int = 0
    sent_packets: int = 0
    received_bytes: int = 0
    received_packets: int = 0

    @property
    def total_bytes(self) -> int:
        return self.sent_bytes + self.received_bytes

    @property
    def total_packets(self) -> int:
        return self.sent_packets + self.received_packets


class Timeline(NamedTuple):
    """Histogram of traffic over the capture span.

    ``bin_edges`` has one more entry than the count arrays.
    """
    bin_edges: np.ndarray
    byte_counts: np.ndarray
    packet_counts: np.ndarray

    def __len__(self) -> int:
        return len(self.byte_counts)


def protocol_label(pkt: DecodedPacket) -> str:
    """Application kind when detected, else the transport bucket."""
    if pkt.app is not None:
        return pkt.app.kind.value
    return pkt.transport


def protocol_distribution(packets: Iterable[DecodedPacket]) -> list[tuple[str, int]]:
    """Packet count per protocol label, most frequent first."""
    counts = Counter(protocol_label(p) for p in packets)
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def top_talkers(packets: Iterable[DecodedPacket], limit: int = DEFAULT_TOP_TALKERS) -> list[tuple[str, int]]:
    """
    Bytes sent per source IP, largest first.

    Args:
        packets: Decoded packets; those without an IP layer are ignored
        limit: Maximum number of entries to return
    """
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    sent: dict[str, int] = {}
    for pkt in packets:
        if pkt.ip is not None:
            sent[pkt.ip.src] = sent.get(pkt.ip.src, 0) + pkt.length
    ranked = sorted(sent.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit]


def host_summary(flows: Mapping[object, Flow], ip: str) -> HostSummary:
    """Sum the flows that start or end at ``ip``."""
    sent_bytes = sent_packets = received_bytes = received_packets = 0
    for flow in flows.values():
        if flow.source == ip:
            sent_bytes += flow.value
            sent_packets += flow.count
        if flow.target == ip:
            received_bytes += flow.value
            received_packets += flow.count
    return HostSummary(
        ip=ip,
        sent_bytes=sent_bytes,
        sent_packets=sent_packets,
        received_bytes=received_bytes,
        received_packets=received_packets,
    )


def traffic_timeline(packets: Sequence[DecodedPacket], bin_count: int = DEFAULT_TIMELINE_BINS) -> Timeline:
    """
    Bucket traffic into ``bin_count`` equal time slices.

    Returns an empty Timeline when the packets span fewer than two distinct
    timestamps.
    """
    if bin_count < 1:
        raise ValueError(f"bin_count must be at least 1, got {bin_count}")

    times = np.fromiter((p.timestamp for p in packets), dtype=np.float64, count=len(packets))
    if np.unique(times).size < 2:
        empty = np.zeros(0, dtype=np.int64)
        return Timeline(np.zeros(0, dtype=np.float64), empty, empty.copy())

    lengths = np.fromiter((p.length for p in packets), dtype=np.int64, count=len(packets))
    byte_counts, edges = np.histogram(times, bins=bin_count, weights=lengths)
    packet_counts, _ = np.histogram(times, bins=edges)
    return Timeline(edges, byte_counts.astype(np.int64), packet_counts.astype(np.int64))
