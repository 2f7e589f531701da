"""
Flow aggregation - directed (source IP, destination IP) traffic flows.

Flows are keyed by the ordered address pair: A->B and B->A are separate
flows. A FlowTable is rebuilt from the packet list on every call; nothing is
cached or patched between calls.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator, NamedTuple

from prismcap.core.packet import AppKind
from prismcap.protocols.application import SNI_PREFIX

if TYPE_CHECKING:
    from prismcap.core.packet import DecodedPacket


class FlowKey(NamedTuple):
    """
    Ordered flow identifier.

    Examples:
        >>> key = FlowKey('192.168.1.1', '10.0.0.1')
        >>> print(key)
        192.168.1.1 -> 10.0.0.1
        >>> key == ('192.168.1.1', '10.0.0.1')
        True
        >>> key.reverse() == key
        False
    """
    src: str
    dst: str

    def __str__(self) -> str:
        return f"{self.src} -> {self.dst}"

    def reverse(self) -> FlowKey:
        """Create the key of the opposite direction."""
        return FlowKey(self.dst, self.src)


@dataclass
class Flow:
    """
    Aggregated statistics for one directed address pair.

    Attributes:
        source: Source IP address
        target: Destination IP address
        value: Sum of original (on-wire) packet lengths in bytes
        count: Number of packets
        protocol_counts: Packets per transport bucket (TCP, UDP, Other)
        app_summaries: Distinct application-layer summaries seen
        app_kind: Application kind of the last packet that had one
        packets: Member packets in input order
    """
    source: str
    target: str
    value: int = 0
    count: int = 0
    protocol_counts: dict[str, int] = field(default_factory=dict)
    app_summaries: set[str] = field(default_factory=set)
    app_kind: AppKind | None = None
    packets: list[DecodedPacket] = field(default_factory=list, repr=False)

    @property
    def key(self) -> FlowKey:
        return FlowKey(self.source, self.target)

    @property
    def start_time(self) -> float | None:
        return self.packets[0].timestamp if self.packets else None

    @property
    def end_time(self) -> float | None:
        return self.packets[-1].timestamp if self.packets else None

    def add_packet(self, pkt: DecodedPacket) -> None:
        """Fold one packet into the running totals."""
        self.value += pkt.length
        self.count += 1
        bucket = pkt.transport
        self.protocol_counts[bucket] = self.protocol_counts.get(bucket, 0) + 1
        self.packets.append(pkt)

        if pkt.app is not None:
            self.app_summaries.add(pkt.app.summary)
            self.app_kind = pkt.app.kind

    def to_dict(self) -> dict:
        return {
            'source': self.source,
            'target': self.target,
            'value': self.value,
            'count': self.count,
            'protocol_counts': dict(self.protocol_counts),
            'app_summaries': sorted(self.app_summaries),
            'app_kind': self.app_kind.value if self.app_kind else None,
        }


class FlowTable(Mapping):
    """
    Read-only mapping of FlowKey to Flow, in order of first appearance.

    ``hostnames`` maps a server IP to the SNI hostname of the last TLS
    ClientHello sent to it.
    """

    def __init__(self, flows: dict[FlowKey, Flow], hostnames: dict[str, str]):
        self._flows = flows
        self.hostnames = hostnames

    def __getitem__(self, key: tuple[str, str]) -> Flow:
        return self._flows[key]

    def __iter__(self) -> Iterator[FlowKey]:
        return iter(self._flows)

    def __len__(self) -> int:
        return len(self._flows)

    def __repr__(self) -> str:
        return f"FlowTable(flows={len(self._flows)}, hostnames={len(self.hostnames)})"

    def flows(self) -> list[Flow]:
        """All flows as a list."""
        return list(self._flows.values())


def packets_in_window(
    packets: Iterable[DecodedPacket],
    start: float | None = None,
    end: float | None = None,
) -> list[DecodedPacket]:
    """Packets whose timestamp lies in [start, end]; None leaves a side open."""
    return [
        p for p in packets
        if (start is None or p.timestamp >= start) and (end is None or p.timestamp <= end)
    ]


def aggregate(
    packets: Iterable[DecodedPacket],
    start: float | None = None,
    end: float | None = None,
) -> FlowTable:
    """
    Build the flow table for a packet sequence.

    Only packets carrying an IP layer contribute. Passing ``start``/``end``
    restricts the aggregation to that time window.

    Args:
        packets: Decoded packets
        start: Earliest timestamp to include (inclusive)
        end: Latest timestamp to include (inclusive)

    Returns:
        FlowTable with per-pair flows and the SNI hostname table
    """
    if start is not None or end is not None:
        packets = packets_in_window(packets, start, end)

    flows: dict[FlowKey, Flow] = {}
    hostnames: dict[str, str] = {}

    for pkt in packets:
        if pkt.ip is None:
            continue
        key = FlowKey(pkt.ip.src, pkt.ip.dst)
        flow = flows.get(key)
        if flow is None:
            flow = flows[key] = Flow(source=key.src, target=key.dst)
        flow.add_packet(pkt)

        app = pkt.app
        if app is not None and app.kind is AppKind.TLS and app.summary.startswith(SNI_PREFIX):
            hostnames[pkt.ip.dst] = app.summary[len(SNI_PREFIX):]

    return FlowTable(flows, hostnames)


class FlowAggregator:
    """Object form of :func:`aggregate` for callers that inject components."""

    def aggregate(
        self,
        packets: Iterable[DecodedPacket],
        start: float | None = None,
        end: float | None = None,
    ) -> FlowTable:
        return aggregate(packets, start=start, end=end)
