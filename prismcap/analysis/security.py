"""
Security heuristics over a decoded packet batch.

Two independent detectors share one pass over the packets:

- Port scan: a source that sends SYN-only segments to more than
  ``PORT_SCAN_THRESHOLD`` distinct destination ports.
- DNS tunneling: a DNS query name token longer than
  ``DNS_TUNNEL_LENGTH_THRESHOLD`` characters.

Nothing is kept between calls to :func:`scan`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Sequence

from prismcap.core.packet import AppKind

if TYPE_CHECKING:
    from prismcap.core.packet import DecodedPacket


logger = logging.getLogger(__name__)

PORT_SCAN_THRESHOLD = 20
DNS_TUNNEL_LENGTH_THRESHOLD = 50
DNS_DETAIL_PREFIX_LEN = 30


class Severity(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"


@dataclass(frozen=True)
class SecurityAlert:
    """Base alert record; ``kind`` names the detector that raised it."""
    source: str
    target: str
    details: str
    timestamp: float

    kind = ""
    severity = Severity.MEDIUM

    def to_dict(self) -> dict:
        return {
            'type': self.kind,
            'severity': self.severity.value,
            'source': self.source,
            'target': self.target,
            'details': self.details,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class PortScanAlert(SecurityAlert):
    port_count: int = 0

    kind = "Port Scan Detected"
    severity = Severity.MEDIUM


@dataclass(frozen=True)
class DnsTunnelingAlert(SecurityAlert):
    query: str = ""

    kind = "DNS Tunneling Suspected"
    severity = Severity.HIGH


def _long_query_tokens(summary: str) -> list[str]:
    return [
        token for token in summary.split()
        if '.' in token and len(token) > DNS_TUNNEL_LENGTH_THRESHOLD
    ]


def scan(packets: Sequence[DecodedPacket]) -> list[SecurityAlert]:
    """
    Run both detectors over a packet batch.

    DNS tunneling alerts come first, one per offending token in packet order.
    Port scan alerts follow, one per offending source in order of first
    appearance, all stamped with the timestamp of the batch's first packet.

    Args:
        packets: Decoded packets to inspect

    Returns:
        List of alerts (empty when nothing matched)
    """
    alerts: list[SecurityAlert] = []
    scanners: dict[str, set[int]] = {}

    for pkt in packets:
        tcp = pkt.tcp
        if tcp is not None and pkt.ip is not None and tcp.is_syn_only:
            scanners.setdefault(pkt.ip.src, set()).add(tcp.dst_port)

        app = pkt.app
        if app is not None and app.kind is AppKind.DNS:
            source = pkt.ip.src if pkt.ip else ""
            target = pkt.ip.dst if pkt.ip else ""
            for token in _long_query_tokens(app.summary):
                alerts.append(DnsTunnelingAlert(
                    source=source,
                    target=target,
                    details=f"Suspiciously long query: {token[:DNS_DETAIL_PREFIX_LEN]}...",
                    timestamp=pkt.timestamp,
                    query=token,
                ))

    batch_start = packets[0].timestamp if packets else 0.0
    for src, ports in scanners.items():
        if len(ports) > PORT_SCAN_THRESHOLD:
            alerts.append(PortScanAlert(
                source=src,
                target="Multiple",
                details=f"Scanned {len(ports)} unique ports.",
                timestamp=batch_start,
                port_count=len(ports),
            ))

    if alerts:
        logger.debug("Security scan over %d packets raised %d alerts", len(packets), len(alerts))
    return alerts
