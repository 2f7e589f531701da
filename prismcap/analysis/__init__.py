"""Analysis over decoded packet sets."""

from prismcap.analysis.security import (
    PORT_SCAN_THRESHOLD,
    DNS_TUNNEL_LENGTH_THRESHOLD,
    Severity,
    SecurityAlert,
    PortScanAlert,
    DnsTunnelingAlert,
    scan,
)
from prismcap.analysis.stats import (
    HostSummary,
    Timeline,
    protocol_label,
    protocol_distribution,
    top_talkers,
    host_summary,
    traffic_timeline,
)

__all__ = [
    'PORT_SCAN_THRESHOLD',
    'DNS_TUNNEL_LENGTH_THRESHOLD',
    'Severity',
    'SecurityAlert',
    'PortScanAlert',
    'DnsTunnelingAlert',
    'scan',
    'HostSummary',
    'Timeline',
    'protocol_label',
    'protocol_distribution',
    'top_talkers',
    'host_summary',
    'traffic_timeline',
]
