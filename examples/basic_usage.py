"""
Basic prismcap usage example.

Demonstrates:
- Decoding a pcap file on the calling thread
- Printing directional flows as src -> dst with byte and packet totals
- Resolving server addresses through TLS SNI hostnames
- Protocol mix, top talkers and a per-second traffic timeline
"""

import sys

from prismcap import (
    CaptureAnalyzer,
    aggregate,
    host_summary,
    protocol_distribution,
    top_talkers,
    traffic_timeline,
)

path = sys.argv[1] if len(sys.argv) > 1 else 'test/single.pcap'

with open(path, 'rb') as f:
    packets = CaptureAnalyzer().decode(f.read())

print(f"Total packets: {len(packets)}")

flows = aggregate(packets)
print(f"Total flows: {len(flows)}")
print()

for key, flow in flows.items():
    target = flows.hostnames.get(flow.target, flow.target)
    print(f"Flow: {flow.source} -> {target}")
    print(f"  Packets: {flow.count}")
    print(f"  Bytes: {flow.value}")
    print(f"  Protocols: {flow.protocol_counts}")
    if flow.app_kind:
        print(f"  Application: {flow.app_kind.value}")
        for summary in sorted(flow.app_summaries)[:3]:
            print(f"    {summary}")
    print()

print("Protocol distribution:")
for label, count in protocol_distribution(packets):
    print(f"  {label:<6} {count}")

print("Top talkers:")
for ip, sent in top_talkers(packets, limit=5):
    summary = host_summary(flows, ip)
    print(f"  {ip:<40} sent {sent} bytes, received {summary.received_bytes} bytes")

if packets:
    span = int(packets[-1].timestamp - packets[0].timestamp) + 1
    timeline = traffic_timeline(packets, bin_count=min(span, 60))
    if len(timeline):
        print(f"Busiest slice: {int(timeline.byte_counts.max())} bytes")
