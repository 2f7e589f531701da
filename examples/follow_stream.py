"""
Background decoding, stream following and security scan example.

Demonstrates:
- Decoding on a worker thread with progress messages
- Following the first TCP conversation of the capture
- Listing port-scan and DNS-tunneling alerts
"""

import logging
import sys

from prismcap import (
    CaptureAnalyzer,
    DecodeFailure,
    DecodeSuccess,
    ProgressMessage,
    follow,
    scan,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')

path = sys.argv[1] if len(sys.argv) > 1 else 'test/single.pcap'


def on_message(msg):
    if isinstance(msg, ProgressMessage):
        print(f"\r{msg.message}", end='', flush=True)
    else:
        print()


with open(path, 'rb') as f:
    buf = f.read()

with CaptureAnalyzer(progress_interval=0.1) as analyzer:
    outcome = analyzer.submit(buf, on_message).result()

if isinstance(outcome, DecodeFailure):
    print(f"Decode failed: {outcome.error}")
    sys.exit(1)

assert isinstance(outcome, DecodeSuccess)
packets = outcome.packets

seed = next((p for p in packets if p.tcp is not None and p.ip is not None), None)
if seed is not None:
    stream = follow(seed, packets)
    key = stream.key
    print(f"Stream {key.src_ip}:{key.src_port} <-> {key.dst_ip}:{key.dst_port}")
    print(f"  {len(stream.packets)} packets, {stream.total_payload_bytes} payload bytes")
    print()
    print(stream.transcript)

for alert in scan(packets):
    print(f"[{alert.severity.value}] {alert.kind}: {alert.source} -> {alert.target}: {alert.details}")
