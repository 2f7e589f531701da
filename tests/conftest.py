"""Configuration and fixtures for pytest tests."""

import pytest
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from frames import build_pcap, tcp_frame, udp_frame, dns_query, PSH, ACK, SYN  # noqa: E402


@pytest.fixture
def decoder():
    """Provide a ProtocolDecoder on the global registry."""
    from prismcap.core.decoder import ProtocolDecoder
    return ProtocolDecoder()


@pytest.fixture
def syn_frame():
    """54-byte Ethernet + IPv4 + TCP SYN frame, 10.0.0.1:1234 -> 10.0.0.2:80."""
    return tcp_frame('10.0.0.1', '10.0.0.2', 1234, 80, flags=SYN)


@pytest.fixture
def sample_capture():
    """Capture with a TCP handshake, an HTTP request and a DNS query."""
    client, server, resolver = '192.168.1.10', '93.184.216.34', '8.8.8.8'
    return build_pcap([
        (1000, 0, tcp_frame(client, server, 40000, 80, flags=SYN, seq=100)),
        (1000, 100000, tcp_frame(server, client, 80, 40000, flags=SYN | ACK, seq=500, ack=101)),
        (1000, 200000, tcp_frame(client, server, 40000, 80, flags=ACK, seq=101, ack=501)),
        (1000, 300000, tcp_frame(client, server, 40000, 80, flags=PSH | ACK, seq=101, ack=501,
                                 payload=b'GET / HTTP/1.1\r\nHost: example.com\r\n\r\n')),
        (1001, 0, udp_frame(client, resolver, 53000, 53, dns_query('example.com'))),
    ])


@pytest.fixture
def sample_packets(decoder, sample_capture):
    """Decoded packets of ``sample_capture``."""
    from prismcap.core.reader import CaptureReader
    return list(decoder.decode_records(CaptureReader(sample_capture)))
