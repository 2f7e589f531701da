"""Decode captures written by scapy.

scapy writes captures in the host byte order, so on little-endian machines
this also exercises the swapped-magic path end to end.
"""

import pytest

scapy_all = pytest.importorskip('scapy.all')

from prismcap import CaptureReader, ProtocolDecoder, aggregate, follow, scan  # noqa: E402
from prismcap.core.packet import AppKind  # noqa: E402


def _decode_file(path):
    decoder = ProtocolDecoder()
    return list(decoder.decode_records(CaptureReader.from_file(path)))


def test_tcp_conversation(tmp_path):
    Ether, IP, TCP, Raw = scapy_all.Ether, scapy_all.IP, scapy_all.TCP, scapy_all.Raw
    packets = [
        Ether() / IP(src='192.168.1.1', dst='10.0.0.1') / TCP(sport=12345, dport=80, flags='S', seq=100),
        Ether() / IP(src='10.0.0.1', dst='192.168.1.1') / TCP(sport=80, dport=12345, flags='SA', seq=900, ack=101),
        Ether() / IP(src='192.168.1.1', dst='10.0.0.1') / TCP(sport=12345, dport=80, flags='PA', seq=101, ack=901)
        / Raw(load=b'GET /index.html HTTP/1.1\r\nHost: example.com\r\n\r\n'),
    ]
    for i, pkt in enumerate(packets):
        pkt.time = 1700000000 + i
    path = tmp_path / 'conversation.pcap'
    scapy_all.wrpcap(str(path), packets)

    decoded = _decode_file(path)
    assert len(decoded) == 3
    assert decoded[0].tcp.is_syn_only
    assert decoded[1].tcp.syn and decoded[1].tcp.ack_flag
    assert decoded[2].app.kind is AppKind.HTTP
    assert decoded[2].app.summary == 'GET /index.html HTTP/1.1'
    assert decoded[0].timestamp == pytest.approx(1700000000.0)

    flows = aggregate(decoded)
    assert flows[('192.168.1.1', '10.0.0.1')].count == 2
    assert flows[('10.0.0.1', '192.168.1.1')].count == 1

    record = follow(decoded[0], decoded)
    assert len(record.packets) == 3
    assert 'GET /index.html HTTP/1.1' in record.transcript


def test_dns_query(tmp_path):
    Ether, IP, UDP, DNS, DNSQR = (
        scapy_all.Ether, scapy_all.IP, scapy_all.UDP, scapy_all.DNS, scapy_all.DNSQR,
    )
    long_name = 'a' * 55 + '.exfil.example.com'
    packets = [
        Ether() / IP(src='192.168.1.1', dst='8.8.8.8') / UDP(sport=5353, dport=53)
        / DNS(rd=1, qd=DNSQR(qname='example.com')),
        Ether() / IP(src='192.168.1.1', dst='8.8.8.8') / UDP(sport=5354, dport=53)
        / DNS(rd=1, qd=DNSQR(qname=long_name)),
    ]
    path = tmp_path / 'dns.pcap'
    scapy_all.wrpcap(str(path), packets)

    decoded = _decode_file(path)
    assert decoded[0].app.summary == 'Query: example.com'
    assert decoded[1].app.summary == f'Query: {long_name}'

    alerts = scan(decoded)
    assert len(alerts) == 1
    assert alerts[0].source == '192.168.1.1'
