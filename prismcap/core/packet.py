"""
Decoded packet model.

A DecodedPacket carries one optional record per protocol layer. A layer that
could not be decoded is simply ``None``; the layers below it stay populated.
All records are immutable once the decoder has built them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# TCP flag bits (low 9 bits of the offset/flags word)
TH_FIN = 0x01
TH_SYN = 0x02
TH_RST = 0x04
TH_PSH = 0x08
TH_ACK = 0x10
TH_URG = 0x20


class AppKind(str, Enum):
    """Application protocols recognised by the heuristic detectors."""
    DNS = "DNS"
    HTTP = "HTTP"
    TLS = "TLS"


@dataclass(frozen=True, slots=True)
class EthernetInfo:
    """Ethernet II header."""
    src_mac: str
    dst_mac: str
    ether_type: int

    @classmethod
    def from_bytes(cls, src: bytes, dst: bytes, ether_type: int) -> EthernetInfo:
        return cls(
            src_mac="{:02x}:{:02x}:{:02x}:{:02x}:{:02x}:{:02x}".format(*src),
            dst_mac="{:02x}:{:02x}:{:02x}:{:02x}:{:02x}:{:02x}".format(*dst),
            ether_type=ether_type,
        )


@dataclass(frozen=True, slots=True)
class IPInfo:
    """IPv4 or IPv6 header fields."""
    version: int
    src: str
    dst: str
    protocol_number: int
    header_len: int


@dataclass(frozen=True, slots=True)
class TCPInfo:
    """TCP segment header plus the size of the payload that followed it."""
    src_port: int
    dst_port: int
    seq: int
    ack: int
    flags: int
    payload_len: int = 0

    @property
    def syn(self) -> bool: return bool(self.flags & TH_SYN)
    @property
    def ack_flag(self) -> bool: return bool(self.flags & TH_ACK)
    @property
    def fin(self) -> bool: return bool(self.flags & TH_FIN)
    @property
    def rst(self) -> bool: return bool(self.flags & TH_RST)
    @property
    def psh(self) -> bool: return bool(self.flags & TH_PSH)
    @property
    def urg(self) -> bool: return bool(self.flags & TH_URG)

    @property
    def is_syn_only(self) -> bool:
        return self.syn and not self.ack_flag


@dataclass(frozen=True, slots=True)
class UDPInfo:
    """UDP datagram header."""
    src_port: int
    dst_port: int
    length: int


@dataclass(frozen=True, slots=True)
class AppInfo:
    """Result of application-layer detection."""
    kind: AppKind
    summary: str


@dataclass(frozen=True, slots=True)
class DecodedPacket:
    """One captured frame with its decoded protocol layers.

    ``length`` is the original on-wire length, ``captured_length`` the number of
    bytes actually stored in ``data``. ``timestamp`` is in seconds.
    """
    index: int = -1
    timestamp: float = 0.0
    length: int = 0
    captured_length: int = 0
    data: bytes = b""
    eth: EthernetInfo | None = None
    ip: IPInfo | None = None
    tcp: TCPInfo | None = None
    udp: UDPInfo | None = None
    app: AppInfo | None = None

    @property
    def transport(self) -> str:
        """Histogram bucket for this packet: TCP, UDP or Other."""
        if self.tcp is not None:
            return "TCP"
        if self.udp is not None:
            return "UDP"
        return "Other"

    @property
    def src_port(self) -> int | None:
        layer = self.tcp or self.udp
        return layer.src_port if layer else None

    @property
    def dst_port(self) -> int | None:
        layer = self.tcp or self.udp
        return layer.dst_port if layer else None

    @property
    def protocol_stack(self) -> list[str]:
        """Ordered list of layer names present in this packet."""
        stack = []
        if self.eth:
            stack.append("ethernet")
        if self.ip:
            stack.append(f"ipv{self.ip.version}")
        if self.tcp:
            stack.append("tcp")
        elif self.udp:
            stack.append("udp")
        if self.app:
            stack.append(self.app.kind.value.lower())
        return stack

    def to_dict(self) -> dict:
        result = {
            'index': self.index,
            'timestamp': self.timestamp,
            'length': self.length,
            'captured_length': self.captured_length,
        }
        if self.eth:
            result['eth'] = {
                'src_mac': self.eth.src_mac,
                'dst_mac': self.eth.dst_mac,
                'ether_type': self.eth.ether_type,
            }
        if self.ip:
            result['ip'] = {
                'version': self.ip.version,
                'src': self.ip.src,
                'dst': self.ip.dst,
                'protocol_number': self.ip.protocol_number,
                'header_len': self.ip.header_len,
            }
        if self.tcp:
            result['tcp'] = {
                'src_port': self.tcp.src_port,
                'dst_port': self.tcp.dst_port,
                'seq': self.tcp.seq,
                'ack': self.tcp.ack,
                'flags': {
                    'syn': self.tcp.syn,
                    'ack': self.tcp.ack_flag,
                    'fin': self.tcp.fin,
                    'rst': self.tcp.rst,
                    'psh': self.tcp.psh,
                    'urg': self.tcp.urg,
                },
                'payload_len': self.tcp.payload_len,
            }
        if self.udp:
            result['udp'] = {
                'src_port': self.udp.src_port,
                'dst_port': self.udp.dst_port,
                'length': self.udp.length,
            }
        if self.app:
            result['app'] = {
                'kind': self.app.kind.value,
                'summary': self.app.summary,
            }
        return result
