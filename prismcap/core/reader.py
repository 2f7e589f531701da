"""
CaptureReader - classic libpcap container parsing over an in-memory buffer.

File structure:
- 24-byte global header (magic, version, thiszone, sigfigs, snaplen, linktype)
- Repeated packet records:
  - 16-byte record header (ts_sec, ts_usec, caplen, len)
  - caplen bytes of frame data

The magic number, read big-endian, selects the byte order of every later
multi-byte header field. A record that runs past the end of the buffer ends
the capture; it is not an error.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import dpkt


logger = logging.getLogger(__name__)

GLOBAL_HEADER_LEN = 24
RECORD_HEADER_LEN = 16

MAGIC_NATIVE = dpkt.pcap.TCPDUMP_MAGIC      # 0xA1B2C3D4, big-endian fields
MAGIC_SWAPPED = dpkt.pcap.PMUDPCT_MAGIC     # 0xD4C3B2A1, little-endian fields

# Only Ethernet framing is decoded
DLT_EN10MB = 1


class FormatError(ValueError):
    """The buffer does not start with a recognised capture header."""


@dataclass(frozen=True)
class CaptureHeader:
    """Parsed global header of a capture."""
    byte_order: str
    magic: int
    version_major: int
    version_minor: int
    thiszone: int
    sigfigs: int
    snaplen: int
    linktype: int

    @property
    def is_swapped(self) -> bool:
        return self.byte_order == '<'


@dataclass(frozen=True)
class RawRecord:
    """One frame as stored in the container."""
    timestamp: float
    length: int
    captured_length: int
    data: bytes

    @property
    def is_truncated(self) -> bool:
        """True when the capture kept fewer bytes than were on the wire."""
        return self.captured_length < self.length


def parse_header(buf: bytes) -> CaptureHeader:
    """Parse the 24-byte global header, raising FormatError on bad magic."""
    if len(buf) < GLOBAL_HEADER_LEN:
        raise FormatError(f"Unknown PCAP format: header needs {GLOBAL_HEADER_LEN} bytes, got {len(buf)}")

    magic = struct.unpack('>I', buf[:4])[0]
    if magic == MAGIC_NATIVE:
        hdr = dpkt.pcap.FileHdr(buf[:GLOBAL_HEADER_LEN])
        byte_order = '>'
    elif magic == MAGIC_SWAPPED:
        hdr = dpkt.pcap.LEFileHdr(buf[:GLOBAL_HEADER_LEN])
        byte_order = '<'
    else:
        raise FormatError(f"Unknown PCAP magic number: {magic:#010x}")

    return CaptureHeader(
        byte_order=byte_order,
        magic=magic,
        version_major=hdr.v_major,
        version_minor=hdr.v_minor,
        thiszone=hdr.thiszone,
        sigfigs=hdr.sigfigs,
        snaplen=hdr.snaplen,
        linktype=hdr.linktype,
    )


class CaptureReader:
    """
    Reader over a complete capture buffer.

    The global header is parsed on construction, so an unrecognised magic
    fails immediately. Iteration always restarts from the first record.

    Examples:
        >>> reader = CaptureReader(open('traffic.pcap', 'rb').read())
        >>> for record in reader:
        ...     print(record.timestamp, record.captured_length)
    """

    def __init__(self, buf: bytes | bytearray | memoryview):
        self._buf = bytes(buf)
        self.header = parse_header(self._buf)
        self._pkt_hdr = dpkt.pcap.LEPktHdr if self.header.is_swapped else dpkt.pcap.PktHdr
        self.offset = GLOBAL_HEADER_LEN
        logger.debug("Global header parsed: %s", self.header)
        if self.header.linktype != DLT_EN10MB:
            logger.debug("Linktype %d is not Ethernet; frames are still decoded as Ethernet",
                         self.header.linktype)

    @classmethod
    def from_file(cls, path: str | Path) -> CaptureReader:
        """Read a whole capture file into memory and wrap it."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"PCAP file not found: {path}")
        return cls(path.read_bytes())

    @property
    def size(self) -> int:
        """Total size of the underlying buffer in bytes."""
        return len(self._buf)

    @property
    def linktype(self) -> int:
        return self.header.linktype

    def __iter__(self) -> Iterator[RawRecord]:
        buf = self._buf
        end = len(buf)
        offset = GLOBAL_HEADER_LEN
        self.offset = offset

        while offset < end:
            if offset + RECORD_HEADER_LEN > end:
                logger.debug("Record header truncated at offset %d", offset)
                break
            hdr = self._pkt_hdr(buf[offset:offset + RECORD_HEADER_LEN])
            body = offset + RECORD_HEADER_LEN
            if body + hdr.caplen > end:
                logger.debug("Packet truncated at offset %d (caplen=%d)", offset, hdr.caplen)
                break

            offset = body + hdr.caplen
            self.offset = offset
            yield RawRecord(
                timestamp=hdr.tv_sec + hdr.tv_usec / 1_000_000,
                length=hdr.len,
                captured_length=hdr.caplen,
                data=buf[body:offset],
            )

    def parse(self) -> list[RawRecord]:
        """Materialise every complete record in file order."""
        return list(self)

    @staticmethod
    def is_capture(buf: bytes) -> bool:
        """Check whether the buffer starts with a supported magic number."""
        return buf[:4] in (b'\xa1\xb2\xc3\xd4', b'\xd4\xc3\xb2\xa1')


def parse_capture(buf: bytes) -> list[RawRecord]:
    """Parse a capture buffer into its raw records."""
    return CaptureReader(buf).parse()
