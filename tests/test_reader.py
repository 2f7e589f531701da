"""Test CaptureReader container parsing."""

import logging

import pytest

from prismcap.core.reader import (
    CaptureReader,
    FormatError,
    RawRecord,
    parse_capture,
    parse_header,
    GLOBAL_HEADER_LEN,
    RECORD_HEADER_LEN,
    MAGIC_NATIVE,
    MAGIC_SWAPPED,
    DLT_EN10MB,
)

from frames import build_pcap, pcap_global_header, tcp_frame, udp_frame


def _records(n):
    return [
        (1000 + i, i * 1000, tcp_frame('10.0.0.1', '10.0.0.2', 1234, 80 + i))
        for i in range(n)
    ]


def test_header_native():
    """Native magic selects big-endian fields."""
    header = parse_header(pcap_global_header('>', snaplen=262144))
    assert header.magic == MAGIC_NATIVE
    assert header.byte_order == '>'
    assert not header.is_swapped
    assert (header.version_major, header.version_minor) == (2, 4)
    assert header.snaplen == 262144
    assert header.linktype == DLT_EN10MB


def test_header_swapped():
    """Swapped magic selects little-endian fields with identical values."""
    header = parse_header(pcap_global_header('<', snaplen=262144))
    assert header.magic == MAGIC_SWAPPED
    assert header.is_swapped
    assert (header.version_major, header.version_minor) == (2, 4)
    assert header.snaplen == 262144
    assert header.linktype == DLT_EN10MB


def test_unknown_magic_raises():
    buf = b'\x0a\x0d\x0d\x0a' + b'\x00' * 40
    with pytest.raises(FormatError):
        CaptureReader(buf)


def test_format_error_is_value_error():
    with pytest.raises(ValueError):
        parse_capture(b'\xde\xad\xbe\xef' + b'\x00' * 20)


def test_short_buffer_raises():
    with pytest.raises(FormatError):
        CaptureReader(b'\xa1\xb2\xc3')


def test_n_records_in_order():
    """A complete capture yields every record in file order."""
    records = parse_capture(build_pcap(_records(5)))
    assert len(records) == 5
    assert all(isinstance(r, RawRecord) for r in records)
    assert [r.timestamp for r in records] == sorted(r.timestamp for r in records)
    assert records[0].timestamp == pytest.approx(1000.0)
    assert records[3].timestamp == pytest.approx(1003.003)


def test_header_only_capture_is_empty():
    assert parse_capture(pcap_global_header()) == []


@pytest.mark.parametrize('cut', [1, RECORD_HEADER_LEN - 1, RECORD_HEADER_LEN, RECORD_HEADER_LEN + 10])
def test_truncated_after_k_records(cut):
    """A partial trailing record ends the capture without an error."""
    full = build_pcap(_records(3))
    record_size = RECORD_HEADER_LEN + 54
    k = 2
    buf = full[:GLOBAL_HEADER_LEN + k * record_size + cut]

    records = parse_capture(buf)
    assert len(records) == k


def test_byte_swapped_equivalence():
    """Swapped and native captures of the same records decode identically."""
    records = _records(4) + [(2000, 999999, udp_frame('10.0.0.3', '10.0.0.4', 5000, 53, b'x' * 20), 1500)]
    native = parse_capture(build_pcap(records, '>'))
    swapped = parse_capture(build_pcap(records, '<'))

    assert len(native) == len(swapped) == 5
    for a, b in zip(native, swapped):
        assert a == b


def test_timestamp_combines_seconds_and_microseconds():
    buf = build_pcap([(1000, 250000, b'\x00' * 20)])
    (record,) = parse_capture(buf)
    assert record.timestamp == pytest.approx(1000.25)


def test_original_length_kept():
    buf = build_pcap([(1, 0, b'\x00' * 60, 1514)])
    (record,) = parse_capture(buf)
    assert record.captured_length == 60
    assert record.length == 1514
    assert record.is_truncated
    assert len(record.data) == 60


def test_iteration_restarts():
    reader = CaptureReader(build_pcap(_records(3)))
    first = list(reader)
    second = list(reader)
    assert first == second
    assert len(first) == 3


def test_offset_tracks_progress():
    buf = build_pcap(_records(2))
    reader = CaptureReader(buf)
    assert reader.offset == GLOBAL_HEADER_LEN
    offsets = []
    for _ in reader:
        offsets.append(reader.offset)
    assert offsets == [GLOBAL_HEADER_LEN + RECORD_HEADER_LEN + 54, len(buf)]
    assert reader.size == len(buf)


def test_from_file(tmp_path):
    path = tmp_path / 'capture.pcap'
    path.write_bytes(build_pcap(_records(2)))
    reader = CaptureReader.from_file(path)
    assert len(reader.parse()) == 2
    assert reader.linktype == DLT_EN10MB


def test_from_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        CaptureReader.from_file(tmp_path / 'missing.pcap')


def test_is_capture():
    assert CaptureReader.is_capture(pcap_global_header('>'))
    assert CaptureReader.is_capture(pcap_global_header('<'))
    assert not CaptureReader.is_capture(b'\x0a\x0d\x0d\x0a')


def test_non_ethernet_linktype_logged(caplog):
    buf = pcap_global_header('>', linktype=113)
    with caplog.at_level(logging.DEBUG, logger='prismcap.core.reader'):
        reader = CaptureReader(buf)
    assert reader.linktype == 113
    assert any('Linktype 113 is not Ethernet' in r.getMessage() for r in caplog.records)


def test_ethernet_linktype_not_logged(caplog):
    with caplog.at_level(logging.DEBUG, logger='prismcap.core.reader'):
        CaptureReader(pcap_global_header('>'))
    assert not any('is not Ethernet' in r.getMessage() for r in caplog.records)
