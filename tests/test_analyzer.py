"""Test CaptureAnalyzer synchronous and background decoding."""

import threading

import pytest

from prismcap import (
    CaptureAnalyzer,
    DecodeFailure,
    DecodeSuccess,
    FormatError,
    ProgressMessage,
)
from prismcap.core.analyzer import CANCELLED_MESSAGE, HEADER_MESSAGE

from frames import build_pcap, tcp_frame

TIMEOUT = 10


def _capture(n=50):
    return build_pcap([
        (1000 + i, 0, tcp_frame('10.0.0.1', '10.0.0.2', 1024 + i, 80))
        for i in range(n)
    ])


class TestConfig:

    def test_defaults(self):
        analyzer = CaptureAnalyzer()
        assert analyzer.progress_interval == 0.2
        assert analyzer.max_workers == 1

    @pytest.mark.parametrize('kwargs', [{'progress_interval': -1}, {'max_workers': 0}])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            CaptureAnalyzer(**kwargs)


class TestSynchronous:

    def test_decode(self, sample_capture):
        packets = CaptureAnalyzer().decode(sample_capture)
        assert len(packets) == 5
        assert [p.index for p in packets] == list(range(5))
        assert packets[0].timestamp == 1000.0
        assert packets[1].timestamp == pytest.approx(1000.1)
        assert packets[3].app.summary == 'GET / HTTP/1.1'

    def test_bad_magic_raises(self):
        with pytest.raises(FormatError):
            CaptureAnalyzer().decode(b'\x00' * 64)

    def test_truncated_capture_keeps_complete_records(self):
        buf = _capture(3)
        packets = CaptureAnalyzer().decode(buf[:-10])
        assert len(packets) == 2

    def test_progress_callback(self):
        messages = []
        CaptureAnalyzer(progress_interval=0).decode(_capture(), on_progress=messages.append)
        assert messages[0] == ProgressMessage(0.0, HEADER_MESSAGE)
        for msg in messages[1:]:
            assert 0 < msg.percent <= 100
            assert msg.message == f"Parsing... {msg.percent:.1f}%"


class TestBackground:

    def test_success(self, sample_capture):
        messages = []
        with CaptureAnalyzer() as analyzer:
            task = analyzer.submit(sample_capture, messages.append)
            outcome = task.result(timeout=TIMEOUT)

        assert isinstance(outcome, DecodeSuccess)
        assert len(outcome.packets) == 5
        assert task.done()
        assert messages[0] == ProgressMessage(0.0, HEADER_MESSAGE)
        assert messages[-1] is outcome
        terminal = [m for m in messages if isinstance(m, (DecodeSuccess, DecodeFailure))]
        assert terminal == [outcome]

    def test_format_failure(self):
        messages = []
        with CaptureAnalyzer() as analyzer:
            outcome = analyzer.submit(b'\xde\xad\xbe\xef' + b'\x00' * 20, messages.append).result(timeout=TIMEOUT)

        assert isinstance(outcome, DecodeFailure)
        assert 'magic' in outcome.error
        assert messages[-1] is outcome
        assert not any(isinstance(m, DecodeSuccess) for m in messages)

    def test_cancel(self):
        messages = []
        released = threading.Event()

        def on_message(msg):
            messages.append(msg)
            if isinstance(msg, ProgressMessage):
                released.wait(TIMEOUT)

        with CaptureAnalyzer() as analyzer:
            task = analyzer.submit(_capture(), on_message)
            task.cancel()
            released.set()
            outcome = task.result(timeout=TIMEOUT)

        assert task.cancelled
        assert outcome == DecodeFailure(CANCELLED_MESSAGE)
        assert messages[-1] is outcome
        assert not any(isinstance(m, DecodeSuccess) for m in messages)

    def test_several_tasks(self):
        with CaptureAnalyzer(max_workers=2) as analyzer:
            tasks = [analyzer.submit(_capture(n), lambda m: None) for n in (1, 5, 10)]
            counts = [len(t.result(timeout=TIMEOUT).packets) for t in tasks]
        assert counts == [1, 5, 10]


class TestMessages:

    def test_progress_to_dict(self):
        assert ProgressMessage(12.5, 'Parsing... 12.5%').to_dict() == {
            'percent': 12.5,
            'message': 'Parsing... 12.5%',
        }

    def test_success_to_dict(self, sample_packets):
        d = DecodeSuccess(sample_packets).to_dict()
        assert d['status'] == 'success'
        assert len(d['packets']) == 5
        assert d['packets'][0]['ip']['src'] == '192.168.1.10'

    def test_failure_to_dict(self):
        assert DecodeFailure('boom').to_dict() == {'status': 'failure', 'error': 'boom'}
