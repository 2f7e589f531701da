"""
CaptureAnalyzer - entry point that turns a capture buffer into decoded packets.

Decoding can run on the caller's thread (:meth:`CaptureAnalyzer.decode`) or on
a worker thread (:meth:`CaptureAnalyzer.submit`). The worker reports progress
through a callback and finishes with exactly one terminal message.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Union

from prismcap.core.decoder import ProtocolDecoder
from prismcap.core.packet import DecodedPacket
from prismcap.core.reader import CaptureReader, FormatError


logger = logging.getLogger(__name__)

HEADER_MESSAGE = "Parsing Global Header..."
CANCELLED_MESSAGE = "Decoding cancelled"


@dataclass(frozen=True)
class ProgressMessage:
    percent: float
    message: str

    def to_dict(self) -> dict:
        return {'percent': self.percent, 'message': self.message}


@dataclass(frozen=True)
class DecodeSuccess:
    packets: list[DecodedPacket]

    def to_dict(self) -> dict:
        return {'status': 'success', 'packets': [p.to_dict() for p in self.packets]}


@dataclass(frozen=True)
class DecodeFailure:
    error: str

    def to_dict(self) -> dict:
        return {'status': 'failure', 'error': self.error}


DecodeMessage = Union[ProgressMessage, DecodeSuccess, DecodeFailure]


class DecodeCancelled(Exception):
    """Raised inside the worker when its task has been cancelled."""


class DecodeTask:
    """
    Handle on a background decode.

    ``cancel()`` asks the worker to stop before its next record; the terminal
    message is then a DecodeFailure and no packets are delivered.
    """

    def __init__(self, future: Future, cancel_event: threading.Event):
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> DecodeSuccess | DecodeFailure:
        """Block until the worker finishes and return its terminal message."""
        return self._future.result(timeout=timeout)


class CaptureAnalyzer:
    """
    Decode a whole capture buffer into DecodedPackets.

    Examples:
        Synchronous:
            >>> analyzer = CaptureAnalyzer()
            >>> packets = analyzer.decode(buf)

        On a worker thread:
            >>> with CaptureAnalyzer() as analyzer:
            ...     task = analyzer.submit(buf, on_message=print)
            ...     outcome = task.result()

    Args:
        progress_interval: Minimum seconds between two progress messages (default: 0.2)
        max_workers: Worker threads used by :meth:`submit` (default: 1)
        decoder: ProtocolDecoder to use (default: a new one on the global registry)
    """

    def __init__(
        self,
        progress_interval: float = 0.2,
        max_workers: int = 1,
        decoder: ProtocolDecoder | None = None,
    ):
        if progress_interval < 0:
            raise ValueError(f"Invalid progress_interval={progress_interval!r}, must be >= 0")
        if max_workers < 1:
            raise ValueError(f"Invalid max_workers={max_workers!r}, must be >= 1")

        self.progress_interval = progress_interval
        self.max_workers = max_workers
        self.decoder = decoder or ProtocolDecoder()
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> CaptureAnalyzer:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self, wait: bool = True) -> None:
        """Shut down the worker pool, if one was started."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix='prismcap-decode',
                )
            return self._executor

    def _run(
        self,
        buf: bytes,
        on_progress: Callable[[ProgressMessage], None] | None,
        cancel_event: threading.Event | None,
    ) -> list[DecodedPacket]:
        if on_progress is not None:
            on_progress(ProgressMessage(0.0, HEADER_MESSAGE))

        reader = CaptureReader(buf)
        total = reader.size
        packets: list[DecodedPacket] = []
        last_report = time.monotonic()

        for record in reader:
            if cancel_event is not None and cancel_event.is_set():
                raise DecodeCancelled(CANCELLED_MESSAGE)

            packets.append(self.decoder.decode_record(record, index=len(packets)))

            if on_progress is not None:
                now = time.monotonic()
                if now - last_report > self.progress_interval:
                    percent = reader.offset / total * 100
                    on_progress(ProgressMessage(percent, f"Parsing... {percent:.1f}%"))
                    last_report = now

        logger.info("Decoded %d packets from %d bytes", len(packets), total)
        return packets

    def decode(
        self,
        buf: bytes,
        on_progress: Callable[[ProgressMessage], None] | None = None,
    ) -> list[DecodedPacket]:
        """
        Decode on the calling thread.

        Args:
            buf: Complete capture contents
            on_progress: Optional callback for ProgressMessages

        Returns:
            Decoded packets in file order

        Raises:
            FormatError: If the capture header is not recognised
        """
        return self._run(buf, on_progress, None)

    def _work(
        self,
        buf: bytes,
        on_message: Callable[[DecodeMessage], None],
        cancel_event: threading.Event,
    ) -> DecodeSuccess | DecodeFailure:
        outcome: DecodeSuccess | DecodeFailure
        try:
            packets = self._run(buf, on_message, cancel_event)
        except DecodeCancelled:
            logger.warning("Decode cancelled by caller")
            outcome = DecodeFailure(CANCELLED_MESSAGE)
        except FormatError as e:
            logger.warning("Decode failed: %s", e)
            outcome = DecodeFailure(str(e))
        except Exception as e:
            logger.exception("Decode failed unexpectedly")
            outcome = DecodeFailure(str(e) or type(e).__name__)
        else:
            outcome = DecodeSuccess(packets)

        on_message(outcome)
        return outcome

    def submit(self, buf: bytes, on_message: Callable[[DecodeMessage], None]) -> DecodeTask:
        """
        Decode on a worker thread.

        ``on_message`` is called from the worker with zero or more
        ProgressMessages followed by one DecodeSuccess or DecodeFailure.

        Returns:
            DecodeTask for cancelling or waiting on the decode
        """
        cancel_event = threading.Event()
        future = self._get_executor().submit(self._work, bytes(buf), on_message, cancel_event)
        return DecodeTask(future, cancel_event)
