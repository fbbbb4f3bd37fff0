"""
Newline-framed text channel over a connected socket.
"""

from __future__ import annotations

import logging
import socket
import threading

from relaychat.common.exceptions import MessageError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINE_LENGTH = 64 * 1024


class LineTransport:
    """One frame per newline-terminated UTF-8 line.

    Reads happen on a single owner thread. Writes are serialised by a lock and
    may come from any thread. ``close`` shuts the socket down first, so a read
    blocked on another thread returns end-of-stream.
    """

    def __init__(
        self, sock: socket.socket, max_line_length: int = DEFAULT_MAX_LINE_LENGTH
    ) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._write_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = False
        self.max_line_length = max_line_length

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def socket(self) -> socket.socket:
        return self._sock

    def read_line(self) -> str | None:
        """Read one frame. Returns None at end of stream."""
        try:
            raw = self._reader.readline(self.max_line_length + 1)
        except (OSError, ValueError) as err:
            # ValueError: the reader was closed under us
            if self._closed:
                return None
            msg = f"Read failed: {err}"
            raise TransportError(msg) from err

        if not raw:
            return None
        if not raw.endswith(b"\n") and len(raw) > self.max_line_length:
            msg = f"Frame exceeds {self.max_line_length} bytes"
            raise TransportError(msg)
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def write_line(self, text: str) -> None:
        """Write one frame."""
        if "\n" in text or "\r" in text:
            msg = "A frame must not contain a line break"
            raise MessageError(msg)
        data = text.encode("utf-8") + b"\n"
        with self._write_lock:
            if self._closed:
                msg = "Transport is closed"
                raise TransportError(msg)
            try:
                self._sock.sendall(data)
            except OSError as err:
                msg = f"Write failed: {err}"
                raise TransportError(msg) from err

    def close(self) -> None:
        """Close the channel. Safe to call more than once and from any thread."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Peer already gone
            logger.debug("Socket shutdown skipped, not connected")
        self._sock.close()
        self._reader.close()
