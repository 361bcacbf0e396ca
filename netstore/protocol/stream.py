"""
Reliable Stream I/O

A TCP connection is a byte stream: one write on the server side may arrive
as several reads on ours, and a write may be accepted only in part. Every
receive in the client goes through the loops in this module, which keep
reading (or writing) until the requested amount has been transferred or the
peer closed the stream.
"""

import asyncio
import logging
import socket
from typing import AsyncIterator

from ..exceptions import ChannelError, TruncatedMessage

logger = logging.getLogger(__name__)

DEFAULT_PORT = 6543
DEFAULT_CONNECT_TIMEOUT = 10.0


class Channel:
    """
    A connected, bidirectional byte stream to one server.

    ``read(n)`` returns at most ``n`` bytes and ``b''`` once the peer has
    closed the stream. ``write(data)`` returns the number of bytes the
    channel accepted.
    """

    async def read(self, n: int) -> bytes:
        raise NotImplementedError

    async def write(self, data: bytes) -> int:
        raise NotImplementedError

    async def close(self):
        raise NotImplementedError


class StreamChannel(Channel):
    """Channel over an asyncio stream reader/writer pair."""

    def __init__(self, reader: asyncio.StreamReader,
                 writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer
        self._closed = False

    async def read(self, n: int) -> bytes:
        if self._closed:
            raise ChannelError("Connection closed")
        return await self.reader.read(n)

    async def write(self, data: bytes) -> int:
        if self._closed:
            raise ChannelError("Connection closed")
        self.writer.write(data)
        await self.writer.drain()
        return len(data)

    async def close(self):
        """Close the connection."""
        if self._closed:
            return
        self._closed = True
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            raise ChannelError(f"close: {e}") from e


async def open_channel(host: str, port: int = DEFAULT_PORT,
                       timeout: float = DEFAULT_CONNECT_TIMEOUT) -> StreamChannel:
    """
    Resolve the server address and connect to it over IPv4 TCP.

    Raises:
        ChannelError: If the address cannot be resolved or the connection fails
    """
    logger.debug(f"Connecting to {host}:{port}...")
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port, family=socket.AF_INET),
            timeout=timeout
        )
    except asyncio.TimeoutError as e:
        raise ChannelError(f"connect: connection to {host}:{port} timed out") from e
    except OSError as e:
        raise ChannelError(f"connect: cannot connect to {host}:{port}: {e}") from e

    logger.info(f"Connected to {host}:{port}")
    return StreamChannel(reader, writer)


async def write_all(channel: Channel, data: bytes):
    """
    Write every byte of ``data`` to the channel.

    Raises:
        ChannelError: If the channel fails or stops accepting bytes
    """
    total = len(data)
    sent = 0

    while sent < total:
        try:
            accepted = await channel.write(data[sent:])
        except OSError as e:
            raise ChannelError(f"partial / failed write: {e}") from e

        if accepted <= 0:
            raise ChannelError(
                f"partial / failed write: {sent} of {total} bytes sent"
            )
        sent += accepted


async def read_exact_or_eof(channel: Channel, n: int) -> bytes:
    """
    Read until ``n`` bytes have arrived or the stream ends.

    Returns:
        Exactly ``n`` bytes, or fewer if the peer closed the stream

    Raises:
        ChannelError: If reading from the channel fails
    """
    parts = []
    received = 0

    while received < n:
        try:
            part = await channel.read(n - received)
        except OSError as e:
            raise ChannelError(f"read: {e}") from e

        if not part:
            break
        parts.append(part)
        received += len(part)

    return b''.join(parts)


async def read_exact(channel: Channel, n: int, what: str = 'message') -> bytes:
    """
    Read exactly ``n`` bytes.

    Raises:
        TruncatedMessage: If the stream ends first
        ChannelError: If reading from the channel fails
    """
    data = await read_exact_or_eof(channel, n)
    if len(data) < n:
        raise TruncatedMessage(what, expected=n, received=len(data))
    return data


async def iter_body(channel: Channel, total: int,
                    chunk_size: int) -> AsyncIterator[bytes]:
    """
    Yield a message body of ``total`` bytes as it arrives.

    Each yielded part is one non-empty read of at most ``chunk_size``
    bytes. Iteration stops after ``total`` bytes or when the stream ends,
    whichever comes first.

    Raises:
        ChannelError: If reading from the channel fails
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    remaining = total
    while remaining > 0:
        try:
            part = await channel.read(min(chunk_size, remaining))
        except OSError as e:
            raise ChannelError(f"file fragment reading: {e}") from e

        if not part:
            return
        remaining -= len(part)
        yield part
