"""Shared fakes for netstore client tests."""

from __future__ import annotations

import asyncio
import struct
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from netstore.file.storage import FragmentStorage
from netstore.protocol.messages import ServerMessage
from netstore.protocol.stream import Channel

ENV_KEYS = [
    'NETSTORE_HOST',
    'NETSTORE_PORT',
    'NETSTORE_CONNECT_TIMEOUT',
    'NETSTORE_DOWNLOAD_DIR',
    'NETSTORE_CHUNK_SIZE',
    'NETSTORE_LOG_LEVEL',
]


def header(msg_type: int, param: int) -> bytes:
    """Serialize a server message header."""
    return ServerMessage(msg_type, param).to_bytes()


class FakeChannel(Channel):
    """
    In-memory channel with scripted deliveries.

    Each read returns at most one delivery, so the deliveries model how the
    peer's data is split across reads. ``accept_sizes`` caps how many bytes
    each write accepts and ``close_error`` makes closing fail.
    """

    def __init__(
        self,
        deliveries: Optional[List[bytes]] = None,
        accept_sizes: Optional[List[int]] = None,
        read_error: Optional[Exception] = None,
        write_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
    ) -> None:
        self.deliveries = list(deliveries or [])
        self.accept_sizes = None if accept_sizes is None else list(accept_sizes)
        self.read_error = read_error
        self.write_error = write_error
        self.close_error = close_error
        self.sent = bytearray()
        self.write_calls: List[int] = []
        self.read_calls: List[int] = []
        self.close_count = 0

    async def read(self, n: int) -> bytes:
        self.read_calls.append(n)
        if self.read_error is not None:
            raise self.read_error
        if not self.deliveries:
            return b''
        part = self.deliveries[0]
        if len(part) <= n:
            self.deliveries.pop(0)
            return part
        self.deliveries[0] = part[n:]
        return part[:n]

    async def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        self.write_calls.append(len(data))
        if self.accept_sizes is None:
            accepted = len(data)
        else:
            accepted = min(self.accept_sizes.pop(0) if self.accept_sizes else 0, len(data))
        self.sent += data[:accepted]
        return accepted

    async def close(self) -> None:
        self.close_count += 1
        if self.close_error is not None:
            raise self.close_error


class RecordingStorage(FragmentStorage):
    """Fragment storage that records every positional write."""

    def __init__(self, download_dir) -> None:
        super().__init__(download_dir)
        self.opened: List[str] = []
        self.writes: List[tuple] = []

    @asynccontextmanager
    async def open(self, name: str):
        self.opened.append(name)
        async with super().open(name) as writer:
            write_at = writer.write_at

            async def recording_write_at(offset: int, data: bytes) -> int:
                self.writes.append((name, offset, len(data)))
                return await write_at(offset, data)

            writer.write_at = recording_write_at
            yield writer


class FakeServer:
    """
    Minimal netstore server on localhost.

    Serves ``files``; refuses with the usual reason codes for unknown names,
    start addresses past the end of file and empty requests.
    """

    def __init__(
        self,
        files: Dict[str, bytes],
        refuse_listing: Optional[int] = None,
        refuse_fragment: Optional[int] = None,
    ) -> None:
        self.files = files
        self.refuse_listing = refuse_listing
        self.refuse_fragment = refuse_fragment
        self.list_requests = 0
        self.fragment_requests: List[tuple] = []
        self.port = 0
        self._server: Optional[asyncio.AbstractServer] = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, '127.0.0.1', 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            (msg_type,) = struct.unpack('!H', await reader.readexactly(2))
            assert msg_type == 1
            self.list_requests += 1

            if self.refuse_listing is not None:
                writer.write(header(2, self.refuse_listing))
                await writer.drain()
                return

            names = '|'.join(self.files).encode()
            writer.write(header(1, len(names)) + names)
            await writer.drain()

            msg_type, start, length, name_len = struct.unpack(
                '!HIIH', await reader.readexactly(12)
            )
            assert msg_type == 2
            name = (await reader.readexactly(name_len)).decode()
            self.fragment_requests.append((start, length, name))

            data = self.files.get(name)
            if self.refuse_fragment is not None:
                writer.write(header(2, self.refuse_fragment))
            elif data is None:
                writer.write(header(2, 1))
            elif start >= len(data):
                writer.write(header(2, 2))
            elif length == 0:
                writer.write(header(2, 3))
            else:
                body = data[start:start + length]
                writer.write(header(3, len(body)) + body)
            await writer.drain()
        finally:
            writer.close()


@asynccontextmanager
async def running_server(files: Dict[str, bytes], **kwargs):
    """Run a ``FakeServer`` for the duration of the block."""
    server = FakeServer(files, **kwargs)
    await server.start()
    try:
        yield server
    finally:
        await server.stop()
