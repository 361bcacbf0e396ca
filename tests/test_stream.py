"""Tests for reliable stream reads and writes."""

from __future__ import annotations

import pytest

from netstore.exceptions import ChannelError, TruncatedMessage
from netstore.protocol.stream import (
    iter_body,
    read_exact,
    read_exact_or_eof,
    write_all,
)

from .conftest import FakeChannel


class TestWriteAll:
    """Tests for write_all."""

    @pytest.mark.asyncio
    async def test_single_write(self) -> None:
        channel = FakeChannel()
        await write_all(channel, b'hello')

        assert bytes(channel.sent) == b'hello'
        assert channel.write_calls == [5]

    @pytest.mark.asyncio
    async def test_short_writes_are_resumed(self) -> None:
        channel = FakeChannel(accept_sizes=[2, 1, 10])
        await write_all(channel, b'abcdef')

        assert bytes(channel.sent) == b'abcdef'
        assert channel.write_calls == [6, 4, 3]

    @pytest.mark.asyncio
    async def test_zero_accepted_is_an_error(self) -> None:
        channel = FakeChannel(accept_sizes=[3, 0])

        with pytest.raises(ChannelError, match="partial / failed write"):
            await write_all(channel, b'abcdef')

    @pytest.mark.asyncio
    async def test_channel_failure_is_wrapped(self) -> None:
        channel = FakeChannel(write_error=ConnectionResetError("reset"))

        with pytest.raises(ChannelError):
            await write_all(channel, b'x')

    @pytest.mark.asyncio
    async def test_empty_write_does_nothing(self) -> None:
        channel = FakeChannel()
        await write_all(channel, b'')
        assert channel.write_calls == []


class TestReadExactOrEof:
    """Tests for read_exact_or_eof."""

    @pytest.mark.asyncio
    async def test_accumulates_partial_reads(self) -> None:
        channel = FakeChannel([b'ab', b'c', b'def'])

        assert await read_exact_or_eof(channel, 6) == b'abcdef'
        assert channel.read_calls == [6, 4, 3]

    @pytest.mark.asyncio
    async def test_never_returns_more_than_requested(self) -> None:
        channel = FakeChannel([b'abcdef'])

        assert await read_exact_or_eof(channel, 4) == b'abcd'
        assert await read_exact_or_eof(channel, 4) == b'ef'

    @pytest.mark.asyncio
    async def test_short_only_at_end_of_stream(self) -> None:
        channel = FakeChannel([b'ab', b'c'])

        assert await read_exact_or_eof(channel, 10) == b'abc'
        # The last read hit end-of-stream
        assert channel.read_calls[-1] == 7

    @pytest.mark.asyncio
    async def test_zero_bytes_requested(self) -> None:
        channel = FakeChannel([b'ab'])

        assert await read_exact_or_eof(channel, 0) == b''
        assert channel.read_calls == []

    @pytest.mark.asyncio
    async def test_read_failure_is_wrapped(self) -> None:
        channel = FakeChannel(read_error=ConnectionResetError("reset"))

        with pytest.raises(ChannelError):
            await read_exact_or_eof(channel, 1)


class TestReadExact:
    """Tests for read_exact."""

    @pytest.mark.asyncio
    async def test_complete(self) -> None:
        assert await read_exact(FakeChannel([b'a', b'bc']), 3) == b'abc'

    @pytest.mark.asyncio
    async def test_truncated(self) -> None:
        with pytest.raises(TruncatedMessage) as exc_info:
            await read_exact(FakeChannel([b'ab']), 6, 'server message')

        assert exc_info.value.expected == 6
        assert exc_info.value.received == 2
        assert isinstance(exc_info.value, ChannelError)


class TestIterBody:
    """Tests for iter_body."""

    @pytest.mark.asyncio
    async def test_yields_each_delivery(self) -> None:
        channel = FakeChannel([b'a' * 40, b'b' * 60])

        parts = [part async for part in iter_body(channel, 100, 512000)]
        assert [len(p) for p in parts] == [40, 60]

    @pytest.mark.asyncio
    async def test_reads_are_bounded_by_chunk_size(self) -> None:
        channel = FakeChannel([b'x' * 25])

        parts = [part async for part in iter_body(channel, 25, 10)]
        assert [len(p) for p in parts] == [10, 10, 5]
        assert channel.read_calls == [10, 10, 5]

    @pytest.mark.asyncio
    async def test_stops_at_total(self) -> None:
        channel = FakeChannel([b'abc', b'trailing'])

        parts = [part async for part in iter_body(channel, 3, 10)]
        assert parts == [b'abc']
        assert channel.deliveries == [b'trailing']

    @pytest.mark.asyncio
    async def test_stops_at_end_of_stream(self) -> None:
        channel = FakeChannel([b'abc'])

        parts = [part async for part in iter_body(channel, 100, 10)]
        assert parts == [b'abc']

    @pytest.mark.asyncio
    async def test_empty_body_reads_nothing(self) -> None:
        channel = FakeChannel([b'abc'])

        parts = [part async for part in iter_body(channel, 0, 10)]
        assert parts == []
        assert channel.read_calls == []

    @pytest.mark.asyncio
    async def test_rejects_non_positive_chunk_size(self) -> None:
        with pytest.raises(ValueError):
            async for _ in iter_body(FakeChannel(), 1, 0):
                pass
