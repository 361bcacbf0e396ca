"""
Fragment Exchange

Design Decision: Fragment Body Handling
=======================================

Options Considered:
1. Read the whole body into memory, then write it
   - Memory grows with the fragment size

2. Fill a fixed buffer, write it, repeat
   - Bounded memory
   - Delays writes until the buffer is full

3. Write every read as it arrives, bounded by the chunk size
   - Bounded memory
   - The file always holds exactly what was received

Decision: Option 3
- Each read asks for at most ``min(chunk_size, remaining)`` bytes
- Each non-empty read is written at the current cursor
- The stream ending early is not an error; the result reports how many
  bytes actually arrived so callers can detect truncation

Download Flow:
1. Send fragment request (start, length, name)
2. Receive server message; a refusal stops here and nothing is written
3. Stream ``param`` bytes of body into the destination file at ``start``
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..file.storage import FragmentStorage
from ..protocol.messages import encode_fragment_request
from ..protocol.stream import Channel, iter_body, write_all
from .listing import receive_server_message

logger = logging.getLogger(__name__)

# Bulk transfer chunk size: 500KB
DEFAULT_CHUNK_SIZE = 512000


@dataclass
class FragmentResult:
    """Outcome of one fragment download."""
    name: str
    path: Path
    start: int
    declared_length: int
    received_length: int = 0

    @property
    def truncated(self) -> bool:
        """True if the server closed the stream before the whole body arrived."""
        return self.received_length < self.declared_length

    @property
    def end(self) -> int:
        """Offset one past the last byte written."""
        return self.start + self.received_length


async def request_fragment(channel: Channel, storage: FragmentStorage,
                           name: str, start: int, length: int,
                           chunk_size: int = DEFAULT_CHUNK_SIZE) -> FragmentResult:
    """
    Download ``length`` bytes of ``name`` starting at ``start``.

    The bytes are written to the file of the same name in ``storage`` at
    the same offsets they have in the remote file.

    Raises:
        ServerRefusal: If the server refused the request
        ChannelError: If the connection fails
        StorageError: If the fragment cannot be written
    """
    logger.debug(f"Sending file fragment request: {name} start={start} length={length}")
    await write_all(channel, encode_fragment_request(start, length, name))

    message = await receive_server_message(channel)
    result = FragmentResult(
        name=name,
        path=storage.path_for(name),
        start=start,
        declared_length=message.param,
    )

    async with storage.open(name) as writer:
        cursor = start
        async for chunk in iter_body(channel, message.param, chunk_size):
            await writer.write_at(cursor, chunk)
            cursor += len(chunk)
            result.received_length += len(chunk)

    if result.truncated:
        logger.warning(
            f"Connection closed after {result.received_length} of "
            f"{result.declared_length} fragment bytes"
        )
    logger.info(f"Saved {result.received_length:,} bytes of {name} to {result.path}")
    return result
