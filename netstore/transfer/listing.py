"""
Listing Exchange

Asks the server which files it offers. The answer is a header carrying the
byte length of the name list, followed by the names separated by ``|``:

```
+----------------+------------------+-------------------------------+
| type=1 (2B)    | list_len (4B)    | name0|name1|...|nameN          |
+----------------+------------------+-------------------------------+
```

A file's id is its position in this list.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from ..exceptions import InvalidSelection, ServerRefusal
from ..protocol.messages import (
    FILES_NAMES_RESPONSE,
    SERVER_MESSAGE_SIZE,
    ServerMessage,
    decode_name,
    decode_server_message,
    encode_list_request,
    refusal_message,
)
from ..protocol.stream import Channel, read_exact, write_all

logger = logging.getLogger(__name__)

NAME_SEPARATOR = b'|'


@dataclass
class FileListing:
    """Ordered file names offered by the server."""
    names: List[str] = field(default_factory=list)
    declared_length: Optional[int] = None

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __getitem__(self, file_id: int) -> str:
        return self.names[file_id]


def parse_listing(data: bytes, declared_length: Optional[int] = None) -> FileListing:
    """
    Split a raw name list into names.

    A single trailing separator is ignored; an empty buffer is an empty
    listing.
    """
    if not data:
        return FileListing(names=[], declared_length=declared_length)

    parts = data.split(NAME_SEPARATOR)
    if parts[-1] == b'':
        parts.pop()

    return FileListing(
        names=[decode_name(part) for part in parts],
        declared_length=declared_length,
    )


def resolve_name(listing: FileListing, file_id: int) -> str:
    """
    Get the name of the file with the given id.

    Raises:
        InvalidSelection: If ``file_id`` is not in ``[0, len(listing))``
    """
    if not 0 <= file_id < len(listing):
        raise InvalidSelection(file_id, len(listing))
    return listing[file_id]


def format_listing(listing: FileListing) -> List[str]:
    """Render the listing as ``id.name`` lines."""
    return [f"{file_id}.{name}" for file_id, name in enumerate(listing)]


async def receive_server_message(channel: Channel) -> ServerMessage:
    """
    Receive a server message header.

    Raises:
        ServerRefusal: If the server refused the request
        TruncatedMessage: If the stream ends inside the header
    """
    raw = await read_exact(channel, SERVER_MESSAGE_SIZE, 'server message')
    message = decode_server_message(raw)
    logger.debug(f"Server message received: {message.msg_type} {message.param}")

    if message.is_refusal:
        raise ServerRefusal(
            message.param,
            reason=message.refusal_reason,
            message=refusal_message(message.param),
        )
    return message


async def request_listing(channel: Channel) -> FileListing:
    """
    Request the list of files the server offers.

    Raises:
        ServerRefusal: If the server refused the request
        TruncatedMessage: If the stream ends before the whole list arrived
        ChannelError: If the connection fails
    """
    logger.debug("Sending files names request")
    await write_all(channel, encode_list_request())

    message = await receive_server_message(channel)
    if message.msg_type != FILES_NAMES_RESPONSE:
        logger.warning(
            f"Unexpected message type {message.msg_type} in reply to files "
            f"names request, reading {message.param} bytes as the list"
        )

    data = await read_exact(channel, message.param, 'files names list')
    listing = parse_listing(data, declared_length=message.param)

    logger.info(f"Server offers {len(listing)} files")
    return listing
