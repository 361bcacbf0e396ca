"""
Wire Messages

Design Decision: Message Framing
================================

The server speaks a fixed-layout binary protocol. Every integer is sent in
network byte order and every header has a fixed size, so a plain ``struct``
format describes each message completely.

Message Format:
```
List request:
+----------------+
| type=1 (2B)    |
+----------------+

Fragment request:
+----------------+------------------+---------------------+------------------+-----------+
| type=2 (2B)    | start_addr (4B)  | bytes_to_send (4B)  | name_len (2B)    | name      |
+----------------+------------------+---------------------+------------------+-----------+

Server message:
+----------------+------------------+
| type (2B)      | param (4B)       |
+----------------+------------------+
```

Server message types:
- 1: files names response, ``param`` is the length of the name list
- 2: refusal, ``param`` is the reason code
- anything else: fragment response, ``param`` is the length of the body
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

# Request types
FILES_NAMES_REQUEST = 1
FILE_FRAGMENT_REQUEST = 2

# Server message types
FILES_NAMES_RESPONSE = 1
SERVER_REFUSAL = 2

LIST_REQUEST_FORMAT = '!H'
FRAGMENT_REQUEST_FORMAT = '!HIIH'
SERVER_MESSAGE_FORMAT = '!HI'

FRAGMENT_REQUEST_HEADER_SIZE = struct.calcsize(FRAGMENT_REQUEST_FORMAT)  # 12
SERVER_MESSAGE_SIZE = struct.calcsize(SERVER_MESSAGE_FORMAT)  # 6

MAX_UINT16 = 0xFFFF
MAX_UINT32 = 0xFFFFFFFF
MAX_FILE_NAME_LEN = MAX_UINT16

# File names travel as raw bytes; surrogateescape keeps undecodable
# bytes intact when a name goes back onto the wire.
NAME_ENCODING = 'utf-8'
NAME_ERRORS = 'surrogateescape'


class RefusalReason(IntEnum):
    """Reason codes carried by a server refusal."""
    WRONG_FILE_NAME = 1
    WRONG_FRAGMENT_ADDRESS = 2
    NO_FRAGMENT_SIZE = 3


REFUSAL_MESSAGES = {
    RefusalReason.WRONG_FILE_NAME: "file transfer: wrong file name",
    RefusalReason.WRONG_FRAGMENT_ADDRESS: "file transfer: wrong fragment address",
    RefusalReason.NO_FRAGMENT_SIZE: "file transfer: no fragment size",
}

UNKNOWN_REFUSAL_MESSAGE = "server_msg unknown error"


@dataclass(frozen=True)
class ServerMessage:
    """A decoded server message header."""
    msg_type: int
    param: int

    @property
    def is_refusal(self) -> bool:
        return self.msg_type == SERVER_REFUSAL

    @property
    def refusal_reason(self) -> Optional[RefusalReason]:
        """Known refusal reason, or None if unknown or not a refusal."""
        if not self.is_refusal:
            return None
        try:
            return RefusalReason(self.param)
        except ValueError:
            return None

    def to_bytes(self) -> bytes:
        """Serialize to the wire layout."""
        return struct.pack(SERVER_MESSAGE_FORMAT, self.msg_type, self.param)


def encode_name(name: Union[str, bytes]) -> bytes:
    """Convert a file name to its raw wire bytes."""
    if isinstance(name, bytes):
        return name
    return name.encode(NAME_ENCODING, NAME_ERRORS)


def decode_name(raw: bytes) -> str:
    """Convert raw wire bytes to a file name."""
    return raw.decode(NAME_ENCODING, NAME_ERRORS)


def encode_list_request() -> bytes:
    """Build a files names request."""
    return struct.pack(LIST_REQUEST_FORMAT, FILES_NAMES_REQUEST)


def encode_fragment_request(start: int, length: int,
                            name: Union[str, bytes]) -> bytes:
    """
    Build a file fragment request.

    Args:
        start: Offset of the first requested byte
        length: Number of bytes requested
        name: Remote file name

    Returns:
        Header followed by the raw name bytes (no terminator)

    Raises:
        ValueError: If a field does not fit its wire width
    """
    raw_name = encode_name(name)

    if not 0 <= start <= MAX_UINT32:
        raise ValueError(f"start_addr out of range for uint32: {start}")
    if not 0 <= length <= MAX_UINT32:
        raise ValueError(f"bytes_to_send out of range for uint32: {length}")
    if len(raw_name) > MAX_FILE_NAME_LEN:
        raise ValueError(f"File name too long: {len(raw_name)} bytes")

    header = struct.pack(
        FRAGMENT_REQUEST_FORMAT,
        FILE_FRAGMENT_REQUEST,
        start,
        length,
        len(raw_name),
    )
    return header + raw_name


def decode_server_message(raw: bytes) -> ServerMessage:
    """
    Decode a 6-byte server message header.

    Raises:
        ValueError: If ``raw`` is not exactly 6 bytes
    """
    if len(raw) != SERVER_MESSAGE_SIZE:
        raise ValueError(
            f"Server message must be {SERVER_MESSAGE_SIZE} bytes, got {len(raw)}"
        )
    msg_type, param = struct.unpack(SERVER_MESSAGE_FORMAT, raw)
    return ServerMessage(msg_type=msg_type, param=param)


def refusal_message(code: int) -> str:
    """User-visible text for a refusal reason code."""
    try:
        return REFUSAL_MESSAGES[RefusalReason(code)]
    except ValueError:
        return UNKNOWN_REFUSAL_MESSAGE
