"""
Protocol Module - Wire Messages and Stream I/O

Encodes requests, decodes server headers, and moves bytes reliably over
the connection.
"""

from .messages import (
    FILES_NAMES_REQUEST,
    FILE_FRAGMENT_REQUEST,
    FILES_NAMES_RESPONSE,
    SERVER_REFUSAL,
    SERVER_MESSAGE_SIZE,
    RefusalReason,
    ServerMessage,
    decode_server_message,
    encode_fragment_request,
    encode_list_request,
    refusal_message,
)
from .stream import (
    DEFAULT_PORT,
    Channel,
    StreamChannel,
    iter_body,
    open_channel,
    read_exact,
    read_exact_or_eof,
    write_all,
)

__all__ = [
    'FILES_NAMES_REQUEST',
    'FILE_FRAGMENT_REQUEST',
    'FILES_NAMES_RESPONSE',
    'SERVER_REFUSAL',
    'SERVER_MESSAGE_SIZE',
    'RefusalReason',
    'ServerMessage',
    'decode_server_message',
    'encode_fragment_request',
    'encode_list_request',
    'refusal_message',
    'DEFAULT_PORT',
    'Channel',
    'StreamChannel',
    'iter_body',
    'open_channel',
    'read_exact',
    'read_exact_or_eof',
    'write_all',
]
