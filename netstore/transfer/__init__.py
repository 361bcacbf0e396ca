"""
Transfer Module - Listing and Fragment Exchanges

Request/response sequences run over one connection to the server.
"""

from .listing import (
    FileListing,
    format_listing,
    parse_listing,
    receive_server_message,
    request_listing,
    resolve_name,
)
from .fragment import DEFAULT_CHUNK_SIZE, FragmentResult, request_fragment

__all__ = [
    'FileListing',
    'format_listing',
    'parse_listing',
    'receive_server_message',
    'request_listing',
    'resolve_name',
    'DEFAULT_CHUNK_SIZE',
    'FragmentResult',
    'request_fragment',
]
