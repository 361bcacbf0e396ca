"""
Netstore Client

Lists the files a netstore server offers and downloads a byte range of one
of them over a single TCP connection.
"""

from .exceptions import (
    NetstoreError,
    ChannelError,
    TruncatedMessage,
    ServerRefusal,
    InvalidSelection,
    InvalidRange,
    StorageError,
    SessionStateError,
)
from .session import Session, SessionOutcome, SessionState, UserCommand, run_session

__version__ = '0.1.0'

__all__ = [
    'NetstoreError',
    'ChannelError',
    'TruncatedMessage',
    'ServerRefusal',
    'InvalidSelection',
    'InvalidRange',
    'StorageError',
    'SessionStateError',
    'Session',
    'SessionOutcome',
    'SessionState',
    'UserCommand',
    'run_session',
]
