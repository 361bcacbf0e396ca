"""
Exception hierarchy for the netstore client.

Library code raises these; only the command line decides how a failure
maps to an exit status.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .protocol.messages import RefusalReason


class NetstoreError(Exception):
    """
    Base exception for all netstore errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ChannelError(NetstoreError):
    """Raised when connecting, reading or writing on the channel fails."""


class TruncatedMessage(ChannelError):
    """
    Raised when the stream ends before a complete message arrived.

    Attributes:
        what: The message being read.
        expected: Number of bytes expected.
        received: Number of bytes actually received.
    """

    def __init__(self, what: str, expected: int, received: int):
        self.what = what
        self.expected = expected
        self.received = received
        super().__init__(
            f"Connection closed while reading {what}: "
            f"expected {expected} bytes, got {received}"
        )


class ServerRefusal(NetstoreError):
    """
    Raised when the server declines a request.

    Attributes:
        code: Raw reason code sent by the server.
        reason: Known reason, or None for unknown codes.
    """

    def __init__(self, code: int, reason: Optional['RefusalReason'] = None,
                 message: Optional[str] = None):
        self.code = code
        self.reason = reason
        super().__init__(message or f"server refused request (code {code})")


class InvalidSelection(NetstoreError):
    """
    Raised when a file id does not name a file in the listing.

    Attributes:
        file_id: The requested id.
        count: Number of files in the listing.
    """

    def __init__(self, file_id: int, count: int):
        self.file_id = file_id
        self.count = count
        if count:
            msg = f"Invalid file id {file_id} (valid range: [0, {count - 1}])"
        else:
            msg = f"Invalid file id {file_id}: the server listed no files"
        super().__init__(msg)


class InvalidRange(NetstoreError):
    """Raised when a requested byte range cannot be encoded or is reversed."""


class StorageError(NetstoreError):
    """Raised when the fragment cannot be written to local storage."""


class SessionStateError(NetstoreError):
    """Raised when a session operation is invoked in the wrong state."""
