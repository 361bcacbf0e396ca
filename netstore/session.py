"""
Client Session - Main Controller

Sequences one client run over one connection:
1. Request the file listing
2. Let the caller pick a file and a byte range
3. Request that fragment and store it locally

Session states:
```
CONNECTING -> LISTING_REQUESTED -> LISTING_RECEIVED -> SELECTION_MADE
           -> FRAGMENT_REQUESTED -> FRAGMENT_RECEIVED -> CLOSED

LISTING_REQUESTED / FRAGMENT_REQUESTED -> REFUSED
```

Each step runs exactly once per connection. A refusal ends the session
cleanly; any other error propagates to the caller. The connection is closed
in every case.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from .exceptions import ChannelError, InvalidRange, ServerRefusal, SessionStateError
from .file.storage import FragmentStorage
from .protocol.messages import MAX_UINT32
from .protocol.stream import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_PORT,
    Channel,
    open_channel,
)
from .transfer.fragment import DEFAULT_CHUNK_SIZE, FragmentResult, request_fragment
from .transfer.listing import FileListing, request_listing, resolve_name

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Client session states."""
    CONNECTING = "connecting"
    LISTING_REQUESTED = "listing_requested"
    LISTING_RECEIVED = "listing_received"
    SELECTION_MADE = "selection_made"
    FRAGMENT_REQUESTED = "fragment_requested"
    FRAGMENT_RECEIVED = "fragment_received"
    CLOSED = "closed"
    REFUSED = "refused"


@dataclass
class UserCommand:
    """The caller's choice of file and byte range ``[start_addr, end_addr)``."""
    file_id: int
    start_addr: int
    end_addr: int

    @property
    def length(self) -> int:
        return self.end_addr - self.start_addr


def validate_range(command: UserCommand):
    """
    Check that a command's range can be sent to the server.

    Raises:
        InvalidRange: If the range is reversed or does not fit in uint32
    """
    if not 0 <= command.start_addr <= MAX_UINT32:
        raise InvalidRange(f"Start address out of range: {command.start_addr}")
    if not 0 <= command.end_addr <= MAX_UINT32:
        raise InvalidRange(f"End address out of range: {command.end_addr}")
    if command.end_addr < command.start_addr:
        raise InvalidRange(
            f"End address {command.end_addr} is before start address {command.start_addr}"
        )


@dataclass
class SessionOutcome:
    """Summary of a finished session."""
    state: SessionState
    file_name: Optional[str] = None
    command: Optional[UserCommand] = None
    fragment: Optional[FragmentResult] = None
    refusal: Optional[ServerRefusal] = None

    @property
    def refused(self) -> bool:
        return self.refusal is not None


# Picks the file and range once the listing is known
ChooseCallback = Callable[[FileListing], Union[UserCommand, Awaitable[UserCommand]]]


class Session:
    """
    One listing request and one fragment request over one connection.

    Usage:
        session = Session(channel, storage)
        listing = await session.fetch_listing()
        session.select(UserCommand(file_id=0, start_addr=0, end_addr=100))
        result = await session.fetch_fragment()
        await session.close()
    """

    def __init__(self, channel: Channel, storage: FragmentStorage,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.channel = channel
        self.storage = storage
        self.chunk_size = chunk_size

        self.listing: Optional[FileListing] = None
        self.command: Optional[UserCommand] = None
        self.file_name: Optional[str] = None
        self.fragment: Optional[FragmentResult] = None

        self._state = SessionState.CONNECTING
        self._channel_closed = False

    @property
    def state(self) -> SessionState:
        return self._state

    def _require(self, expected: SessionState, operation: str):
        if self._state != expected:
            raise SessionStateError(
                f"Cannot {operation} in state {self._state.value} "
                f"(expected {expected.value})"
            )

    async def fetch_listing(self) -> FileListing:
        """Request the file listing."""
        self._require(SessionState.CONNECTING, 'request listing')
        self._state = SessionState.LISTING_REQUESTED

        try:
            listing = await request_listing(self.channel)
        except ServerRefusal:
            self._state = SessionState.REFUSED
            raise

        self.listing = listing
        self._state = SessionState.LISTING_RECEIVED
        return listing

    def select(self, command: UserCommand) -> str:
        """
        Resolve the caller's choice to a file name.

        The listing is released once the name is known.

        Raises:
            InvalidRange: If the byte range is invalid
            InvalidSelection: If the file id is not in the listing
        """
        self._require(SessionState.LISTING_RECEIVED, 'select a file')

        validate_range(command)
        name = resolve_name(self.listing, command.file_id)

        self.command = command
        self.file_name = name
        self.listing = None
        self._state = SessionState.SELECTION_MADE

        logger.debug(
            f"Selected {name} [{command.start_addr}, {command.end_addr})"
        )
        return name

    async def fetch_fragment(self) -> FragmentResult:
        """Request the selected fragment and store it."""
        self._require(SessionState.SELECTION_MADE, 'request fragment')
        self._state = SessionState.FRAGMENT_REQUESTED

        try:
            result = await request_fragment(
                self.channel,
                self.storage,
                self.file_name,
                self.command.start_addr,
                self.command.length,
                chunk_size=self.chunk_size,
            )
        except ServerRefusal:
            self._state = SessionState.REFUSED
            raise

        self.fragment = result
        self._state = SessionState.FRAGMENT_RECEIVED
        return result

    async def close(self, suppress_errors: bool = False):
        """
        Close the connection (only the first call has any effect).

        Args:
            suppress_errors: Log a failed close instead of raising it. Used
                while another error is already propagating.

        Raises:
            ChannelError: If closing fails and ``suppress_errors`` is false
        """
        if self._channel_closed:
            return
        self._channel_closed = True

        if self._state == SessionState.FRAGMENT_RECEIVED:
            self._state = SessionState.CLOSED

        try:
            await self.channel.close()
        except ChannelError as e:
            if not suppress_errors:
                raise
            logger.debug(f"Ignoring close failure after an earlier error: {e}")
            return
        logger.debug(f"Connection closed in state {self._state.value}")


async def run_session(host: str, choose: ChooseCallback,
                      storage: FragmentStorage,
                      port: int = DEFAULT_PORT,
                      chunk_size: int = DEFAULT_CHUNK_SIZE,
                      connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                      connect=None) -> SessionOutcome:
    """
    Run a complete session against one server.

    Args:
        host: Server name or IPv4 address
        choose: Called with the listing; returns the ``UserCommand`` to run
            (may be a coroutine function)
        storage: Where the fragment is written
        port: Server port
        chunk_size: Upper bound of a single read of the fragment body
        connect_timeout: Seconds to wait for the connection
        connect: Channel factory, ``open_channel`` if not given

    Returns:
        SessionOutcome; ``refused`` is set if the server declined a request

    Raises:
        NetstoreError: On any fatal fault
    """
    connect = connect or open_channel
    channel = await connect(host, port, timeout=connect_timeout)
    session = Session(channel, storage, chunk_size=chunk_size)
    refusal: Optional[ServerRefusal] = None

    try:
        listing = await session.fetch_listing()

        command = choose(listing)
        if inspect.isawaitable(command):
            command = await command

        session.select(command)
        await session.fetch_fragment()
    except ServerRefusal as e:
        logger.debug(f"Server refused request: code {e.code}")
        refusal = e
    except BaseException:
        # Keep the error that ended the session
        await session.close(suppress_errors=True)
        raise

    await session.close()

    return SessionOutcome(
        state=session.state,
        file_name=session.file_name,
        command=session.command,
        fragment=session.fragment,
        refusal=refusal,
    )
