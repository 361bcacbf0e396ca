"""
Fragment Storage

Design Decision: Storage Strategy
==================================

Options Considered:
1. Download into memory, write the file at the end
   - Simple, but the whole fragment must fit in memory

2. Write every received chunk at its offset as it arrives
   - Bounded memory
   - Interrupted transfers keep what was written

Decision: Positional writes as chunks arrive
- The destination file is opened read/write without truncation
- Every chunk is written at ``start + bytes_written_so_far``
- Re-requesting a range overwrites only that range

Storage Layout:
```
tmp/                  # download directory (configurable)
└── <file name>       # one file per remote name, sparse until filled
```
"""

import logging
import os
from pathlib import Path
from typing import AsyncIterator, Union
from contextlib import asynccontextmanager

import aiofiles
import aiofiles.os

from ..exceptions import StorageError

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_DIR = Path('./tmp')


class FragmentWriter:
    """Positional writer over one open destination file."""

    def __init__(self, path: Path, handle):
        self.path = path
        self._handle = handle
        self.bytes_written = 0

    async def write_at(self, offset: int, data: bytes) -> int:
        """
        Write ``data`` at ``offset``.

        Returns:
            Number of bytes written
        """
        try:
            await self._handle.seek(offset, os.SEEK_SET)
            written = await self._handle.write(data)
        except OSError as e:
            raise StorageError(f"write to {self.path} at {offset}: {e}") from e

        if written != len(data):
            raise StorageError(
                f"partial / failed write to file {self.path}: "
                f"{written} of {len(data)} bytes"
            )

        self.bytes_written += written
        logger.debug(f"Wrote {written} bytes to {self.path.name} at offset {offset}")
        return written


class FragmentStorage:
    """
    Local storage for downloaded fragments.

    Provides:
    - Download directory creation on demand
    - Destination path resolution confined to the download directory
    - Positional writes into existing or new files
    """

    def __init__(self, download_dir: Union[str, Path] = DEFAULT_DOWNLOAD_DIR):
        """
        Initialize fragment storage.

        Args:
            download_dir: Directory that receives downloaded files
        """
        self.download_dir = Path(download_dir)

    def path_for(self, name: str) -> Path:
        """
        Get filesystem path for a remote file name.

        Raises:
            StorageError: If the name would resolve outside the download directory
        """
        if not name or name in ('.', '..') or '/' in name or '\\' in name or '\0' in name:
            raise StorageError(f"Refusing to store file with unsafe name: {name!r}")
        return self.download_dir / name

    async def _ensure_directory(self):
        """Create the download directory if it doesn't exist."""
        try:
            await aiofiles.os.makedirs(self.download_dir, exist_ok=True)
        except OSError as e:
            raise StorageError(f"dir creation {self.download_dir}: {e}") from e

    @asynccontextmanager
    async def open(self, name: str) -> AsyncIterator[FragmentWriter]:
        """
        Open the destination file for positional writes.

        The file is created if absent and never truncated.
        """
        path = self.path_for(name)
        await self._ensure_directory()

        try:
            # Create without truncating, then reopen for random access
            async with aiofiles.open(path, 'ab'):
                pass
            handle = await aiofiles.open(path, 'r+b')
        except OSError as e:
            raise StorageError(f"file opening {path}: {e}") from e

        logger.debug(f"Opened {path} for writing")
        try:
            yield FragmentWriter(path, handle)
        except BaseException:
            # Keep the error raised inside the block
            try:
                await handle.close()
            except OSError as e:
                logger.debug(f"Ignoring close failure of {path} after an earlier error: {e}")
            raise

        try:
            await handle.close()
        except OSError as e:
            raise StorageError(f"file closing {path}: {e}") from e
