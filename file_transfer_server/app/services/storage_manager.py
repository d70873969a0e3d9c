import os
from pathlib import Path
from typing import BinaryIO, Union

import aiofiles
import aiofiles.os
from aiofiles.threadpool.binary import AsyncBufferedReader
from starlette.datastructures import UploadFile

from file_transfer_server import config
from file_transfer_server.logger_config import setup_logger

logger = setup_logger()

CHUNK_SIZE = 8192  # 8KB chunks


class PathEscapesRoot(ValueError):
    """Raised when a requested path resolves outside the storage root."""

    def __init__(self, path: Union[str, Path], storage_root: Path):
        self.path = str(path)
        self.storage_root = storage_root
        super().__init__(f"path {self.path} escapes storage root {storage_root}")


class StorageManager:
    def __init__(self, storage_root: Path):
        self.storage_root = Path(storage_root)

    async def initialize(self):
        """Make sure the storage root exists before serving requests."""
        logger.info("Initializing storage manager...")
        await aiofiles.os.makedirs(self.storage_root, mode=config.DIR_MODE, exist_ok=True)
        logger.info(f"Storage root: {self.storage_root.resolve()}")

    def join(self, *parts: str) -> str:
        """Join path parts onto the storage root without resolving them."""
        return os.path.join(str(self.storage_root), self._relative(parts))

    def resolve(self, *parts: str) -> Path:
        """Join path parts onto the storage root.

        The joined path is normalized and must stay inside the storage root,
        otherwise PathEscapesRoot is raised. Parts are relative to the root
        even when they start with a separator. ``..`` segments are allowed as
        long as the result is still under the root.
        """
        root = self.storage_root.resolve()
        candidate = (root / self._relative(parts)).resolve()
        if candidate != root and root not in candidate.parents:
            raise PathEscapesRoot(self.join(*parts), self.storage_root)
        return candidate

    @staticmethod
    def _relative(parts) -> str:
        # A leading separator would make os.path.join drop the root
        return os.path.join(*(part.lstrip("/") for part in parts)) if parts else ""

    async def ensure_directory(self, subdir: str) -> Path:
        """Create subdir (and its parents) under the storage root if missing."""
        directory = self.resolve(subdir)
        await aiofiles.os.makedirs(directory, mode=config.DIR_MODE, exist_ok=True)
        logger.debug(f"Directory created/verified: {directory}")
        return directory

    async def write_file(self, subdir: str, filename: str, source: Union[UploadFile, BinaryIO]) -> int:
        """Stream source into storage_root/subdir/filename, truncating any existing file.

        Returns:
            int: number of bytes written
        """
        path = self.resolve(subdir, filename)
        try:
            dst = await aiofiles.open(path, 'wb')
        except OSError as e:
            logger.warning(f"file create error: {e}, path={path}")
            raise

        written = 0
        try:
            while chunk := await self._read_chunk(source):
                await dst.write(chunk)
                written += len(chunk)
        except OSError as e:
            logger.warning(f"file copy error: {e}, path={path}")
            raise
        finally:
            await dst.close()
        return written

    async def open_file(self, relative_path: str) -> AsyncBufferedReader:
        """Open a file under the storage root for reading."""
        path = self.resolve(relative_path)
        return await aiofiles.open(path, 'rb')

    async def file_size(self, handle: AsyncBufferedReader) -> int:
        """Size in bytes of an open file."""
        stat = await aiofiles.os.stat(handle.fileno())
        return stat.st_size

    @staticmethod
    async def _read_chunk(source: Union[UploadFile, BinaryIO]) -> bytes:
        if isinstance(source, UploadFile):
            return await source.read(CHUNK_SIZE)
        return source.read(CHUNK_SIZE)
