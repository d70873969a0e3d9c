import re
from typing import AsyncIterator
from urllib.parse import quote, unquote_plus

from aiofiles.threadpool.binary import AsyncBufferedReader
from fastapi import Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from file_transfer_server.app.services.content_types import served_content_type
from file_transfer_server.app.services.storage_manager import CHUNK_SIZE, PathEscapesRoot, StorageManager
from file_transfer_server.config import ServerConfig
from file_transfer_server.logger_config import setup_logger

logger = setup_logger()

FAVICON_PATH = "/favicon.ico"

# '%' not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def query_unescape(value: str) -> str:
    """Decode a percent-encoded path, '+' meaning space.

    Raises:
        ValueError: on a malformed escape or bytes that are not UTF-8
    """
    match = _BAD_ESCAPE.search(value)
    if match:
        escape = value[match.start():match.start() + 3]
        raise ValueError(f'invalid URL escape "{escape}"')
    return unquote_plus(value, errors="strict")


def raw_request_path(request: Request) -> str:
    """Request path as sent by the client, still percent-encoded and without the query."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return raw_path.decode("latin-1").split("?", 1)[0]
    return quote(request.url.path)


class DownloadService:
    def __init__(self, server_config: ServerConfig, storage_manager: StorageManager):
        self.config = server_config
        self.storage_manager = storage_manager

    async def handle_download(self, request: Request) -> Response:
        """Serve the file the request path points at, relative to the storage root."""
        raw_path = raw_request_path(request)
        if raw_path == FAVICON_PATH:
            return Response(status_code=200)

        logger.info(f"download url={raw_path}")

        filename = raw_path[1:]
        try:
            relative_path = query_unescape(filename)
        except ValueError as e:
            return PlainTextResponse(str(e))

        try:
            handle = await self.storage_manager.open_file(relative_path)
        except (OSError, PathEscapesRoot) as e:
            logger.info(f"download not found, path={relative_path}, err: {e}")
            return PlainTextResponse(str(e), status_code=404)

        try:
            size = await self.storage_manager.file_size(handle)
        except OSError as e:
            await handle.close()
            return PlainTextResponse(str(e))

        content_type = served_content_type(filename, self.config.serve_resolved_content_type)
        headers = {
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Length": str(size),
        }
        return StreamingResponse(self._iter_file(handle, relative_path),
                                 media_type=content_type, headers=headers)

    @staticmethod
    async def _iter_file(handle: AsyncBufferedReader, relative_path: str) -> AsyncIterator[bytes]:
        try:
            await handle.seek(0)
            while chunk := await handle.read(CHUNK_SIZE):
                yield chunk
        except OSError as e:
            # Headers are already sent, the client only sees a short body
            logger.warning(f"download copy error: {e}, path={relative_path}")
        finally:
            await handle.close()
