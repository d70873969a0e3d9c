from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from file_transfer_server.app.services.download_service import DownloadService
from file_transfer_server.app.services.storage_manager import StorageManager
from file_transfer_server.app.services.upload_service import UploadService
from file_transfer_server.config import ServerConfig
from file_transfer_server.logger_config import setup_logger

# Logger setup
logger = setup_logger()

UPLOAD_STATUS_HEADER = "X-Upload-Status"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await app.state.storage_manager.initialize()
    yield


def create_app(server_config: ServerConfig) -> FastAPI:
    """Build the FastAPI app serving uploads and downloads for server_config."""
    app = FastAPI(title="File Transfer Server", lifespan=lifespan)

    storage_manager = StorageManager(server_config.storage_root)
    app.state.config = server_config
    app.state.storage_manager = storage_manager
    app.state.upload_service = UploadService(server_config, storage_manager)
    app.state.download_service = DownloadService(server_config, storage_manager)

    @app.post("/file/upload")
    async def upload_file(request: Request) -> Response:
        """Upload files from a multipart form.

        Failures are reported in the text body with status 200, the
        X-Upload-Status header carries the outcome in machine-readable form.
        """
        result = await request.app.state.upload_service.handle_upload(request)
        if not result.success:
            logger.warning(f"upload rejected: {result.message}")
        return PlainTextResponse(result.message, headers={UPLOAD_STATUS_HEADER: result.status})

    # Registered last so it doesn't shadow the upload route
    @app.get("/{file_path:path}")
    async def download_file(file_path: str, request: Request) -> Response:
        """Download a file stored under the storage root."""
        return await request.app.state.download_service.handle_download(request)

    return app


app = create_app(ServerConfig.from_env())


def main(argv: Optional[Sequence[str]] = None):
    server_config = ServerConfig.from_args(argv)
    setup_logger(server_config.log_dir)
    logger.info("Starting File Transfer Server...")
    logger.info(f"Storage root: {server_config.storage_root}")
    logger.info(f"Maximum upload size: {server_config.max_file_size / (1024*1024):.2f} MB")
    logger.info(f"listen on {server_config.host}:{server_config.port}...")
    uvicorn.run(create_app(server_config), host=server_config.host, port=server_config.port)


if __name__ == "__main__":
    main()
