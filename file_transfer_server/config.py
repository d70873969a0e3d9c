"""Configuration settings for the File Transfer Server."""
import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

# Upload limits
MAX_FILE_SIZE = int(os.getenv("FILE_SERVER_MAX_FILE_SIZE", 20 * 1024 * 1024))  # 20MB
MAX_FILES_PER_FIELD = int(os.getenv("FILE_SERVER_MAX_FILES_PER_FIELD", 100))

# Directory paths
STORAGE_ROOT = os.getenv("FILE_SERVER_ROOT", os.path.join(".", "public", "uploads"))
LOG_DIR = os.getenv("FILE_SERVER_LOG_DIR", "logs")

# Permissions for directories created under the storage root
DIR_MODE = 0o755

# Downloads are served as application/octet-stream unless this is enabled
SERVE_RESOLVED_CONTENT_TYPE = os.getenv("FILE_SERVER_SERVE_RESOLVED_CONTENT_TYPE", "false").lower() == "true"

# Listener
HOST = os.getenv("FILE_SERVER_HOST", "0.0.0.0")
PORT = int(os.getenv("FILE_SERVER_PORT", 8080))


@dataclass
class ServerConfig:
    storage_root: Path
    max_file_size: int = MAX_FILE_SIZE
    max_files_per_field: int = MAX_FILES_PER_FIELD
    serve_resolved_content_type: bool = SERVE_RESOLVED_CONTENT_TYPE
    host: str = HOST
    port: int = PORT
    log_dir: str = LOG_DIR

    def __post_init__(self):
        self.storage_root = Path(self.storage_root)
        if self.max_file_size <= 0:
            raise ValueError("max_file_size must be positive")
        if self.max_files_per_field <= 0:
            raise ValueError("max_files_per_field must be positive")

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        """Create ServerConfig from the module defaults and environment."""
        return cls(storage_root=Path(STORAGE_ROOT))

    @classmethod
    def from_args(cls, argv: Optional[Sequence[str]] = None) -> 'ServerConfig':
        """Create ServerConfig from command line arguments."""
        parser = argparse.ArgumentParser(description='HTTP file upload and download server')
        parser.add_argument('--root', default=STORAGE_ROOT,
                           help='Directory uploaded files are stored under')
        parser.add_argument('--max-file-size', type=int, default=MAX_FILE_SIZE,
                           help='Maximum upload request size in bytes')
        parser.add_argument('--max-files-per-field', type=int, default=MAX_FILES_PER_FIELD,
                           help='Maximum number of attachments in one form field')
        parser.add_argument('--host', default=HOST, help='Address to listen on')
        parser.add_argument('--port', type=int, default=PORT, help='Port to listen on')
        parser.add_argument('--log-dir', default=LOG_DIR, help='Directory for log files')
        parser.add_argument('--serve-resolved-content-type', action='store_true',
                           default=SERVE_RESOLVED_CONTENT_TYPE,
                           help='Serve the extension-based content type instead of application/octet-stream')
        args = parser.parse_args(argv)

        return cls(
            storage_root=Path(args.root),
            max_file_size=args.max_file_size,
            max_files_per_field=args.max_files_per_field,
            serve_resolved_content_type=args.serve_resolved_content_type,
            host=args.host,
            port=args.port,
            log_dir=args.log_dir
        )
