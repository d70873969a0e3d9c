import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from file_transfer_server.config import ServerConfig
from file_transfer_server.main import create_app

BOUNDARY = "testboundary"


@pytest.fixture
def storage_root(tmp_path) -> Path:
    """Isolated storage root for each test."""
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def server_config(storage_root) -> ServerConfig:
    return ServerConfig(storage_root=storage_root)


@pytest.fixture
def client(server_config) -> TestClient:
    return TestClient(create_app(server_config))


def generate_random_content(size_bytes):
    """Generate random binary content of specified size."""
    return os.urandom(size_bytes)


def build_multipart(fields, files=()):
    """Build a multipart/form-data body by hand.

    Lets tests send shapes a client library won't produce, like a form with
    only scalar fields or a file field with an empty name.
    """
    parts = []
    for name, value in fields:
        parts.append(
            f'--{BOUNDARY}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
            + value.encode() + b"\r\n"
        )
    for name, filename, content in files:
        parts.append(
            f'--{BOUNDARY}\r\nContent-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            f'Content-Type: application/octet-stream\r\n\r\n'.encode()
            + content + b"\r\n"
        )
    body = b"".join(parts) + f"--{BOUNDARY}--\r\n".encode()
    headers = {"Content-Type": f"multipart/form-data; boundary={BOUNDARY}"}
    return body, headers
