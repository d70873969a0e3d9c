import logging
from pathlib import Path

import pytest

from file_transfer_server import config
from file_transfer_server.config import ServerConfig
from file_transfer_server.logger_config import LOG_FILE_NAME, setup_logger


def test_defaults():
    server_config = ServerConfig(storage_root="some/root")

    assert server_config.storage_root == Path("some/root")
    assert server_config.max_file_size == config.MAX_FILE_SIZE
    assert server_config.max_files_per_field == config.MAX_FILES_PER_FIELD


def test_default_limits():
    assert config.MAX_FILE_SIZE == 20 * 1024 * 1024
    assert config.MAX_FILES_PER_FIELD == 100
    assert config.DIR_MODE == 0o755


def test_from_args():
    server_config = ServerConfig.from_args([
        "--root", "/srv/uploads",
        "--max-file-size", "1024",
        "--port", "9000",
        "--serve-resolved-content-type",
    ])

    assert server_config.storage_root == Path("/srv/uploads")
    assert server_config.max_file_size == 1024
    assert server_config.port == 9000
    assert server_config.serve_resolved_content_type is True


def test_from_args_defaults():
    server_config = ServerConfig.from_args([])

    assert server_config.storage_root == Path(config.STORAGE_ROOT)
    assert server_config.host == config.HOST
    assert server_config.port == config.PORT


def test_from_env():
    assert ServerConfig.from_env().storage_root == Path(config.STORAGE_ROOT)


@pytest.mark.parametrize("field", ["max_file_size", "max_files_per_field"])
def test_rejects_non_positive_limits(field):
    with pytest.raises(ValueError):
        ServerConfig(storage_root="root", **{field: 0})


def test_from_args_log_dir():
    server_config = ServerConfig.from_args(["--log-dir", "/var/log/uploads"])

    assert server_config.log_dir == "/var/log/uploads"


def test_from_args_log_dir_default():
    assert ServerConfig.from_args([]).log_dir == config.LOG_DIR


def test_setup_logger_moves_log_file(tmp_path):
    """Test a log dir given after startup replaces the file handler."""
    logger = setup_logger()
    try:
        setup_logger(str(tmp_path / "logs"))
        file_handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]

        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename == str((tmp_path / "logs" / LOG_FILE_NAME).absolute())
        assert (tmp_path / "logs").is_dir()
    finally:
        setup_logger(config.LOG_DIR)
