import os
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from starlette.datastructures import FormData, UploadFile

from file_transfer_server.app.models.upload_result import UploadError, UploadResult
from file_transfer_server.app.services.storage_manager import PathEscapesRoot, StorageManager
from file_transfer_server.config import ServerConfig
from file_transfer_server.logger_config import setup_logger

logger = setup_logger()

MULTIPART_FORM_DATA = "multipart/form-data"
SUBDIR_FIELD = "subdir"
MESSAGE_TOO_LARGE = "multipart: message too large"


class UploadService:
    def __init__(self, server_config: ServerConfig, storage_manager: StorageManager):
        self.config = server_config
        self.storage_manager = storage_manager

    async def handle_upload(self, request: Request) -> UploadResult:
        """Validate a multipart upload request and write its files under the storage root.

        Only the first file field of the form is processed. Failures of single
        attachments don't stop the batch, the last one is reported once the
        field is done.
        """
        content_type = request.headers.get("content-type", "")
        raw_length = request.headers.get("content-length")
        logger.info(f"uploading content-type={content_type}, content-length={raw_length}")

        if MULTIPART_FORM_DATA not in content_type:
            return UploadResult.failed(UploadError.INVALID_CONTENT_TYPE,
                                       "content-type must be multipart/form-data")

        content_length = self._declared_length(raw_length)
        if content_length is None or content_length >= self.config.max_file_size:
            return UploadResult.failed(
                UploadError.TOO_LARGE,
                f"[E] file to large, length={raw_length}, limit {self.config.max_file_size}"
            )

        try:
            # The size ceiling is the only bound on the form, not part or field counts
            form = await request.form(
                max_files=self.config.max_file_size,
                max_fields=self.config.max_file_size,
                max_part_size=self.config.max_file_size
            )
        except Exception as e:
            logger.warning(f"multipart parse error: {e}")
            return UploadResult.failed(UploadError.PARSE_ERROR,
                                       "ParseMultipartForm error:" + str(getattr(e, "detail", e)))

        try:
            return await self._process_form(form, content_length)
        finally:
            await form.close()

    async def _process_form(self, form: FormData, content_length: int) -> UploadResult:
        values, files = self._split_fields(form)
        file_names = {key: [f.filename for f in items] for key, items in files.items()}
        logger.debug(f"multipart form values={values}, files={file_names}")

        received = sum(f.size or 0 for items in files.values() for f in items)
        if received > self.config.max_file_size:
            return UploadResult.failed(UploadError.PARSE_ERROR,
                                       "ParseMultipartForm error:" + MESSAGE_TOO_LARGE)

        subdir = ""
        for key, field_values in values.items():
            logger.info(f"multipartform name={key}")
            if key == SUBDIR_FIELD and field_values:
                subdir = field_values[0]
                try:
                    await self.storage_manager.ensure_directory(subdir)
                except (OSError, PathEscapesRoot) as e:
                    directory = self.storage_manager.join(subdir)
                    logger.warning(f"mkdir error: {e}, dir={directory}")
                    return UploadResult.failed(UploadError.MKDIR_FAILED, "mkdir fail, " + directory)

        if not files:
            return UploadResult.failed(UploadError.NO_FILE, "no file")

        key, attachments = next(iter(files.items()))
        ignored = [name for name in files if name != key]
        if ignored:
            logger.warning(f"only the first file field is processed, ignoring fields: {ignored}")
        logger.info(f"multipartform name={key}")

        if not key:
            return UploadResult.failed(UploadError.EMPTY_FIELD_NAME, "no multipartform key")

        if len(attachments) > self.config.max_files_per_field:
            return UploadResult.failed(UploadError.TOO_MANY_FILES, f"too many files: {len(attachments)}")

        last_error = None
        for attachment in attachments:
            error = await self._store_attachment(subdir, attachment, content_length)
            if error is not None:
                last_error = error

        if last_error is not None:
            return UploadResult.failed(UploadError.WRITE_FAILED, f"upload failed, last err: {last_error}")
        return UploadResult.ok(f"successful, {len(attachments)} files uploaded", len(attachments))

    async def _store_attachment(self, subdir: str, attachment: UploadFile,
                                content_length: int) -> Optional[Exception]:
        # Directory components sent by the client are dropped
        filename = os.path.basename(attachment.filename or "")
        try:
            await attachment.seek(0)
        except (OSError, ValueError) as e:
            logger.warning(f"open file error, name={filename}, size={attachment.size}, err: {e}")
            return e

        try:
            await self.storage_manager.write_file(subdir, filename, attachment)
        except PathEscapesRoot as e:
            logger.warning(f"rejected upload path, name={filename}, err: {e}")
            return e
        except OSError as e:
            return e
        except Exception as e:
            logger.error(f"Error uploading file {filename}: {e}", exc_info=True)
            return e
        finally:
            await attachment.close()

        # Size is taken from the request, not the single file
        logger.info(f"successful uploaded, file={filename}, size: {content_length / 1024:.2f} KB")
        return None

    @staticmethod
    def _split_fields(form: FormData) -> Tuple[Dict[str, List[str]], Dict[str, List[UploadFile]]]:
        """Group form items into scalar values and file attachments, keeping order."""
        values: Dict[str, List[str]] = {}
        files: Dict[str, List[UploadFile]] = {}
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                files.setdefault(key, []).append(value)
            else:
                values.setdefault(key, []).append(value)
        return values, files

    @staticmethod
    def _declared_length(raw_length: Optional[str]) -> Optional[int]:
        """Content-Length as an int, -1 when the header is missing, None when it is malformed."""
        if raw_length is None:
            return -1
        try:
            return int(raw_length)
        except ValueError:
            return None
