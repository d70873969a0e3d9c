from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UploadError(str, Enum):
    INVALID_CONTENT_TYPE = "invalid_content_type"
    TOO_LARGE = "too_large"
    PARSE_ERROR = "parse_error"
    MKDIR_FAILED = "mkdir_failed"
    NO_FILE = "no_file"
    EMPTY_FIELD_NAME = "empty_field_name"
    TOO_MANY_FILES = "too_many_files"
    WRITE_FAILED = "write_failed"


class UploadResult(BaseModel):
    success: bool
    message: str
    error: Optional[UploadError] = None
    files_uploaded: int = 0

    @classmethod
    def ok(cls, message: str, files_uploaded: int) -> "UploadResult":
        return cls(success=True, message=message, files_uploaded=files_uploaded)

    @classmethod
    def failed(cls, error: UploadError, message: str) -> "UploadResult":
        return cls(success=False, message=message, error=error)

    @property
    def status(self) -> str:
        """Short status token for the X-Upload-Status header."""
        return "ok" if self.success else self.error.value
