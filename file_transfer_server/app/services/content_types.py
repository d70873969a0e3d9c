from typing import Tuple

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = {
    "jpeg": "image/jpeg",
    "jpe": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "mp4": "video/mpeg4",
    "mp3": "audio/mp3",
    "wav": "audio/wav",
    "pdf": "application/pdf",
    "doc": "application/msword",
}


def get_extension(filename: str) -> str:
    """Return the text after the last dot, or an empty string when there is no dot."""
    parts = filename.split(".")
    if len(parts) >= 2:
        return parts[-1]
    return ""


def resolve_content_type(filename: str) -> Tuple[str, str]:
    """Look up the content type for a file name by its extension.

    Returns:
        Tuple of (extension, content_type). Unknown or missing extensions
        resolve to application/octet-stream.
    """
    extension = get_extension(filename)
    return extension, CONTENT_TYPES.get(extension.lower(), DEFAULT_CONTENT_TYPE)


def served_content_type(filename: str, use_resolved: bool = False) -> str:
    """Content type sent with a download.

    Downloads go out as application/octet-stream so browsers always save
    them, unless use_resolved asks for the table value.
    """
    if not use_resolved:
        return DEFAULT_CONTENT_TYPE
    _, content_type = resolve_content_type(filename)
    return content_type
