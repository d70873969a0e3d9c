import pytest

from file_transfer_server.app.services.content_types import (
    DEFAULT_CONTENT_TYPE,
    get_extension,
    resolve_content_type,
    served_content_type,
)


@pytest.mark.parametrize("filename, expected", [
    ("photo.jpg", "image/jpeg"),
    ("photo.jpeg", "image/jpeg"),
    ("photo.JPE", "image/jpeg"),
    ("icon.png", "image/png"),
    ("anim.gif", "image/gif"),
    ("clip.mp4", "video/mpeg4"),
    ("song.mp3", "audio/mp3"),
    ("sound.wav", "audio/wav"),
    ("paper.pdf", "application/pdf"),
    ("letter.Doc", "application/msword"),
    ("archive.tar.gz", DEFAULT_CONTENT_TYPE),
    ("README", DEFAULT_CONTENT_TYPE),
    ("trailing.", DEFAULT_CONTENT_TYPE),
])
def test_resolve_content_type(filename, expected):
    _, content_type = resolve_content_type(filename)
    assert content_type == expected


def test_extension_keeps_case():
    assert resolve_content_type("dir/Photo.JPG") == ("JPG", "image/jpeg")
    assert get_extension("noext") == ""
    assert get_extension("a.b.c") == "c"


def test_served_content_type_defaults_to_octet_stream():
    """Test downloads use the generic type unless the resolved one is requested."""
    assert served_content_type("photo.png") == DEFAULT_CONTENT_TYPE
    assert served_content_type("photo.png", use_resolved=True) == "image/png"
    assert served_content_type("unknown.xyz", use_resolved=True) == DEFAULT_CONTENT_TYPE
