import pytest

from src.assetvault.assets.file_names import default_name, sanitize_file_name
from src.assetvault.exceptions import FileNameNotAllowedError


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("photo.jpg", "photo.jpg"),
        ("my photo.jpg", "my-photo.jpg"),
        ("a#b/c\\d.png", "a-b-c-d.png"),
        ("bad\x00na​me.txt", "badname.txt"),
        ("résumé.pdf", "résumé.pdf"),
    ],
)
def test_sanitize_file_name(raw, expected):
    assert sanitize_file_name(raw) == expected


@pytest.mark.parametrize("name", ["shell.php", "x.PHTML", "run.cgi", "page.aspx", "a.jsp", "b.phar"])
def test_executable_suffixes_are_rejected(name):
    with pytest.raises(FileNameNotAllowedError):
        sanitize_file_name(name)


def test_empty_name_is_rejected():
    with pytest.raises(FileNameNotAllowedError):
        sanitize_file_name("\x00")


def test_default_name_strips_extension():
    assert default_name("holiday.photo.jpg") == "holiday.photo"
    assert default_name("README") == "README"
    assert default_name(".env") == ".env"
