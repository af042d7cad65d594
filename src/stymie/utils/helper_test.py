import pytest

from stymie.utils.errors import InvalidPathError
from stymie.utils.helper import is_dir_path, normalize, split_dirs, strip_anchors


def test_normalize_turns_slashes_into_dots():
    assert normalize("/notes/fp/curry") == "notes.fp.curry"
    assert normalize("notes/fp/curry/") == "notes.fp.curry"


def test_strip_anchors_only_strips_one_slash_each_side():
    assert strip_anchors("/a/b/") == "a/b"
    assert strip_anchors("a") == "a"
    assert strip_anchors("//a") == "/a"


def test_split_dirs():
    assert split_dirs("/a/b/c") == ["a", "b", "c"]
    assert split_dirs("/", allow_root=True) == []


@pytest.mark.parametrize("path", ["", "/", "//", "a//b"])
def test_split_dirs_rejects_empty_segments(path):
    with pytest.raises(InvalidPathError):
        split_dirs(path)


def test_is_dir_path():
    assert is_dir_path("/a/b/")
    assert not is_dir_path("/a/b")
