import hashlib
import json

import pytest

from stymie.storage.manifest import (
    Directory,
    Leaf,
    create_dirs,
    from_json,
    insert_leaf,
    iter_leaves,
    list_dir,
    lookup,
    remove_entry,
    to_json,
    walk,
)
from stymie.utils.errors import (
    AlreadyExistsError,
    CorruptManifestError,
    DirectoryNotEmptyError,
    NotFoundError,
)


def sha(path):
    return hashlib.sha256(path.encode()).hexdigest()


def build(obj):
    return from_json(json.dumps(obj).encode(), sha)


def test_walk_finds_leaf():
    tree = build({"notes": {"fp": {"curry": "abc"}}})
    parent, name, value = walk(tree, "/notes/fp/curry")
    assert parent is tree["notes"]["fp"]
    assert name == "curry"
    assert value == Leaf("abc")


def test_walk_missing_last_segment_keeps_parent():
    tree = build({"notes": {}})
    parent, name, value = walk(tree, ["notes", "x"])
    assert parent is tree["notes"]
    assert (name, value) == ("x", None)


def test_walk_short_circuits_on_missing_or_leaf_parent():
    tree = build({"notes": {"a": "abc"}})
    assert walk(tree, "/nope/x") == (None, "x", None)
    assert walk(tree, "/notes/a/x") == (None, "x", None)


def test_segments_may_contain_dots():
    tree = Directory()
    insert_leaf(tree, "/keys/id_rsa.pub", "abc")
    assert lookup(tree, "/keys/id_rsa.pub") == Leaf("abc")
    assert lookup(tree, "/keys/id_rsa") is None


def test_create_dirs_is_idempotent():
    tree = Directory()
    first = create_dirs(tree, ["a", "b"])
    first["x"] = Leaf("abc")
    second = create_dirs(tree, ["a", "b"])
    assert second is first
    assert list(tree) == ["a"]
    assert list(tree["a"]) == ["b"]
    assert second["x"] == Leaf("abc")


def test_create_dirs_refuses_to_overwrite_leaf():
    tree = build({"a": "abc"})
    with pytest.raises(AlreadyExistsError):
        create_dirs(tree, ["a", "b"])
    assert tree["a"] == Leaf("abc")


def test_insert_leaf_creates_intermediate_dirs():
    tree = Directory()
    insert_leaf(tree, "/notes/fp/curry", "abc")
    assert isinstance(tree["notes"], Directory)
    assert tree["notes"]["fp"]["curry"] == Leaf("abc")


def test_insert_leaf_collision():
    tree = build({"a": {}})
    with pytest.raises(AlreadyExistsError):
        insert_leaf(tree, "/a", "abc")


def test_remove_entry():
    tree = build({"a": {"b": "abc", "c": {}}, "d": {"e": "def"}})
    assert remove_entry(tree, "/a/b") == Leaf("abc")
    assert remove_entry(tree, "/a/c") == Directory()
    with pytest.raises(DirectoryNotEmptyError):
        remove_entry(tree, "/d")
    with pytest.raises(NotFoundError):
        remove_entry(tree, "/a/b")
    assert tree == {"a": {}, "d": {"e": Leaf("def")}}


def test_list_is_sorted_with_directory_marker():
    tree = Directory()
    insert_leaf(tree, "/zeta", "1")
    create_dirs(tree, ["alpha"])
    insert_leaf(tree, "/mu", "2")
    assert list_dir(tree) == ["alpha/", "mu", "zeta"]


def test_list_subdir_and_bad_lookup():
    tree = build({"a": {"b": "1", "c": {}}})
    assert list_dir(tree, ["a"]) == ["b", "c/"]
    assert list_dir(tree, []) == ["a/"]
    with pytest.raises(CorruptManifestError):
        list_dir(tree, ["a", "b"])
    with pytest.raises(CorruptManifestError):
        list_dir(tree, ["nope"])


def test_iter_leaves_depth_first_sorted():
    tree = build({"b": "2", "a": {"y": "1", "x": {"z": "0"}}})
    assert [p for p, _ in iter_leaves(tree)] == ["a/x/z", "a/y", "b"]
    assert [p for p, _ in iter_leaves(tree["a"], ["a"])] == ["a/x/z", "a/y"]


def test_legacy_true_leaves_are_upgraded():
    tree = build({"notes": {"fp": {"curry": True}}})
    assert tree["notes"]["fp"]["curry"] == Leaf(sha("notes/fp/curry"))
    assert b"true" not in to_json(tree)


@pytest.mark.parametrize(
    "doc",
    [
        b"[1, 2]",
        b"{not json",
        b'{"a": 3}',
        b'{"a": false}',
        b'{"a": ""}',
        b'{"a": "../x"}',
        b'{"a": "ABC"}',
    ],
)
def test_corrupt_manifests(doc):
    with pytest.raises(CorruptManifestError):
        from_json(doc, lambda path: path)


def test_empty_manifest():
    assert from_json(b"", lambda path: path) == Directory()
    assert from_json(b"null", lambda path: path) == Directory()


def test_json_round_trip():
    tree = build({"a": {"b": "1", "c": {}}, "d": "2"})
    again = from_json(to_json(tree), lambda path: "unused")
    assert again == tree
    assert isinstance(again["a"]["c"], Directory)
