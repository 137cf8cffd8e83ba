import os

import pytest

from qmstr.nodes import (
    FileNode,
    FileType,
    PathSubstitution,
    new_file_node,
    sanitize_file_node,
    set_relative_path,
)

TEST_SHA1 = "a94a8fe5ccb19ba61c4c0873d391e987982fbbd3"


class FakeDb:
    def __init__(self, hashes):
        self.hashes = hashes
        self.queries = []

    def get_file_node_hash_by_path(self, path):
        self.queries.append(path)
        return self.hashes[path]


def test_new_file_node_hashes_file(tmp_path):
    target = tmp_path / "lib.o"
    target.write_bytes(b"test")
    node = new_file_node(str(target), FileType.INTERMEDIATE)
    assert node.name == "lib.o"
    assert node.path == str(target)
    assert node.hash == TEST_SHA1
    assert node.file_type is FileType.INTERMEDIATE
    assert node.broken is False


def test_new_file_node_missing_file_is_broken(tmp_path):
    path = str(tmp_path / "missing.o")
    node = new_file_node(path, FileType.TARGET)
    assert node.broken is True
    assert node.hash == "nohash" + path
    assert node.name == "missing.o"


def test_set_relative_path_substitutes_and_relativises():
    node = FileNode(path="/old/src/a.c")
    set_relative_path(node, "/build", [PathSubstitution(old="/old", new="/build")])
    assert node.path == os.path.join("src", "a.c")


def test_set_relative_path_replaces_first_occurrence_only():
    node = FileNode(path="/x/x/file")
    set_relative_path(node, "/", [PathSubstitution(old="x", new="y")])
    assert node.path == "y/x/file"


def test_set_relative_path_leaves_relative_path():
    node = FileNode(path="dir/a.c")
    set_relative_path(node, "/build", [])
    assert node.path == "dir/a.c"


def test_set_relative_path_rejects_relative_base():
    node = FileNode(path="/abs/a.c")
    with pytest.raises(ValueError):
        set_relative_path(node, "relative", [])


def test_sanitize_computes_hash(tmp_path):
    (tmp_path / "src.c").write_bytes(b"test")
    node = FileNode(path=str(tmp_path / "src.c"), file_type=FileType.SOURCE)
    sanitize_file_node(node, str(tmp_path), [], None, "")
    assert node.path == "src.c"
    assert node.hash == TEST_SHA1
    assert node.file_type is FileType.SOURCE


def test_sanitize_marks_outside_sources_intermediate(tmp_path):
    build = tmp_path / "build"
    build.mkdir()
    (tmp_path / "gen.c").write_bytes(b"test")
    node = FileNode(path=str(tmp_path / "gen.c"), file_type=FileType.SOURCE)
    sanitize_file_node(node, str(build), [], None, "")
    assert node.path.split("/")[0] == ".."
    assert node.file_type is FileType.INTERMEDIATE
    assert node.hash == TEST_SHA1


def test_sanitize_override_uses_database(tmp_path):
    child = FileNode(path=str(tmp_path / "lib.a"))
    parent = FileNode(path=str(tmp_path / "lib.a"), hash="parenthash", derived_from=[child])
    db = FakeDb({"lib.a": "storedhash"})
    sanitize_file_node(parent, str(tmp_path), [], db, "")
    assert child.hash == "storedhash"
    assert db.queries == ["lib.a"]
    assert parent.hash == "parenthash"


def test_sanitize_override_unknown_in_database(tmp_path):
    child = FileNode(path=str(tmp_path / "lib.a"))
    parent = FileNode(path=str(tmp_path / "lib.a"), hash="parenthash", dependencies=[child])
    with pytest.raises(ValueError, match="Corrupted data provided"):
        sanitize_file_node(parent, str(tmp_path), [], FakeDb({}), "")


def test_sanitize_recurses_into_dependencies(tmp_path):
    (tmp_path / "dep.h").write_bytes(b"test")
    dep = FileNode(path=str(tmp_path / "dep.h"), file_type=FileType.SOURCE)
    node = FileNode(path=str(tmp_path / "prog"), hash="known", dependencies=[dep])
    sanitize_file_node(node, str(tmp_path), [], None, "")
    assert node.hash == "known"
    assert dep.path == "dep.h"
    assert dep.hash == TEST_SHA1


def test_sanitize_missing_file_raises(tmp_path):
    node = FileNode(path=str(tmp_path / "absent.c"))
    with pytest.raises(FileNotFoundError):
        sanitize_file_node(node, str(tmp_path), [], None, "")