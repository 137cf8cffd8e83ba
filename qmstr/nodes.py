"""Build graph nodes and the helpers that prepare them for the master."""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from qmstr.fileutil import hash_file

logger = logging.getLogger(__name__)


class FileType(enum.IntEnum):
    UNDEF = 0
    SOURCE = 1
    INTERMEDIATE = 2
    TARGET = 3


class Severity(enum.IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2


@dataclass
class PathSubstitution:
    old: str = ""
    new: str = ""


@dataclass
class DataNode:
    type: str = ""
    data: str = ""


@dataclass
class InfoNode:
    type: str = ""
    confidence_score: float = 0.0
    data_nodes: list[DataNode] = field(default_factory=list)


@dataclass
class DiagnosticNode:
    severity: Severity = Severity.INFO
    message: str = ""


@dataclass
class FileNode:
    uid: str = ""
    name: str = ""
    path: str = ""
    hash: str = ""
    file_type: FileType = FileType.UNDEF
    broken: bool = False
    derived_from: list[FileNode] = field(default_factory=list)
    dependencies: list[FileNode] = field(default_factory=list)
    additional_info: list[InfoNode] = field(default_factory=list)


@dataclass
class PackageNode:
    uid: str = ""
    name: str = ""
    version: str = ""
    build_config: str = ""
    targets: list[FileNode] = field(default_factory=list)
    additional_info: list[InfoNode] = field(default_factory=list)


@dataclass
class ProjectNode:
    uid: str = ""
    name: str = ""


class _HashLookup(Protocol):
    def get_file_node_hash_by_path(self, path: str) -> str:
        """Return the stored hash for ``path``; raise LookupError if unknown."""


def new_file_node(path: str, file_type: FileType) -> FileNode:
    """Create a node for ``path``; unreadable files are marked broken."""
    try:
        digest = hash_file(path)
        broken = False
    except OSError:
        digest = "nohash" + path
        broken = True
    return FileNode(
        name=os.path.basename(path),
        path=path,
        hash=digest,
        file_type=file_type,
        broken=broken,
    )


def set_relative_path(
    node: FileNode, build_path: str, path_sub: Sequence[PathSubstitution]
) -> None:
    """Apply path substitutions and make an absolute path relative to ``build_path``."""
    for substitution in path_sub:
        node.path = node.path.replace(substitution.old, substitution.new, 1)
    if not os.path.isabs(node.path):
        return
    if not os.path.isabs(build_path):
        raise ValueError(f"can't make {node.path} relative to {build_path}")
    node.path = os.path.relpath(node.path, build_path)


def sanitize_file_node(
    node: FileNode,
    base: str,
    path_sub: Sequence[PathSubstitution],
    db: Optional[_HashLookup],
    parent_path: str,
) -> None:
    """Normalise paths, fill in missing hashes and fix file types, recursively."""
    set_relative_path(node, base, path_sub)
    if not node.hash:
        logger.info("No hash for file %s", node.path)
        if node.path == parent_path:
            logger.info("Override detected")
            try:
                if db is None:
                    raise LookupError(node.path)
                digest = db.get_file_node_hash_by_path(node.path)
            except LookupError as exc:
                raise ValueError(
                    f"Corrupted data provided. File does not exist: {exc}"
                ) from exc
            logger.info("Found original hash %s in database", digest)
        else:
            digest = hash_file(os.path.join(base, node.path))
            logger.info("Calculated hash %s", digest)
        node.hash = digest

    # files outside the build tree are temporary files
    if node.path.split("/")[0] == ".." and node.file_type == FileType.SOURCE:
        node.file_type = FileType.INTERMEDIATE

    for child in (*node.derived_from, *node.dependencies):
        sanitize_file_node(child, base, path_sub, db, node.path)