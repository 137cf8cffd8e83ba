"""Parsing node identifiers and turning command-line flags into node fields."""

from __future__ import annotations

import argparse
import dataclasses
import enum
import re
from typing import Any, Optional, Sequence

from qmstr.nodes import FileNode, PackageNode, ProjectNode

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

# node type -> (node class, attribute set when only a value is given)
_NODE_TYPES: dict[str, tuple[type, str]] = {
    "file": (FileNode, "path"),
    "package": (PackageNode, "name"),
    "project": (ProjectNode, "name"),
}
_PENDING_NODE_TYPES = frozenset({"info", "data"})


class EmptyNodeIdentError(ValueError):
    """The node identifier is empty."""

    def __init__(self, message: str = "Empty node identifier") -> None:
        super().__init__(message)


class InvalidAttributeError(AttributeError):
    """The node has no attribute of that name."""

    def __init__(self, attribute: str = "") -> None:
        super().__init__("Invalid attribute")
        self.attribute = attribute


class _FlagParser(argparse.ArgumentParser):
    """Argument parser that raises instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ValueError(message)


def _require_struct(node: Any) -> None:
    if not dataclasses.is_dataclass(node) or isinstance(node, type):
        raise TypeError(f"Not a struct: {type(node).__name__}")


def _normalise(name: str) -> str:
    return name.replace("_", "").lower()


def _find_field(node: Any, attribute: str) -> str:
    key = _normalise(attribute)
    for fld in dataclasses.fields(node):
        if fld.name.startswith("_"):
            continue
        if _normalise(fld.name) == key:
            return fld.name
    raise InvalidAttributeError(attribute)


def _parse_bool(value: str) -> bool:
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    raise ValueError(f"parsing {value!r}: invalid syntax")


def _parse_int(value: str) -> int:
    if not _INT_PATTERN.fullmatch(value):
        raise ValueError(f"parsing {value!r}: invalid syntax")
    number = int(value, 10)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"parsing {value!r}: value out of range")
    return number


def tokenize_node_id(nodeid: str) -> tuple[str, list[str]]:
    """Split ``type:attr:value`` into the node type and the remaining tokens."""
    if not nodeid:
        raise EmptyNodeIdentError()
    node_type, *tokens = nodeid.split(":")
    return node_type, tokens


def parse_node_id(nodeid: str) -> Any:
    """Create the node described by ``nodeid``."""
    node_type, tokens = tokenize_node_id(nodeid)
    if node_type in _PENDING_NODE_TYPES:
        raise ValueError(f"{node_type} not yet supported")
    try:
        node_class, default_attribute = _NODE_TYPES[node_type]
    except KeyError:
        raise ValueError(f"Unsupported node type {node_type}") from None
    node = node_class()
    if not tokens:
        return node
    if len(tokens) < 2:
        attribute, value = default_attribute, tokens[0]
    else:
        attribute, value = tokens[0], tokens[1]
    set_field_value(node, attribute, value)
    return node


def set_field_value(node: Any, attribute: str, value: str) -> None:
    """Set ``attribute`` of ``node`` from its textual ``value``."""
    _require_struct(node)
    name = _find_field(node, attribute)
    current = getattr(node, name)
    if isinstance(current, bool):
        setattr(node, name, _parse_bool(value))
    elif isinstance(current, enum.Enum):
        raise TypeError(f"Unsupported type {type(current).__name__}")
    elif isinstance(current, int):
        setattr(node, name, _parse_int(value))
    elif isinstance(current, str):
        setattr(node, name, value)
    else:
        raise TypeError(f"Unsupported type {type(current).__name__}")


def generate_flags(structure: Any, parser: argparse.ArgumentParser) -> None:
    """Add one flag per scalar field of ``structure`` to ``parser``.

    Only flags given on the command line appear in the parsed namespace.
    """
    if isinstance(structure, type) and dataclasses.is_dataclass(structure):
        structure = structure()
    _require_struct(structure)
    struct_name = type(structure).__name__
    for fld in dataclasses.fields(structure):
        name = fld.name
        if (
            name.startswith("_")
            or name.startswith("XXX_")
            or name.endswith("node_type")
            or name == "uid"
        ):
            continue
        flag = _normalise(name)
        help_text = f"Set {struct_name}'s {flag}"
        current = getattr(structure, name)
        if isinstance(current, bool):
            parser.add_argument(
                f"--{flag}", dest=flag, action="store_true",
                default=argparse.SUPPRESS, help=help_text,
            )
        elif isinstance(current, int):
            parser.add_argument(
                f"--{flag}", dest=flag, type=int,
                default=argparse.SUPPRESS, help=help_text,
            )
        elif isinstance(current, str):
            parser.add_argument(
                f"--{flag}", dest=flag, type=str,
                default=argparse.SUPPRESS, help=help_text,
            )


def apply_flags(node: Any, namespace: argparse.Namespace) -> None:
    """Copy every parsed flag onto the matching field of ``node``."""
    _require_struct(node)
    for flag, value in vars(namespace).items():
        try:
            name = _find_field(node, flag)
        except InvalidAttributeError:
            continue
        current = getattr(node, name)
        if isinstance(current, enum.Enum):
            value = type(current)(value)
        setattr(node, name, value)


def create_node(
    node_ident: str,
    argv: Sequence[str] = (),
    node_type: Optional[type] = None,
) -> Any:
    """Build a node from its identifier and the field flags in ``argv``."""
    node = parse_node_id(node_ident)
    if node_type is None:
        node_type = type(node)
    elif not isinstance(node, node_type):
        raise ValueError(
            f"{node_ident} does not describe a {node_type.__name__}"
        )
    parser = _FlagParser(prog="qmstrctl create", add_help=False)
    generate_flags(node_type, parser)
    apply_flags(node, parser.parse_args(list(argv)))
    return node