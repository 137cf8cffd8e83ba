"""Command-line preprocessing for qmstrctl."""

from __future__ import annotations

from qmstr.idparsing import EmptyNodeIdentError, tokenize_node_id

_FIXABLE_COMMANDS = frozenset({"create", "update"})


def fix_cmd_line(cmdline: list[str]) -> list[str]:
    """Insert the node type subcommand after ``create``/``update`` if missing.

    Returns ``cmdline`` itself when nothing needs fixing, a new list otherwise.
    """
    if len(cmdline) < 3 or cmdline[1] not in _FIXABLE_COMMANDS:
        return cmdline
    try:
        node_type, _ = tokenize_node_id(cmdline[2])
    except EmptyNodeIdentError:
        # leave invalid input for the command parser to report
        return cmdline
    if len(cmdline) > 3 and cmdline[3].startswith(node_type):
        return cmdline
    return [*cmdline[:2], node_type, *cmdline[2:]]