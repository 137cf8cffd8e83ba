"""Analysis of GNU ar command lines."""

from __future__ import annotations

import enum
import logging
import os
import re
from typing import Optional, Sequence

from qmstr.builder import BuilderError, GeneralBuilder, clean_cmd
from qmstr.fileutil import build_clean_path
from qmstr.nodes import FileNode, FileType, new_file_node

_CMD_MOD_PATTERN = re.compile(r"-??([dmpqrstx]{1})([abcDfilMNoPsSTuvV]*)")
_RELPOS_COUNT_MOD_PATTERN = re.compile(r"[abN]{1}")

_COMMANDS = {
    "r": "REPLACE",
    "d": "DELETE",
    "m": "MOVE",
    "p": "PRINT",
    "q": "QUICK_APPEND",
    "s": "INDEX",
    "t": "DISPLAY",
    "x": "EXTRACT",
}


class ArCommand(enum.IntEnum):
    UNDEF = 0
    DELETE = 1
    MOVE = 2
    PRINT = 3
    QUICK_APPEND = 4
    REPLACE = 5
    INDEX = 6
    DISPLAY = 7
    EXTRACT = 8


class NoopRequested(Exception):
    """The command only prints help or version; there is nothing to analyze."""


class ArBuilder(GeneralBuilder):
    """Derives the archive and its members from an ar invocation."""

    name = "GNU ar builder"

    def __init__(
        self,
        work_dir: str,
        logger: Optional[logging.Logger] = None,
        debug: bool = False,
    ) -> None:
        super().__init__(logger, debug)
        self.work_dir = work_dir
        self.command = ArCommand.UNDEF
        self.modifiers = ""
        self.command_line_args: list[str] = []
        self.input: list[str] = []
        self.output = ""

    def get_prefix(self) -> str:
        """ar is never called through a cross-compilation prefix."""
        message = "ar not prefixed"
        if self.debug:
            self.logger.info("%s: %s", self.name, message)
        raise BuilderError(message)

    def analyze(self, commandline: Sequence[str]) -> list[FileNode]:
        """Return the archive node built by ``commandline``."""
        if len(commandline) < 3:
            raise BuilderError(
                f'failed to analyze "{list(commandline)}" too few arguments'
            )
        cleaned = self._process_flags(commandline)
        if len(cleaned) < 2:
            raise BuilderError(f'failed to analyze "{list(commandline)}" no operation')

        match = _CMD_MOD_PATTERN.search(cleaned[1])
        if match is None:
            raise BuilderError(f"unknown ar operation {cleaned[1]!r}")
        self.command = ArCommand[_COMMANDS[match.group(1)]]
        self.command_line_args = cleaned[2:]
        if match.group(2):
            self.modifiers = match.group(2)

        self._process_modifiers()

        if not self.command_line_args:
            raise BuilderError(f'failed to analyze "{list(commandline)}" no archive')
        self.output = self.command_line_args[0]
        self.input = self.command_line_args[1:]

        try:
            return self._results()
        except BuilderError as exc:
            raise BuilderError(f"Failed to generate result message: {exc}") from exc

    def _results(self) -> list[FileNode]:
        if self.command not in (ArCommand.REPLACE, ArCommand.QUICK_APPEND):
            raise BuilderError("Command not supported")
        self.logger.info("archiving")
        target = new_file_node(
            build_clean_path(self.work_dir, self.output, False), FileType.TARGET
        )
        target.derived_from = [
            new_file_node(
                build_clean_path(self.work_dir, member, False),
                FileType.TARGET
                if os.path.splitext(member)[1] == ".a"
                else FileType.INTERMEDIATE,
            )
            for member in self.input
        ]
        return [target]

    def _process_flags(self, commandline: Sequence[str]) -> list[str]:
        clean_idx: list[int] = []
        for idx, arg in enumerate(commandline):
            if arg in ("--help", "--version"):
                raise NoopRequested(arg)
            if arg in ("--target", "--plugin"):
                clean_idx.extend((idx, idx + 1))
                continue
            if arg == "-X32_64":
                clean_idx.append(idx)
                continue
            if arg.startswith("@"):
                raise BuilderError(
                    "Reading commandline options from file is not supported"
                )
            if arg.startswith(("--target=", "--plugin=")):
                clean_idx.append(idx)
        return clean_cmd(commandline, clean_idx, self.debug, self.logger)

    def _process_modifiers(self) -> None:
        if _RELPOS_COUNT_MOD_PATTERN.search(self.modifiers):
            # drop the relpos or count argument
            self.command_line_args = self.command_line_args[1:]