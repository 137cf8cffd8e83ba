"""Common behaviour of the build tool analyzers."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from qmstr.nodes import FileNode


class BuilderError(Exception):
    """A build command could not be analyzed."""


class ModeNotImplementedError(BuilderError):
    """The builder does not handle this mode yet."""

    def __init__(self, message: str = "Mode not implemented") -> None:
        super().__init__(message)


class ModeNotSupportedError(BuilderError):
    """The builder cannot handle this mode."""

    def __init__(self, message: str = "Mode not supported") -> None:
        super().__init__(message)


class NoTargetsProvidedError(BuilderError):
    """The command line names no targets."""

    def __init__(self, message: str = "No targets provided") -> None:
        super().__init__(message)


class NoPushFileError(BuilderError):
    """The builder has no file to upload to the master."""

    def __init__(self, message: str = "No file to push") -> None:
        super().__init__(message)


class GeneralBuilder:
    """State and default behaviour shared by every builder."""

    name = "general builder"

    def __init__(
        self, logger: Optional[logging.Logger] = None, debug: bool = False
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.debug = debug
        self.stdin: Optional[bytes] = None
        self.push_file = None
        self.ready = False

    def analyze(self, commandline: Sequence[str]) -> list[FileNode]:
        """Return the file nodes produced by ``commandline``."""
        raise ModeNotImplementedError()

    def get_push_file(self):
        """Return the file to upload, or raise if the builder has none."""
        if self.push_file is None:
            raise NoPushFileError()
        return self.push_file

    def setup(self) -> None:
        """Prepare the builder before the wrapped command runs."""
        if self.debug:
            self.logger.info("setting up %s", self.name)
        self.ready = True

    def tear_down(self) -> None:
        """Release what ``setup`` acquired."""
        if self.debug:
            self.logger.info("tearing down %s", self.name)
        self.stdin = None
        self.ready = False


def clean_cmd(
    commandline: Sequence[str],
    clean_idx: Sequence[int],
    debug: bool = False,
    logger: Optional[logging.Logger] = None,
) -> list[str]:
    """Return ``commandline`` without the arguments at the given ascending indices.

    Removing the final argument also drops the one before it and ends the
    cleaning.
    """
    log = logger or logging.getLogger(__name__)
    cleaned = list(commandline)
    for removed, index in enumerate(clean_idx):
        real_idx = index - removed
        if not 0 <= real_idx < len(cleaned):
            raise IndexError(f"argument index {index} out of range")
        if debug:
            log.info("Clearing argument: %s", cleaned[real_idx])
        if real_idx == len(cleaned) - 1:
            cleaned = cleaned[: max(real_idx - 1, 0)]
            break
        del cleaned[real_idx]
        if debug:
            log.info("new slice is %s", cleaned)
    return cleaned