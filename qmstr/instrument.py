"""Sets up compiler instrumentation and runs a build command under it."""

from __future__ import annotations

import argparse
import logging
import os
import re
import shutil
import subprocess
import sys
import tempfile
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

WRAPPER_NAME = "qmstr-wrapper"
WRAPPED_COMMANDS = ("gcc", "g++", "ar", "ld", "as", "objcopy")
INSTRUMENTATION_HOME_ENV = "QMSTR_INSTRUMENTATION_HOME"

_COMPILER_ENV = {"gcc": ("CMAKE_LINKER", "CC"), "g++": ("CXX",)}
_WHITESPACE = re.compile(r"\s")


class InstrumentationError(Exception):
    """The instrumentation could not be set up."""


def link(source: str, bin_dir: str, targets: Sequence[str] = WRAPPED_COMMANDS) -> None:
    """Create ``bin_dir`` holding a symlink to ``source`` for every target."""
    try:
        os.mkdir(bin_dir, 0o700)
    except OSError as exc:
        raise InstrumentationError(f"unable to create {bin_dir}: {exc}") from exc
    for target in targets:
        symlink = os.path.join(bin_dir, target)
        try:
            os.symlink(source, symlink)
        except OSError as exc:
            logger.warning("cannot symlink %s to %s: %s", symlink, source, exc)


def _find_wrapper() -> str:
    own_dir = os.path.dirname(os.path.abspath(sys.argv[0])) if sys.argv else os.getcwd()
    candidate = os.path.join(own_dir, WRAPPER_NAME)
    if os.path.exists(candidate):
        return candidate
    logger.debug("cannot find %s at %s", WRAPPER_NAME, candidate)
    found = shutil.which(WRAPPER_NAME)
    if found is None:
        raise InstrumentationError(
            f"{WRAPPER_NAME} not found next to {own_dir} or in the PATH"
        )
    return found


def setup_compiler_instrumentation(
    work_dir: str, wrapper_path: Optional[str] = None, keep: bool = False
) -> str:
    """Link the wrapper into ``work_dir``/bin and point the environment at it.

    Returns the created bin directory.
    """
    wrapper = wrapper_path or _find_wrapper()
    bin_dir = os.path.join(work_dir, "bin").strip()
    link(wrapper, bin_dir, WRAPPED_COMMANDS)

    for entry in sorted(os.listdir(bin_dir)):
        for variable in _COMPILER_ENV.get(entry, ()):
            os.environ[variable] = os.path.join(bin_dir, entry)

    current = os.environ.get("PATH", "")
    paths = []
    for element in current.split(os.pathsep) if current else []:
        if _WHITESPACE.search(element):
            logger.debug("NOTE - your PATH contains an element with whitespace in it: %s", element)
            element = f'"{element}"'
        paths.append(element)
    os.environ["PATH"] = os.pathsep.join([bin_dir, *paths])
    logger.debug("PATH is now %s", os.environ["PATH"])
    os.environ[INSTRUMENTATION_HOME_ENV] = work_dir
    logger.debug("%s is now %s", INSTRUMENTATION_HOME_ENV, work_dir)

    if keep:
        print(f"export PATH={os.environ['PATH']}")
        print(f"export {INSTRUMENTATION_HOME_ENV}={work_dir}")
    return bin_dir


def run_payload_command(command: str, *args: str) -> int:
    """Run the command with inherited standard streams and return its exit code.

    A command killed by a signal yields -1; one that cannot be started yields 1.
    """
    try:
        completed = subprocess.run([command, *args], check=False)
    except OSError as exc:
        logger.error("%s", exc)
        return 1
    return -1 if completed.returncode < 0 else completed.returncode


def run(
    payload_cmd: Sequence[str], instdir: Optional[str] = None, keep: bool = False
) -> int:
    """Instrument a work directory, run the payload in it and clean up."""
    payload = list(payload_cmd)
    if not payload and not keep:
        raise InstrumentationError("No command specified!")
    try:
        if instdir:
            os.makedirs(instdir, exist_ok=True)
            work_dir = instdir
        else:
            work_dir = tempfile.mkdtemp(prefix="qmstr-bin-")
    except OSError as exc:
        raise InstrumentationError(
            f"error creating temporary working directory: {exc}"
        ) from exc

    try:
        setup_compiler_instrumentation(work_dir, keep=keep)
        if not payload:
            return 0
        exit_code = run_payload_command(payload[0], *payload[1:])
        if exit_code:
            logger.debug("payload command exited with non-zero exit code: %d", exit_code)
        return exit_code
    finally:
        if keep:
            logger.debug("keeping temporary directory at %s", work_dir)
        else:
            logger.debug("deleting temporary instrumentation bin directory in %s", work_dir)
            try:
                shutil.rmtree(work_dir)
            except OSError as exc:
                logger.warning(
                    "warning - error deleting temporary instrumentation bin directory in %s: %s",
                    work_dir,
                    exc,
                )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a build command with the compilers replaced by the qmstr wrapper."""
    parser = argparse.ArgumentParser(
        prog="qmstr", usage="%(prog)s <flags> [command ...]"
    )
    parser.add_argument("--keep", action="store_true",
                        help="Keep the created directories instead of cleaning up.")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable diagnostic log output.")
    parser.add_argument("--instdir", default="",
                        help="Create instrumentation in this directory")
    parser.add_argument("command", nargs=argparse.REMAINDER)
    options = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(asctime)s %(message)s",
    )

    command = list(options.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command and not options.keep:
        print("No command specified!", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1
    try:
        return run(command, options.instdir or None, options.keep)
    except InstrumentationError as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())