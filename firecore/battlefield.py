"""Battlefield regression test commands and block file comparison."""

from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Callable, Sequence

ProcessFileContent = Callable[[bytes, bytes], "tuple[Any, Any]"]
AskConfirmation = Callable[[str], "bool | None"]


@dataclass
class BattlefieldConfig:
    """Configuration for the battlefield commands."""


def diff_command(reference_block_file: str, other_block_file: str) -> str:
    """The shell command showing the difference between two block files."""
    editor = os.environ.get("DIFF_EDITOR", "")
    if editor:
        return f'{editor} "{reference_block_file}" "{other_block_file}"'
    return f'diff -C 5 "{reference_block_file}" "{other_block_file}" | less'


def _ask_on_terminal(question: str) -> bool | None:
    if not sys.stdin.isatty():
        return None
    try:
        answer = input(f"{question} [y/N]? ")
    except EOFError:
        return None
    return answer.strip().lower() in ("y", "yes")


def _read(path: str) -> bytes:
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as err:
        raise OSError(f"unable to read block file {path!r}: {err}") from err


def _decode(content: bytes, path: str) -> Any:
    try:
        return json.loads(content)
    except ValueError as err:
        raise ValueError(f"unable to unmarshal block {path!r}: {err}") from err


def compare_block_files(
    reference_block_file: str,
    other_block_file: str,
    process_file_content: ProcessFileContent | None = None,
    ask: AskConfirmation | None = None,
) -> bool:
    """Compare two block files; on a difference, offer to show it.

    Returns whether the files hold equal content. ``ask`` receives the question
    and returns True or False, or None when it was not answered.
    """
    reference_content = _read(reference_block_file)
    other_content = _read(other_block_file)

    if process_file_content is None:
        reference = _decode(reference_content, reference_block_file)
        other = _decode(other_content, other_block_file)
    else:
        try:
            reference, other = process_file_content(reference_content, other_content)
        except Exception as err:
            raise ValueError(f"failed to process blocks content file: {err}") from err

    if reference == other:
        print("Files are equal, all good")
        return True

    command = diff_command(reference_block_file, other_block_file)
    ask = ask or _ask_on_terminal
    show_diff = ask(
        f"File {reference_block_file!r} and {other_block_file!r} differs, "
        "do you want to see the difference now"
    )
    if show_diff:
        result = subprocess.run(["bash", "-c", command])
        if result.returncode != 0:
            raise RuntimeError("diff command failed to run properly")
        print("You can run the following command to see it manually later:")
    else:
        print("Not showing diff between files, run the following command to see it manually:")

    print()
    print(f"    {command}")
    print()
    return False


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the ``battlefield`` command group."""
    parser = argparse.ArgumentParser(
        prog="battlefield", description="Battlefield regression tests commands"
    )
    commands = parser.add_subparsers(dest="command", required=True)
    run = commands.add_parser("run", help="Run battlefield regression test suite against oracle")
    run.add_argument("variant", nargs="?", default="")

    args = parser.parse_args(argv)
    if args.command == "run":
        print("Variant", args.variant)
    return 0