"""Hand text to an external editor and read it back."""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import subprocess
import tempfile
from collections.abc import Callable
from contextlib import AbstractContextManager
from pathlib import Path

from spelunk.errors import ExternalEditorFailure

logger = logging.getLogger(__name__)


def editor_command(editor: str | None = None) -> list[str]:
    cmd = editor or os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    try:
        parts = shlex.split(cmd)
    except ValueError as exc:
        raise ExternalEditorFailure(f"Cannot parse editor command {cmd!r}: {exc}") from exc
    if not parts:
        raise ExternalEditorFailure("No editor configured.")
    return parts


def edit_text(
    text: str,
    *,
    suffix: str = ".txt",
    editor: str | None = None,
    suspend: Callable[[], AbstractContextManager] = contextlib.nullcontext,
) -> str:
    """Open *text* in the user's editor and return what was saved.

    The temp file is removed on every exit path. *suspend* is entered around
    the editor process so the caller can release the terminal.
    """
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=suffix, prefix="spelunk-", delete=False, encoding="utf-8"
        ) as f:
            f.write(text)
            tmp_path = f.name
    except OSError as exc:
        raise ExternalEditorFailure(f"Cannot create temp file: {exc}") from exc

    try:
        cmd = editor_command(editor) + [tmp_path]
        logger.info("launching external editor: %s", cmd[0])
        try:
            with suspend():
                returncode = subprocess.call(cmd)
        except OSError as exc:
            raise ExternalEditorFailure(f"Cannot run {cmd[0]}: {exc}") from exc
        if returncode != 0:
            raise ExternalEditorFailure(f"{cmd[0]} exited with status {returncode}")
        try:
            return Path(tmp_path).read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ExternalEditorFailure(f"Edited file is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise ExternalEditorFailure(f"Cannot read back {tmp_path}: {exc}") from exc
    finally:
        Path(tmp_path).unlink(missing_ok=True)
