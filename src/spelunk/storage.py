"""Saved search text on disk, one ``<name>.spl`` file per search."""

from __future__ import annotations

import logging
from pathlib import Path

from platformdirs import user_config_path

from spelunk.errors import PersistenceError

logger = logging.getLogger(__name__)

APP_NAME = "spelunk"
SUFFIX = ".spl"


def default_storage_dir() -> Path:
    return user_config_path(APP_NAME, appauthor=False) / "saved_searches"


class SavedSearchStore:
    """Reads and writes saved searches.

    Overwrite confirmation is the caller's job: :meth:`save` always writes.
    """

    def __init__(self, directory: Path | str | None = None) -> None:
        self.directory = Path(directory) if directory is not None else default_storage_dir()

    def _path_for(self, name: str) -> Path:
        name = name.strip()
        if not name:
            raise PersistenceError("Name cannot be empty.")
        if "/" in name or "\\" in name or name in (".", ".."):
            raise PersistenceError(f"Invalid search name: {name!r}")
        return self.directory / f"{name}{SUFFIX}"

    def list_names(self) -> list[str]:
        if not self.directory.exists():
            return []
        try:
            names = [p.stem for p in self.directory.iterdir() if p.suffix == SUFFIX]
        except OSError as exc:
            logger.error("cannot list saved searches in %s: %s", self.directory, exc)
            raise PersistenceError(f"Failed to list saved searches: {exc}") from exc
        return sorted(names)

    def exists(self, name: str) -> bool:
        return self._path_for(name).exists()

    def load(self, name: str) -> str:
        path = self._path_for(name)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("cannot read saved search %s: %s", path, exc)
            raise PersistenceError(f"Failed to load search: {exc}") from exc

    def save(self, name: str, text: str) -> None:
        path = self._path_for(name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.error("cannot write saved search %s: %s", path, exc)
            raise PersistenceError(f"Failed to save search: {exc}") from exc
        logger.info("saved search %r to %s", name.strip(), path)
