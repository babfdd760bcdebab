from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from .logging import get_logger


LOG = get_logger(__name__)


@runtime_checkable
class Filesystem(Protocol):
    """Directory operations the add workflow relies on."""

    def is_dir(self, path: str) -> bool:
        ...

    def exists(self, path: str) -> bool:
        ...

    def create_dir(self, path: str) -> None:
        """Create ``path``; raise ``FileExistsError`` if anything is already there."""
        ...

    def remove_dir(self, path: str) -> None:
        """Remove ``path`` if it is an empty directory."""
        ...


class LocalFilesystem:
    def is_dir(self, path: str) -> bool:
        return Path(path).is_dir()

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def create_dir(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=False)

    def remove_dir(self, path: str) -> None:
        try:
            Path(path).rmdir()
        except OSError as exc:
            LOG.warning("Could not remove %s: %s", path, exc)
