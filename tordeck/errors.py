"""Exception hierarchy for tordeck.

Engine failures are caught where the engine is called and handed back to the
application state as values; only ``EngineUnavailableError`` ends the app.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TordeckError(Exception):
    """Base exception for all tordeck errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class InputValidationError(TordeckError):
    """User input rejected; the current dialog step stays active."""


class InvalidDirectoryError(InputValidationError):
    """Chosen download location is not an existing directory."""


class FolderExistsError(TordeckError):
    """Target subfolder for a new torrent already exists on disk."""

    def __init__(self, path: str):
        super().__init__(f"Destination folder already exists: {path}")
        self.path = path


class DuplicateTorrentPathError(TordeckError):
    """Same info-hash is already downloading into the same base directory."""

    def __init__(self, info_hash: str, base_path: str):
        super().__init__(f"Torrent already added for this download directory: {base_path}")
        self.info_hash = info_hash
        self.base_path = base_path


class EngineError(TordeckError):
    """Torrent engine errors."""


class EngineResolutionError(EngineError):
    """Magnet, URL or path could not be resolved into torrent metadata."""


class EngineOperationError(EngineError):
    """Engine refused or failed an operation (add, pause, resume, delete)."""


class EngineUnavailableError(EngineError):
    """Engine cannot be reached at all."""
