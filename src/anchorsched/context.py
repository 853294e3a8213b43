"""Process-wide state set by the CLI's global options."""

from __future__ import annotations

from pathlib import Path


class _Context:
    """Holds the ``--config`` settings file chosen on the command line."""

    def __init__(self) -> None:
        self.settings_path: Path | None = None


_context = _Context()


def get_settings_path() -> Path | None:
    """Get the settings file passed with ``--config``, if any.

    config.discover_settings() consults this before looking for
    anchorsched.yaml in the working directory.
    """
    return _context.settings_path


def set_settings_path(path: Path | None) -> None:
    """Record the settings file for later discovery; None clears it."""
    _context.settings_path = path
