"""Resolution of the bibsmith user directory holding the configuration file."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import os
from pathlib import Path
from threading import RLock


__all__ = [
    "BibsmithUserDir",
    "configure_user_dir",
    "get_user_dir",
    "user_dir_context",
]

CONFIG_FILENAME = "config.yml"

_USER_DIR: BibsmithUserDir | None = None
_LOCK: RLock = RLock()


def _resolve_root(root: str | Path | None) -> tuple[Path, bool]:
    if root is not None:
        return Path(root).expanduser(), True
    env_root = os.environ.get("BIBSMITH_HOME")
    if env_root:
        return Path(env_root).expanduser(), True
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config).expanduser() / "bibsmith", True
    return Path.home() / ".bibsmith", False


@dataclass(slots=True)
class BibsmithUserDir:
    """Resolved user root plus the paths derived from it."""

    root: Path
    root_is_explicit: bool = False

    @property
    def config_path(self) -> Path:
        """Return the location of the default configuration file."""
        return self.root / CONFIG_FILENAME


def configure_user_dir(*, root: str | Path | None = None) -> BibsmithUserDir:
    """Replace the global user dir singleton with a freshly resolved instance."""
    global _USER_DIR
    user_root, root_was_explicit = _resolve_root(root)
    with _LOCK:
        _USER_DIR = BibsmithUserDir(root=user_root, root_is_explicit=root_was_explicit)
        return _USER_DIR


def get_user_dir() -> BibsmithUserDir:
    """Return the lazily created user dir singleton.

    An implicit root is re-resolved on every call so environment changes made
    after the first lookup (tests, nested tools) are honoured.
    """
    global _USER_DIR
    with _LOCK:
        if _USER_DIR is None:
            return configure_user_dir()
        if not _USER_DIR.root_is_explicit:
            current_root, root_was_explicit = _resolve_root(None)
            if _USER_DIR.root != current_root:
                _USER_DIR = BibsmithUserDir(root=current_root, root_is_explicit=root_was_explicit)
        return _USER_DIR


@contextmanager
def user_dir_context(*, root: str | Path | None = None) -> Iterator[BibsmithUserDir]:
    """Temporarily override the global user dir singleton."""
    global _USER_DIR
    with _LOCK:
        previous = _USER_DIR
    current = configure_user_dir(root=root)
    try:
        yield current
    finally:
        with _LOCK:
            _USER_DIR = previous
