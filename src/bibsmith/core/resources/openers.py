"""Openers: side-effecting handlers that open one resource.

Every opener checks its own precondition first (right resource type, file
still on disk, URL scheme it understands) and answers ``False`` when it does
not apply, leaving the resolver free to try the next one.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass
import logging
from pathlib import Path
import shlex
import subprocess
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlsplit

import typer

from .specs import Resource, ResourceType, UrlResource
from .urls import UrlRegistry


logger = logging.getLogger(__name__)

Launcher = Callable[[str], int]
Spawner = Callable[..., Any]

WEB_SCHEMES = frozenset({"http", "https", "ftp", "file"})


@runtime_checkable
class ResourceOpener(Protocol):
    """Capability interface implemented by every opener."""

    name: str
    kind: ResourceType

    def open(self, resource: Resource) -> bool: ...


@dataclass(frozen=True)
class CallableOpener:
    """Adapter turning a plain predicate-with-side-effect into an opener."""

    name: str
    kind: ResourceType
    function: Callable[[Resource], bool]

    def open(self, resource: Resource) -> bool:
        if resource.type is not self.kind:
            return False
        return bool(self.function(resource))


def _launch(target: str) -> int:
    return typer.launch(target)


def _existing_path(resource: Resource, kind: ResourceType) -> Path | None:
    if resource.type is not kind:
        return None
    path = Path(str(resource.value)).expanduser()
    if not path.exists():
        logger.debug("Skipping %s: %s no longer exists.", kind.value, path)
        return None
    return path


class LaunchOpener:
    """Open files or notes with the desktop's default application."""

    name = "launch"

    def __init__(
        self, kind: ResourceType = ResourceType.FILE, launcher: Launcher = _launch
    ) -> None:
        self.kind = kind
        self._launcher = launcher

    def open(self, resource: Resource) -> bool:
        path = _existing_path(resource, self.kind)
        if path is None:
            return False
        return self._launcher(str(path)) == 0


class CommandOpener:
    """Open files with an external command, optionally limited to some extensions.

    ``command`` is split with :func:`shlex.split`; a ``{path}`` token is
    replaced by the file path, otherwise the path is appended.
    """

    def __init__(
        self,
        command: str,
        *,
        extensions: Collection[str] | None = None,
        kind: ResourceType = ResourceType.FILE,
        spawner: Spawner = subprocess.Popen,
    ) -> None:
        self.command = command
        self.extensions = (
            None
            if extensions is None
            else frozenset(extension.lower().lstrip(".") for extension in extensions)
        )
        self.kind = kind
        self.name = f"command:{shlex.split(command)[0]}" if command.strip() else "command"
        self._spawner = spawner

    def arguments(self, path: Path) -> list[str]:
        tokens = shlex.split(self.command)
        if any("{path}" in token for token in tokens):
            return [token.replace("{path}", str(path)) for token in tokens]
        return [*tokens, str(path)]

    def open(self, resource: Resource) -> bool:
        path = _existing_path(resource, self.kind)
        if path is None:
            return False
        if self.extensions is not None and path.suffix.lower().lstrip(".") not in self.extensions:
            return False
        self._spawner(
            self.arguments(path),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        return True


class BrowserOpener:
    """Open links in the web browser."""

    name = "browser"
    kind = ResourceType.URL

    def __init__(self, registry: UrlRegistry, launcher: Launcher = _launch) -> None:
        self.registry = registry
        self._launcher = launcher

    def open(self, resource: Resource) -> bool:
        if not isinstance(resource, UrlResource):
            return False
        url = self.registry.to_url(resource.spec)
        if urlsplit(url).scheme.lower() not in WEB_SCHEMES:
            return False
        return self._launcher(url) == 0


def default_openers(
    registry: UrlRegistry,
    *,
    commands: Sequence[tuple[str, Collection[str] | None]] = (),
    launcher: Launcher = _launch,
) -> list[ResourceOpener]:
    """Return the opener chain: configured commands, then the desktop defaults."""
    openers: list[ResourceOpener] = [
        CommandOpener(command, extensions=extensions) for command, extensions in commands
    ]
    openers.append(LaunchOpener(ResourceType.FILE, launcher))
    openers.append(LaunchOpener(ResourceType.NOTE, launcher))
    openers.append(BrowserOpener(registry, launcher))
    return openers


__all__ = [
    "WEB_SCHEMES",
    "BrowserOpener",
    "CallableOpener",
    "CommandOpener",
    "LaunchOpener",
    "ResourceOpener",
    "default_openers",
]
