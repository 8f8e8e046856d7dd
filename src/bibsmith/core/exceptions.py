"""Custom exception hierarchy for the bibliography index and resource resolver."""

from __future__ import annotations


class BibsmithError(RuntimeError):
    """Base exception for bibsmith failures."""


class ConfigurationError(BibsmithError):
    """Raised when the configuration cannot produce a usable index or resolver."""


class TemplateError(BibsmithError):
    """Raised when a display template contains a malformed placeholder."""


class EntryNotFoundError(BibsmithError, LookupError):
    """Raised by helpers that require a citation key to be present."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No bibliography entry found for key '{key}'.")
        self.key = key


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "BibsmithError",
    "ConfigurationError",
    "EntryNotFoundError",
    "TemplateError",
    "exception_hint",
    "exception_messages",
]
