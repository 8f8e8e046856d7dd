"""CLI command implementations exposed via `bibsmith.ui.cli`."""

from __future__ import annotations

from .listing import list_candidates
from .resources import list_resources, open_resources
from .show import show_entry
from .url import recognise_url


__all__ = ["list_candidates", "list_resources", "open_resources", "recognise_url", "show_entry"]
