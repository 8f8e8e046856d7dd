"""Display templates for bibliography candidates.

A template mixes literal text with placeholders of the form
``${name1 name2:width}``. Field names are alternatives tried left to right;
``width`` is a column count, ``*`` for "whatever is left of the line", or
omitted for an unconstrained value.

Rendering produces :class:`rich.text.Text`. Values longer than their column
are cut at the display width, and the cut-off tail is kept in the text under
the ``conceal`` style: ``text.plain`` still holds the full value for
substring search while :func:`visible_text` returns what a user sees.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
import re
from typing import Literal, Union

from rich.cells import cell_len, get_character_cell_size
from rich.style import Style
from rich.text import Text

from bibsmith.core.bibliography import Record
from bibsmith.core.exceptions import TemplateError


STAR: Literal["*"] = "*"
HIDDEN_STYLE = "conceal"

Width = Union[int, Literal["*"], None]

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]*)\}")
_FIELD_NAME_RE = re.compile(r"[^\s${}:]+")
_WIDTH_RE = re.compile(r"\d+", re.ASCII)


@dataclass(frozen=True, slots=True)
class Placeholder:
    """Slot in a template filled from the first non-empty field."""

    fields: tuple[str, ...]
    width: Width = None

    @property
    def is_star(self) -> bool:
        return self.width == STAR


@dataclass(frozen=True, slots=True)
class Template:
    """Parsed template: literal fragments interleaved with placeholders."""

    source: str
    parts: tuple[str | Placeholder, ...]

    @property
    def placeholders(self) -> tuple[Placeholder, ...]:
        return tuple(part for part in self.parts if isinstance(part, Placeholder))

    @property
    def literal_text(self) -> str:
        """Return the template with every placeholder replaced by nothing."""
        return "".join(part for part in self.parts if isinstance(part, str))

    @property
    def field_names(self) -> tuple[str, ...]:
        """Return every field name referenced by the template, in order."""
        names: dict[str, None] = {}
        for placeholder in self.placeholders:
            for name in placeholder.fields:
                names.setdefault(name.lower(), None)
        return tuple(names)


@lru_cache(maxsize=256)
def parse_template(source: str) -> Template:
    """Parse ``source`` into a :class:`Template`, failing on malformed placeholders."""
    parts: list[str | Placeholder] = []
    position = 0
    for match in _PLACEHOLDER_RE.finditer(source):
        literal = source[position : match.start()]
        _check_literal(literal, source)
        if literal:
            parts.append(literal)
        parts.append(_parse_placeholder(match.group(1), source))
        position = match.end()
    tail = source[position:]
    _check_literal(tail, source)
    if tail:
        parts.append(tail)
    return Template(source=source, parts=tuple(parts))


def _check_literal(literal: str, source: str) -> None:
    if "${" in literal:
        raise TemplateError(f"Unterminated placeholder in template {source!r}.")


def _parse_placeholder(body: str, source: str) -> Placeholder:
    names_part, separator, width_part = body.rpartition(":")
    if not separator:
        names_part = body
    names = tuple(names_part.split())
    if not names:
        raise TemplateError(f"Placeholder '${{{body}}}' names no field in template {source!r}.")
    for name in names:
        if not _FIELD_NAME_RE.fullmatch(name):
            raise TemplateError(f"Invalid field name {name!r} in template {source!r}.")

    if not separator:
        return Placeholder(fields=names)
    width_text = width_part.strip()
    if width_text == STAR:
        return Placeholder(fields=names, width=STAR)
    if not _WIDTH_RE.fullmatch(width_text):
        raise TemplateError(
            f"Placeholder '${{{body}}}' width must be a non-negative integer or '*' "
            f"in template {source!r}."
        )
    return Placeholder(fields=names, width=int(width_text))


def _as_template(template: Template | str) -> Template:
    return template if isinstance(template, Template) else parse_template(template)


def compute_width(template: Template | str) -> int:
    """Return the fixed column count of a template.

    Explicit placeholder widths plus the width of the literal text. Star and
    unconstrained placeholders count for nothing.
    """
    parsed = _as_template(template)
    explicit = sum(
        placeholder.width
        for placeholder in parsed.placeholders
        if isinstance(placeholder.width, int)
    )
    return explicit + cell_len(parsed.literal_text)


def fit_to_width(value: str, width: int) -> Text:
    """Return ``value`` occupying exactly ``width`` display columns.

    Short values are padded with spaces. Long values are cut on a character
    boundary and the remainder is appended with the hidden style.
    """
    width = max(0, width)
    used = 0
    cut = len(value)
    for index, char in enumerate(value):
        size = get_character_cell_size(char)
        if used + size > width:
            cut = index
            break
        used += size

    text = Text(value[:cut])
    if used < width:
        text.append(" " * (width - used))
    if cut < len(value):
        text.append(value[cut:], style=HIDDEN_STYLE)
    return text


def is_hidden_style(style: str | Style) -> bool:
    parsed = Style.parse(style) if isinstance(style, str) else style
    return bool(parsed.conceal)


def visible_text(text: Text) -> str:
    """Return the characters of ``text`` that are not concealed."""
    plain = text.plain
    hidden = [False] * len(plain)
    for span in text.spans:
        if is_hidden_style(span.style):
            for index in range(span.start, min(span.end, len(plain))):
                hidden[index] = True
    return "".join(char for char, masked in zip(plain, hidden) if not masked)


# ---------------------------------------------------------------- transforms


@dataclass(frozen=True, slots=True)
class FieldTransform:
    """Value transform applied when the selected field matches ``fields``.

    ``fields=None`` matches every field.
    """

    transform: Callable[[str], str]
    fields: frozenset[str] | None = None

    def __post_init__(self) -> None:
        if self.fields is not None:
            object.__setattr__(self, "fields", frozenset(name.lower() for name in self.fields))

    def applies_to(self, field_name: str) -> bool:
        return self.fields is None or field_name.lower() in self.fields


_BRACES_RE = re.compile(r"[{}]")


def clean_string(value: str) -> str:
    """Drop TeX grouping braces and collapse whitespace."""
    value = value.replace("\\&", "&")
    value = _BRACES_RE.sub("", value)
    return " ".join(value.split())


_NAME_SEPARATOR_RE = re.compile(r"\s+and\s+")


def _family_name(name: str) -> str:
    if "," in name:
        return name.split(",", 1)[0].strip()
    words = name.split()
    return words[-1] if words else ""


def shorten_names(value: str, truncate: int | None = None, and_str: str | None = None) -> str:
    """Reduce a BibTeX name list to family names.

    ``"Doe, Jane and Roe, Richard"`` becomes ``"Doe, Roe"``. With ``truncate``
    only the first names are kept and ``et al.`` marks the cut; with
    ``and_str`` the last two names of an untruncated list are joined by it.
    """
    names = [name.strip() for name in _NAME_SEPARATOR_RE.split(value.strip()) if name.strip()]
    shown = names[:truncate] if truncate else names
    families = [family for family in (_family_name(name) for name in shown) if family]
    truncated = truncate is not None and len(names) > truncate
    if and_str and len(families) > 1 and not truncated:
        joined = ", ".join(families[:-1]) + f" {and_str} " + families[-1]
    else:
        joined = ", ".join(families)
    if truncated:
        joined += " et al."
    return joined


DEFAULT_TRANSFORMS: tuple[FieldTransform, ...] = (
    FieldTransform(clean_string),
    FieldTransform(shorten_names, fields=frozenset({"author", "editor"})),
)


# -------------------------------------------------------------------- engine


def _lookup(record: Mapping[str, str], name: str) -> str | None:
    value = record.get(name)
    if value is None and not isinstance(record, Record):
        lowered = name.lower()
        for field_name, field_value in record.items():
            if field_name.lower() == lowered:
                return field_value
    return value


class TemplateEngine:
    """Render records through templates using an ordered list of transforms."""

    def __init__(self, transforms: Iterable[FieldTransform] = DEFAULT_TRANSFORMS) -> None:
        self._transforms = tuple(transforms)

    @property
    def transforms(self) -> tuple[FieldTransform, ...]:
        return self._transforms

    def select_display_value(self, fields: Sequence[str], record: Mapping[str, str]) -> str:
        """Return the first non-empty field value after applying matching transforms."""
        for name in fields:
            value = _lookup(record, name)
            if value is None or not str(value).strip():
                continue
            result = str(value)
            for field_transform in self._transforms:
                if field_transform.applies_to(name):
                    result = field_transform.transform(result)
            return result
        return ""

    def render_entry(
        self,
        record: Mapping[str, str],
        star_width: int | None,
        template: Template | str,
    ) -> Text:
        """Fill ``template`` from ``record``.

        ``star_width`` is the column count given to ``*`` placeholders; when
        ``None`` they are inserted unconstrained.
        """
        text = Text()
        for part in _as_template(template).parts:
            if isinstance(part, str):
                text.append(part)
                continue
            value = self.select_display_value(part.fields, record)
            width = star_width if part.is_star else part.width
            if width is None:
                text.append(value)
            else:
                text.append_text(fit_to_width(value, width))
        return text

    def format(self, template: Template | str, record: Mapping[str, str]) -> str:
        """Render ``template`` as a plain string with star placeholders unconstrained."""
        return self.render_entry(record, None, template).plain


__all__ = [
    "DEFAULT_TRANSFORMS",
    "HIDDEN_STYLE",
    "STAR",
    "FieldTransform",
    "Placeholder",
    "Template",
    "TemplateEngine",
    "clean_string",
    "compute_width",
    "fit_to_width",
    "is_hidden_style",
    "parse_template",
    "shorten_names",
    "visible_text",
]
