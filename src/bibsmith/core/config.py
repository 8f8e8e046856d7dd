"""Configuration models for the candidate index and the resource resolver.

BibsmithConfig

`bibliography` (`list[Path]`)
: Global bibliography files. Relative paths are resolved against the
  directory holding the configuration file.

`library_paths` (`list[Path]`)
: Directories searched for documents named after citation keys, and used to
  resolve relative paths found in `file` fields.

`library_file_extensions` (`list[str] | None`)
: Extensions accepted for library documents. `None` accepts every file.

`file_additional_separator` (`str | None`)
: When set, `key<separator>anything.pdf` also belongs to `key`.

`file_field` (`str`)
: Record field listing attached files (`file` by default).

`notes_paths` (`list[Path]`)
: Directories holding one note per key, named `<key>.<extension>`.

`note_extensions` (`list[str]`)
: Extensions tried for note files, in order.

`templates` (`TemplatesConfig`)
: `main`, `suffix`, `preview` and `note` display templates. Malformed
  placeholders are rejected when the configuration is loaded.

`symbols` (`SymbolsConfig`)
: Present/absent symbol pairs for files, notes and links plus the separator
  used to join them into the prefix column.

`margin` (`int`)
: Columns kept free when computing the width of `*` placeholders.

`link_fields` (`dict[str, str | None]`)
: Record fields turned into links, mapped to a URL identifier type or to
  `null` for fields that already hold a URL.

`url_types` (`list[UrlTypeConfig]`)
: Ordered identifier table: `type`, `name`, `url_format` (one `%s`),
  `pattern` (one capture group) and an optional `example`.

`url_recognition` / `url_normalization` (`"all" | "none" | list[str]`)
: Identifier types recognised in URLs, and types stored in canonical form.

`open_commands` (`list[OpenCommandConfig]`)
: External commands tried before the desktop default when opening files.

`rebuild_command` (`str | None`)
: Command run before a heavy rebuild, e.g. an export from a reference manager.

`cited_tag` (`str`)
: Search tag added to candidates cited in the current context.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
import yaml

from bibsmith.core.candidates import CITED_TAG, CandidateTemplates, SymbolSet, parse_template
from bibsmith.core.candidates.index import (
    DEFAULT_MAIN_TEMPLATE,
    DEFAULT_NOTE_TEMPLATE,
    DEFAULT_PREVIEW_TEMPLATE,
    DEFAULT_SUFFIX_TEMPLATE,
)
from bibsmith.core.exceptions import BibsmithError, ConfigurationError
from bibsmith.core.resources import (
    DEFAULT_LINK_FIELDS,
    DEFAULT_URL_IDENTIFIERS,
    ResourceType,
    TypePolicy,
    UrlIdentifier,
    UrlRegistry,
)
from bibsmith.core.user_dir import get_user_dir


PolicyValue = Literal["all", "none"] | list[str]


class TemplatesConfig(BaseModel):
    """Display templates."""

    model_config = ConfigDict(extra="forbid")

    main: str = DEFAULT_MAIN_TEMPLATE
    suffix: str = DEFAULT_SUFFIX_TEMPLATE
    preview: str = DEFAULT_PREVIEW_TEMPLATE
    note: str = DEFAULT_NOTE_TEMPLATE

    @field_validator("main", "suffix", "preview", "note")
    @classmethod
    def check_template(cls, value: str) -> str:
        try:
            parse_template(value)
        except BibsmithError as exc:
            raise ValueError(str(exc)) from exc
        return value

    def build(self) -> CandidateTemplates:
        return CandidateTemplates.from_strings(
            main=self.main, suffix=self.suffix, preview=self.preview, note=self.note
        )


class SymbolsConfig(BaseModel):
    """Symbols shown in the candidate prefix column."""

    model_config = ConfigDict(extra="forbid")

    file: tuple[str, str] = ("F", " ")
    note: tuple[str, str] = ("N", " ")
    link: tuple[str, str] = ("L", " ")
    separator: str = " "

    @model_validator(mode="after")
    def check_widths(self) -> SymbolsConfig:
        try:
            self.build()
        except BibsmithError as exc:
            raise ValueError(str(exc)) from exc
        return self

    def build(self) -> SymbolSet:
        return SymbolSet(
            symbols={
                ResourceType.FILE: self.file,
                ResourceType.NOTE: self.note,
                ResourceType.URL: self.link,
            },
            separator=self.separator,
        )


class UrlTypeConfig(BaseModel):
    """One entry of the URL identifier table."""

    model_config = ConfigDict(extra="forbid")

    type: str
    name: str
    url_format: str
    pattern: str
    example: str | None = None

    @model_validator(mode="after")
    def check_identifier(self) -> UrlTypeConfig:
        try:
            self.build()
        except BibsmithError as exc:
            raise ValueError(str(exc)) from exc
        return self

    def build(self) -> UrlIdentifier:
        return UrlIdentifier(
            type=self.type,
            name=self.name,
            url_format=self.url_format,
            pattern=self.pattern,  # type: ignore[arg-type]
            example=self.example,
        )


class OpenCommandConfig(BaseModel):
    """External command used to open files with matching extensions."""

    model_config = ConfigDict(extra="forbid")

    command: str
    extensions: list[str] | None = None


def _default_url_types() -> list[UrlTypeConfig]:
    return [
        UrlTypeConfig(
            type=identifier.type,
            name=identifier.name,
            url_format=identifier.url_format,
            pattern=identifier.pattern.pattern,
            example=identifier.example,
        )
        for identifier in DEFAULT_URL_IDENTIFIERS
    ]


class BibsmithConfig(BaseModel):
    """Top-level configuration read from ``config.yml``."""

    model_config = ConfigDict(extra="forbid")

    bibliography: list[Path] = Field(default_factory=list)
    library_paths: list[Path] = Field(default_factory=list)
    library_file_extensions: list[str] | None = None
    file_additional_separator: str | None = None
    file_field: str = "file"
    notes_paths: list[Path] = Field(default_factory=list)
    note_extensions: list[str] = Field(default_factory=lambda: ["org", "md"])
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    symbols: SymbolsConfig = Field(default_factory=SymbolsConfig)
    margin: int = Field(default=2, ge=0)
    link_fields: dict[str, str | None] = Field(default_factory=lambda: dict(DEFAULT_LINK_FIELDS))
    url_types: list[UrlTypeConfig] = Field(default_factory=_default_url_types)
    url_recognition: PolicyValue = "all"
    url_normalization: PolicyValue = "all"
    open_commands: list[OpenCommandConfig] = Field(default_factory=list)
    rebuild_command: str | None = None
    cited_tag: str = CITED_TAG

    @model_validator(mode="after")
    def check_link_types(self) -> BibsmithConfig:
        """Reject link fields that point at unregistered identifier types."""
        known = {url_type.type for url_type in self.url_types}
        for field_name, type_tag in self.link_fields.items():
            if type_tag is not None and type_tag not in known:
                raise ValueError(f"link field '{field_name}' uses unknown URL type '{type_tag}'")
        return self

    def resolve_paths(self, base: Path) -> BibsmithConfig:
        """Return a copy whose relative paths are anchored at ``base``."""

        def _anchor(paths: list[Path]) -> list[Path]:
            return [path if path.expanduser().is_absolute() else base / path for path in paths]

        return self.model_copy(
            update={
                "bibliography": _anchor(self.bibliography),
                "library_paths": _anchor(self.library_paths),
                "notes_paths": _anchor(self.notes_paths),
            }
        )

    @property
    def recognition_policy(self) -> TypePolicy:
        return TypePolicy.coerce(self.url_recognition)

    @property
    def normalization_policy(self) -> TypePolicy:
        return TypePolicy.coerce(self.url_normalization)

    def url_registry(self) -> UrlRegistry:
        return UrlRegistry(
            (url_type.build() for url_type in self.url_types),
            recognition=self.recognition_policy,
            normalization=self.normalization_policy,
        )


def parse_config(payload: Any, *, base: Path | None = None) -> BibsmithConfig:
    """Validate a decoded mapping into a configuration."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ConfigurationError("Configuration must be a mapping of settings.")
    try:
        config = BibsmithConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    return config.resolve_paths(base) if base is not None else config


def load_config(path: Path | str | None = None) -> BibsmithConfig:
    """Load the configuration file, falling back to defaults for the implicit path."""
    explicit = path is not None
    config_path = Path(path).expanduser() if path is not None else get_user_dir().config_path
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        if explicit:
            raise ConfigurationError(f"Configuration file not found: {config_path}") from exc
        return BibsmithConfig()
    try:
        payload = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Unable to parse '{config_path}': {exc}") from exc
    return parse_config(payload, base=config_path.resolve().parent)


__all__ = [
    "BibsmithConfig",
    "OpenCommandConfig",
    "SymbolsConfig",
    "TemplatesConfig",
    "UrlTypeConfig",
    "load_config",
    "parse_config",
]
