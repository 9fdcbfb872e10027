"""Pure data models for content documents.

All Pydantic models and enums live here. No I/O, no parsing, no
filesystem access. Services import from this module; this module only
imports from stdlib and third-party packages.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime, time
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, Field, Strict, StrictBool

# Aliased so the ``date`` field below does not shadow the type.
_Date = date

WORDS_PER_MINUTE = 200

_SCHEME_RE = re.compile(r"^(https?|mailto|ftp):", re.IGNORECASE)

# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


class HeaderFormat(StrEnum):
    """Metadata header formats recognised at the top of a content file."""

    YAML = "yaml"
    TOML = "toml"
    JSON = "json"


class FrontMatter(BaseModel):
    """Parsed metadata header of a content document.

    ``title`` and ``date`` default to empty so that a document missing
    them can still be loaded and reported on; presence is checked by
    the validation layer, not here. Types are checked here.
    """

    title: str = ""
    date: Annotated[datetime, Strict()] | Annotated[_Date, Strict()] | None = None
    draft: StrictBool = False
    description: str | None = None
    summary: str | None = None
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_draft(self) -> bool:
        return self.draft

    @property
    def tag_set(self) -> frozenset[str]:
        return frozenset(self.tags)

    @property
    def category_set(self) -> frozenset[str]:
        return frozenset(self.categories)

    @property
    def teaser(self) -> str | None:
        """The summary text, falling back to the description."""
        return self.summary or self.description

    @property
    def publish_date(self) -> datetime | None:
        """The date as an aware UTC datetime, for ordering.

        Bare dates become midnight; naive datetimes are taken as UTC.
        """
        if self.date is None:
            return None
        if not isinstance(self.date, datetime):
            return datetime.combine(self.date, time.min, tzinfo=UTC)
        if self.date.tzinfo is None:
            return self.date.replace(tzinfo=UTC)
        return self.date.astimezone(UTC)


# ---------------------------------------------------------------------------
# Body elements
# ---------------------------------------------------------------------------


class Shortcode(BaseModel):
    """An inline generator directive such as ``{{< figure src="..." >}}``."""

    name: str
    params: dict[str, str] = Field(default_factory=dict)
    positional: list[str] = Field(default_factory=list)
    line: int = 1
    raw: str = ""
    closing: bool = False
    self_closing: bool = False


class Link(BaseModel):
    """A hyperlink or image reference found in a document body."""

    text: str = ""
    target: str
    is_image: bool = False
    line: int = 1

    @property
    def is_external(self) -> bool:
        return bool(_SCHEME_RE.match(self.target)) or self.target.startswith("//")


class CodeBlock(BaseModel):
    """A fenced code listing. Its content is never interpreted."""

    language: str = ""
    content: str = ""
    line: int = 1


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class ContentDocument(BaseModel):
    """One Markdown file with a metadata header."""

    path: Path
    relative_path: str = ""
    header_format: HeaderFormat | None = None
    front_matter: FrontMatter = Field(default_factory=FrontMatter)
    raw_header: dict[str, Any] = Field(default_factory=dict)
    body: str = ""
    body_offset: int = 0  # file lines before the body starts

    @property
    def title(self) -> str:
        return self.front_matter.title

    @property
    def slug(self) -> str:
        """URL slug: explicit ``slug`` key, else the file or bundle name."""
        explicit = self.front_matter.extra.get("slug")
        if isinstance(explicit, str) and explicit.strip():
            return explicit.strip()
        if self.path.stem in ("index", "_index"):
            return self.path.parent.name
        return self.path.stem

    @property
    def word_count(self) -> int:
        from folio.body import word_count

        return word_count(self.body)

    @property
    def reading_time(self) -> int:
        """Estimated reading time in whole minutes."""
        words = self.word_count
        if words == 0:
            return 0
        return max(1, math.ceil(words / WORDS_PER_MINUTE))

    def is_publishable(self, now: datetime | None = None, include_future: bool = False) -> bool:
        """Whether the generator would list this document.

        Drafts are never publishable; future-dated documents only when
        ``include_future`` is set.
        """
        if self.front_matter.is_draft:
            return False
        published = self.front_matter.publish_date
        if published is None:
            return False
        if include_future:
            return True
        now = now or datetime.now(tz=UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return published <= now


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class Severity(StrEnum):
    """How serious a validation issue is."""

    ERROR = "error"
    WARNING = "warning"


class ValidationOptions(BaseModel):
    """Switches for optional validation checks."""

    check_images: bool = False
    warn_duplicate_labels: bool = True
    static_dir: Path | None = None


class ValidationIssue(BaseModel):
    """A single content-authoring defect."""

    path: Path
    field: str
    message: str
    severity: Severity = Severity.ERROR
    line: int | None = None


class ValidationReport(BaseModel):
    """Outcome of validating a set of documents."""

    documents_checked: int = 0
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def by_path(self) -> dict[Path, list[ValidationIssue]]:
        grouped: dict[Path, list[ValidationIssue]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.path, []).append(issue)
        return grouped


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TaxonomyTerm(BaseModel):
    """One tag or category and the listed documents filed under it."""

    name: str
    slug: str
    documents: list[ContentDocument] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.documents)


class SiteListing(BaseModel):
    """The generator-facing view of a content tree."""

    documents: list[ContentDocument] = Field(default_factory=list)
    tags: dict[str, TaxonomyTerm] = Field(default_factory=dict)
    categories: dict[str, TaxonomyTerm] = Field(default_factory=dict)
    drafts: list[ContentDocument] = Field(default_factory=list)
    future: list[ContentDocument] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    def taxonomy(self, kind: str) -> dict[str, TaxonomyTerm]:
        """Return the ``tags`` or ``categories`` mapping by name."""
        if kind == "tags":
            return self.tags
        if kind == "categories":
            return self.categories
        raise ValueError(f"Unknown taxonomy: {kind!r}")
