"""Content discovery, listing and authoring services.

Reads a content tree into ContentDocuments, builds the listing a site
generator would publish, and scaffolds or normalises individual files.
All filesystem I/O for documents happens here.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime
from pathlib import Path

from folio.errors import ContentNotFoundError, FrontMatterError
from folio.frontmatter import parse_document, render_document, serialize_header
from folio.models import (
    ContentDocument,
    FrontMatter,
    HeaderFormat,
    SiteListing,
    TaxonomyTerm,
)

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".md", ".markdown")


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------


def taxonomy_slug(label: str) -> str:
    """Normalise a tag or category label the way term URLs are built.

    Only word characters and hyphens survive, so a slug is always safe
    to use as a single file name.
    """
    hyphenated = "-".join(label.strip().lower().split())
    return re.sub(r"[^\w-]", "", hyphenated)


def slugify(text: str) -> str:
    """Turn a title into a filename-safe slug."""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    normalized = re.sub(r"[^\w\s-]", "", normalized.lower())
    return re.sub(r"[\s_-]+", "-", normalized).strip("-")


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class ContentReader:
    """Discovers and reads content documents below a directory."""

    def __init__(
        self,
        content_dir: Path,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
    ) -> None:
        self.content_dir = Path(content_dir)
        self.extensions = tuple(ext.lower() for ext in extensions)

    def discover(self) -> list[Path]:
        """Return content files below the directory, sorted, skipping hidden paths.

        Raises:
            ContentNotFoundError: If the content directory does not exist.
        """
        if not self.content_dir.is_dir():
            raise ContentNotFoundError(self.content_dir)

        found: list[Path] = []
        for path in self.content_dir.rglob("*"):
            relative = path.relative_to(self.content_dir)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.is_file() and path.suffix.lower() in self.extensions:
                found.append(path)
        found.sort()
        logger.debug("Discovered %d content files in %s", len(found), self.content_dir)
        return found

    def read(self, path: Path) -> ContentDocument:
        """Read and parse one content file.

        Raises:
            FrontMatterError: If the header is missing or malformed.
            OSError: If the file cannot be read.
        """
        text = path.read_text(encoding="utf-8")
        try:
            relative = path.relative_to(self.content_dir).as_posix()
        except ValueError:
            relative = path.name
        return parse_document(text, path, relative)

    def read_all(self) -> tuple[list[ContentDocument], list[FrontMatterError]]:
        """Read every discovered file.

        Files that fail to parse are collected rather than aborting the
        scan; unreadable files are reported as failures too.

        Returns:
            ``(documents, failures)``.
        """
        documents: list[ContentDocument] = []
        failures: list[FrontMatterError] = []
        for path in self.discover():
            try:
                documents.append(self.read(path))
            except FrontMatterError as exc:
                logger.warning("Skipping %s: %s", path, exc.reason)
                failures.append(exc)
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Could not read content file: %s", path)
                failures.append(FrontMatterError(path, f"unreadable file: {exc}"))
        logger.info(
            "Read %d documents from %s (%d failed)",
            len(documents),
            self.content_dir,
            len(failures),
        )
        return documents, failures


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def _listing_key(document: ContentDocument) -> tuple[datetime, str, str]:
    published = document.front_matter.publish_date or datetime.min.replace(tzinfo=UTC)
    return (published, document.title.casefold(), str(document.path))


def _file_terms(
    terms: dict[str, TaxonomyTerm], labels: Iterable[str], document: ContentDocument
) -> None:
    filed: set[str] = set()
    for label in labels:
        if not label.strip():
            continue
        slug = taxonomy_slug(label)
        if not slug:
            logger.warning(
                "Not filing %s under %r: label has no usable characters", document.path, label
            )
            continue
        if slug in filed:
            continue
        filed.add(slug)
        term = terms.get(slug)
        if term is None:
            term = terms[slug] = TaxonomyTerm(name=label.strip(), slug=slug)
        term.documents.append(document)


def build_listing(
    documents: Iterable[ContentDocument],
    now: datetime | None = None,
    include_drafts: bool = False,
    include_future: bool = False,
    newest_first: bool = False,
) -> SiteListing:
    """Build the published view of a set of documents.

    Drafts and future-dated documents are left out unless asked for and
    kept aside in ``drafts``/``future``. A future-dated draft needs both
    ``include_drafts`` and ``include_future``. Documents with no title or date
    cannot be placed and are dropped with a warning.

    Args:
        documents: Parsed documents, in any order.
        now: Reference time for future-dating, defaults to the current time.
        include_drafts: List drafts alongside published documents.
        include_future: List documents dated after ``now``.
        newest_first: Reverse the chronological order.

    Returns:
        A SiteListing ordered by date, then title, then path.
    """
    now = now or datetime.now(tz=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    listed: list[ContentDocument] = []
    drafts: list[ContentDocument] = []
    future: list[ContentDocument] = []
    for document in documents:
        fm = document.front_matter
        if not fm.title.strip() or fm.publish_date is None:
            logger.warning("Not listing %s: missing title or date", document.path)
            continue
        is_future = fm.publish_date > now
        if fm.is_draft:
            drafts.append(document)
            if not include_drafts:
                continue
        elif is_future:
            future.append(document)
        if is_future and not include_future:
            continue
        listed.append(document)

    listed.sort(key=_listing_key, reverse=newest_first)
    drafts.sort(key=_listing_key)
    future.sort(key=_listing_key)

    tags: dict[str, TaxonomyTerm] = {}
    categories: dict[str, TaxonomyTerm] = {}
    for document in listed:
        _file_terms(tags, document.front_matter.tags, document)
        _file_terms(categories, document.front_matter.categories, document)

    return SiteListing(
        documents=listed,
        tags=dict(sorted(tags.items())),
        categories=dict(sorted(categories.items())),
        drafts=drafts,
        future=future,
        generated_at=now,
    )


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


def new_document(
    content_dir: Path,
    title: str,
    section: str = "posts",
    tags: Sequence[str] = (),
    categories: Sequence[str] = (),
    summary: str | None = None,
    draft: bool = True,
    header_format: HeaderFormat = HeaderFormat.YAML,
    when: date | datetime | None = None,
) -> Path:
    """Scaffold a new content file and return its path.

    Raises:
        ValueError: If the title has no usable characters for a slug.
        FileExistsError: If a file already exists at the target path.
    """
    slug = slugify(title)
    if not slug:
        raise ValueError(f"Cannot derive a file name from title {title!r}")

    target_dir = Path(content_dir) / section if section else Path(content_dir)
    path = target_dir / f"{slug}.md"
    if path.exists():
        raise FileExistsError(path)

    front_matter = FrontMatter(
        title=title,
        date=when or datetime.now(tz=UTC).replace(microsecond=0),
        draft=draft,
        summary=summary,
        tags=list(tags),
        categories=list(categories),
    )
    target_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_header(front_matter, header_format) + "\n", encoding="utf-8")
    logger.info("Created %s", path)
    return path


def normalize_document(
    path: Path,
    header_format: HeaderFormat | None = None,
    write: bool = True,
) -> bool:
    """Rewrite a file's header in canonical form.

    The body is kept byte for byte. With ``header_format`` the header is
    converted to that format.

    Returns:
        True if the file content differs (and, with ``write``, was rewritten).

    Raises:
        FrontMatterError: If the existing header cannot be parsed, or a
            value cannot be written in the target format.
    """
    original = path.read_text(encoding="utf-8")
    document = parse_document(original, path)
    try:
        rendered = render_document(document, header_format)
    except FrontMatterError as exc:
        raise FrontMatterError(path, exc.reason) from exc
    if rendered == original:
        return False
    if write:
        path.write_text(rendered, encoding="utf-8")
        logger.info("Normalized %s", path)
    return True
