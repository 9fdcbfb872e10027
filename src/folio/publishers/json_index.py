"""Machine-readable JSON listing."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from folio.models import ContentDocument, SiteListing, TaxonomyTerm
from folio.publishers.base import IndexPublisher


def document_record(document: ContentDocument) -> dict[str, Any]:
    """Summarise a document as a JSON-ready dict."""
    fm = document.front_matter
    return {
        "title": fm.title,
        "date": fm.date.isoformat() if fm.date is not None else None,
        "slug": document.slug,
        "path": document.relative_path or document.path.name,
        "draft": fm.draft,
        "tags": list(fm.tags),
        "categories": list(fm.categories),
        "summary": fm.teaser,
        "reading_time": document.reading_time,
    }


class JsonIndexPublisher(IndexPublisher):
    """Writes a single ``index.json`` holding posts and term membership."""

    writes_term_pages = False

    def format_index(self, listing: SiteListing) -> str:
        payload = {
            "generated_at": listing.generated_at.isoformat(),
            "posts": [document_record(d) for d in listing.documents],
            "tags": {slug: self._term_paths(term) for slug, term in listing.tags.items()},
            "categories": {
                slug: self._term_paths(term) for slug, term in listing.categories.items()
            },
        }
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    def index_path(self, output_dir: Path) -> Path:
        return output_dir / "index.json"

    def format_term(self, term: TaxonomyTerm, kind: str) -> str:
        return json.dumps({"kind": kind, "name": term.name, "posts": self._term_paths(term)}, indent=2)

    def term_path(self, output_dir: Path, kind: str, term: TaxonomyTerm) -> Path:
        return output_dir / kind / f"{term.slug}.json"

    @staticmethod
    def _term_paths(term: TaxonomyTerm) -> list[str]:
        return [d.relative_path or d.path.name for d in term.documents]
