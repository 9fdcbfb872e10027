"""Plain markdown index publisher for repositories and GitHub Pages."""

from __future__ import annotations

from itertools import groupby
from pathlib import Path

from folio.models import ContentDocument, SiteListing, TaxonomyTerm
from folio.publishers.base import IndexPublisher


class MarkdownIndexPublisher(IndexPublisher):
    """Formats the listing as plain markdown with relative links.

    Args:
        link_prefix: Path from the output directory to the content root,
            prepended to each document's relative path.
    """

    def __init__(self, link_prefix: str = "") -> None:
        self.link_prefix = link_prefix.rstrip("/")

    def format_index(self, listing: SiteListing) -> str:
        lines: list[str] = ["# Posts", ""]
        if not listing.documents:
            lines.append("_Nothing published yet._")
            lines.append("")
            return "\n".join(lines)

        newest = sorted(
            listing.documents,
            key=lambda d: d.front_matter.publish_date,
            reverse=True,
        )
        for year, documents in groupby(newest, key=lambda d: d.front_matter.publish_date.year):
            lines.append(f"## {year}")
            lines.append("")
            for document in documents:
                lines.append(self._entry(document, self.link_prefix))
            lines.append("")

        if listing.tags:
            lines.append("## Tags")
            lines.append("")
            terms = ", ".join(
                f"[{term.name}](tags/{term.slug}.md) ({term.count})"
                for term in listing.tags.values()
            )
            lines.append(terms)
            lines.append("")

        if listing.categories:
            lines.append("## Categories")
            lines.append("")
            for term in listing.categories.values():
                lines.append(f"- [{term.name}](categories/{term.slug}.md) ({term.count})")
            lines.append("")

        return "\n".join(lines)

    def index_path(self, output_dir: Path) -> Path:
        return output_dir / "README.md"

    def format_term(self, term: TaxonomyTerm, kind: str) -> str:
        label = "Tag" if kind == "tags" else "Category"
        prefix = f"../{self.link_prefix}" if self.link_prefix else ".."
        lines: list[str] = [f"# {label}: {term.name}", ""]
        for document in sorted(term.documents, key=lambda d: d.front_matter.publish_date, reverse=True):
            lines.append(self._entry(document, prefix))
        lines.append("")
        return "\n".join(lines)

    def term_path(self, output_dir: Path, kind: str, term: TaxonomyTerm) -> Path:
        return output_dir / kind / f"{term.slug}.md"

    def _entry(self, document: ContentDocument, prefix: str) -> str:
        target = document.relative_path or document.path.name
        if prefix:
            target = f"{prefix}/{target}"
        date_str = document.front_matter.publish_date.strftime("%Y-%m-%d")
        entry = f"- [{document.title}]({target}) ({date_str})"
        teaser = document.front_matter.teaser
        if teaser:
            entry += f": {teaser.strip()}"
        return entry
