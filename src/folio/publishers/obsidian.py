"""Obsidian-compatible markdown index publisher."""

from __future__ import annotations

from pathlib import Path

from folio.models import SiteListing, TaxonomyTerm
from folio.publishers.base import IndexPublisher


class ObsidianIndexPublisher(IndexPublisher):
    """Formats the listing as Obsidian notes with wiki links."""

    def format_index(self, listing: SiteListing) -> str:
        """Generate the Obsidian index note.

        Args:
            listing: The published listing.

        Returns:
            Complete Obsidian markdown note with a YAML header.
        """
        lines: list[str] = [
            "---",
            "type: content-index",
            f"created: {listing.generated_at.strftime('%Y-%m-%dT%H:%M:%S')}",
            f"total_posts: {len(listing.documents)}",
            "---",
            "",
            "# Content Index",
            "",
        ]

        for document in reversed(listing.documents):
            date_str = document.front_matter.publish_date.strftime("%Y-%m-%d")
            note = Path(document.relative_path or document.path.name).with_suffix("").as_posix()
            lines.append(f"- {date_str} [[{note}|{document.title}]]")
        lines.append("")

        if listing.tags:
            lines.append("## Tags")
            lines.append("")
            for term in listing.tags.values():
                lines.append(f"- [[tags/{term.slug}|#{term.slug}]] ({term.count})")
            lines.append("")

        if listing.categories:
            lines.append("## Categories")
            lines.append("")
            for term in listing.categories.values():
                lines.append(f"- [[categories/{term.slug}|{term.name}]] ({term.count})")
            lines.append("")

        return "\n".join(lines)

    def index_path(self, output_dir: Path) -> Path:
        return output_dir / "index.md"

    def format_term(self, term: TaxonomyTerm, kind: str) -> str:
        """Generate a term note linking every document filed under it."""
        lines: list[str] = [
            "---",
            f"type: {'tag' if kind == 'tags' else 'category'}",
            f"term: {term.slug}",
            f"count: {term.count}",
            "---",
            "",
            f"# {term.name}",
            "",
        ]
        for document in reversed(term.documents):
            note = Path(document.relative_path or document.path.name).with_suffix("").as_posix()
            lines.append(f"- [[{note}|{document.title}]]")
        lines.append("")
        return "\n".join(lines)

    def term_path(self, output_dir: Path, kind: str, term: TaxonomyTerm) -> Path:
        return output_dir / kind / f"{term.slug}.md"
