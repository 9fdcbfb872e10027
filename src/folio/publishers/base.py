"""Base class for listing/index publishers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from folio.models import SiteListing, TaxonomyTerm


class IndexPublisher(ABC):
    """Base class for format-specific index publishing."""

    writes_term_pages: bool = True

    @abstractmethod
    def format_index(self, listing: SiteListing) -> str:
        """Render the index page listing all published documents."""

    @abstractmethod
    def index_path(self, output_dir: Path) -> Path:
        """Compute the output file path for the index."""

    @abstractmethod
    def format_term(self, term: TaxonomyTerm, kind: str) -> str:
        """Render the page for one tag or category."""

    @abstractmethod
    def term_path(self, output_dir: Path, kind: str, term: TaxonomyTerm) -> Path:
        """Compute the output file path for a term page."""

    def write(self, listing: SiteListing, output_dir: Path) -> list[Path]:
        """Write the index and, where supported, every term page.

        Returns:
            Paths written, index first.
        """
        written: list[Path] = []
        index = self.index_path(output_dir)
        index.parent.mkdir(parents=True, exist_ok=True)
        index.write_text(self.format_index(listing), encoding="utf-8")
        written.append(index)

        if self.writes_term_pages:
            for kind in ("tags", "categories"):
                for term in listing.taxonomy(kind).values():
                    path = self.term_path(output_dir, kind, term)
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.write_text(self.format_term(term, kind), encoding="utf-8")
                    written.append(path)
        return written
