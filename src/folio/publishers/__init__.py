"""Index publisher factory and registry."""

from __future__ import annotations

from enum import StrEnum

from folio.publishers.base import IndexPublisher


class IndexFormat(StrEnum):
    """Available index output formats."""

    MARKDOWN = "markdown"
    OBSIDIAN = "obsidian"
    JSON = "json"


def create_publisher(index_format: IndexFormat | str, *, link_prefix: str = "") -> IndexPublisher:
    """Create a publisher for the given output format.

    Args:
        index_format: The target format.
        link_prefix: Path from the output directory to the content root,
            used by formats that emit relative links.

    Raises:
        ValueError: If the format is unknown.
    """
    if isinstance(index_format, str):
        index_format = IndexFormat(index_format)

    from folio.publishers.json_index import JsonIndexPublisher
    from folio.publishers.markdown import MarkdownIndexPublisher
    from folio.publishers.obsidian import ObsidianIndexPublisher

    publishers: dict[IndexFormat, IndexPublisher] = {
        IndexFormat.MARKDOWN: MarkdownIndexPublisher(link_prefix=link_prefix),
        IndexFormat.OBSIDIAN: ObsidianIndexPublisher(),
        IndexFormat.JSON: JsonIndexPublisher(),
    }

    if index_format in publishers:
        return publishers[index_format]

    raise ValueError(f"Unknown index format: {index_format!r}")


__all__ = ["IndexFormat", "IndexPublisher", "create_publisher"]
