"""Exceptions raised by folio.

Library code raises these; the CLI turns them into a message and a
non-zero exit status.
"""

from __future__ import annotations

from pathlib import Path


class FolioError(Exception):
    """Base class for folio errors."""


class FrontMatterError(FolioError):
    """A content document's header is missing or cannot be parsed.

    ``errors`` holds ``(field, message)`` pairs when the header parsed
    but one or more known keys had the wrong type.
    """

    def __init__(
        self,
        path: Path | str | None,
        reason: str,
        line: int | None = None,
        errors: list[tuple[str, str]] | None = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.reason = reason
        self.line = line
        self.errors = list(errors or [])
        location = str(self.path) if self.path is not None else "<string>"
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {reason}")


class ContentNotFoundError(FolioError):
    """The configured content directory does not exist."""

    def __init__(self, content_dir: Path) -> None:
        self.content_dir = content_dir
        super().__init__(f"Content directory not found: {content_dir}")
