"""Content-integrity checks for parsed documents.

Errors are defects the site generator would reject or mis-file;
warnings are tidiness problems it would tolerate.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import unquote, urlsplit

from folio.body import extract_links, find_unbalanced_shortcodes
from folio.errors import FrontMatterError
from folio.models import (
    ContentDocument,
    Severity,
    ValidationIssue,
    ValidationOptions,
    ValidationReport,
)
from folio.services import taxonomy_slug

logger = logging.getLogger(__name__)


def _check_required(document: ContentDocument) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    fm = document.front_matter
    raw_keys = {str(k).lower() for k in document.raw_header}

    if not fm.title.strip():
        message = "title is empty" if "title" in raw_keys else "title is missing"
        issues.append(ValidationIssue(path=document.path, field="title", message=message))

    if fm.date is None:
        message = "date is empty" if "date" in raw_keys else "date is missing"
        issues.append(ValidationIssue(path=document.path, field="date", message=message))
    return issues


def _check_labels(document: ContentDocument, warn_duplicates: bool) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    fm = document.front_matter
    for field, labels in (("tags", fm.tags), ("categories", fm.categories)):
        seen: dict[str, str] = {}
        for index, label in enumerate(labels):
            if not label.strip():
                issues.append(
                    ValidationIssue(
                        path=document.path,
                        field=f"{field}[{index}]",
                        message=f"{field} entry {index} is an empty label",
                    )
                )
                continue
            key = taxonomy_slug(label)
            if not key:
                issues.append(
                    ValidationIssue(
                        path=document.path,
                        field=f"{field}[{index}]",
                        message=f"{label!r} has no characters usable in a term URL",
                        severity=Severity.WARNING,
                    )
                )
                continue
            if key in seen and warn_duplicates:
                issues.append(
                    ValidationIssue(
                        path=document.path,
                        field=field,
                        message=f"{label!r} repeats {seen[key]!r}",
                        severity=Severity.WARNING,
                    )
                )
            seen.setdefault(key, label)
    return issues


def _check_teaser(document: ContentDocument) -> list[ValidationIssue]:
    fm = document.front_matter
    if fm.summary and fm.description and fm.summary.strip() != fm.description.strip():
        return [
            ValidationIssue(
                path=document.path,
                field="summary",
                message="summary and description are both set and differ",
                severity=Severity.WARNING,
            )
        ]
    return []


def _check_shortcodes(document: ContentDocument, body_offset: int) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            path=document.path,
            field="body",
            message=message,
            severity=Severity.WARNING,
            line=line + body_offset,
        )
        for line, message in find_unbalanced_shortcodes(document.body)
    ]


def _resolve_local(target: str, document: ContentDocument, static_dir: Path | None) -> bool:
    path_part = unquote(urlsplit(target).path)
    if not path_part:
        return True
    candidates: list[Path] = []
    if path_part.startswith("/"):
        if static_dir is not None:
            candidates.append(static_dir / path_part.lstrip("/"))
    else:
        candidates.append(document.path.parent / path_part)
        if static_dir is not None:
            candidates.append(static_dir / path_part)
    return any(candidate.exists() for candidate in candidates)


def _check_images(
    document: ContentDocument, static_dir: Path | None, body_offset: int
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for link in extract_links(document.body):
        if not link.is_image or link.is_external or link.target.startswith("data:"):
            continue
        if not _resolve_local(link.target, document, static_dir):
            issues.append(
                ValidationIssue(
                    path=document.path,
                    field="body",
                    message=f"image not found: {link.target}",
                    severity=Severity.WARNING,
                    line=link.line + body_offset,
                )
            )
    return issues


def validate_document(
    document: ContentDocument,
    options: ValidationOptions | None = None,
) -> list[ValidationIssue]:
    """Check one parsed document.

    Args:
        document: The parsed document.
        options: Optional checks to enable.

    Returns:
        The issues found; empty when the document is clean.
    """
    options = options or ValidationOptions()
    offset = document.body_offset

    issues = _check_required(document)
    issues.extend(_check_labels(document, options.warn_duplicate_labels))
    issues.extend(_check_teaser(document))
    issues.extend(_check_shortcodes(document, offset))
    if options.check_images:
        issues.extend(_check_images(document, options.static_dir, offset))
    return issues


def issues_from_failure(failure: FrontMatterError) -> list[ValidationIssue]:
    """Turn a header parse failure into validation errors."""
    path = failure.path or Path("<string>")
    if failure.errors:
        return [
            ValidationIssue(path=path, field=field, message=message)
            for field, message in failure.errors
        ]
    return [ValidationIssue(path=path, field="header", message=failure.reason, line=failure.line)]


def _sort_key(issue: ValidationIssue) -> tuple[str, int, str, str]:
    return (str(issue.path), issue.line or 0, issue.field, issue.message)


def validate_corpus(
    documents: Iterable[ContentDocument],
    failures: Iterable[FrontMatterError] = (),
    options: ValidationOptions | None = None,
) -> ValidationReport:
    """Validate every document and fold in header parse failures.

    Issues are sorted by path, line and field so reports are stable.
    """
    issues: list[ValidationIssue] = []
    checked = 0
    for document in documents:
        checked += 1
        issues.extend(validate_document(document, options))
    for failure in failures:
        checked += 1
        issues.extend(issues_from_failure(failure))

    report = ValidationReport(documents_checked=checked, issues=sorted(issues, key=_sort_key))
    logger.debug(
        "Validated %d documents: %d errors, %d warnings",
        checked,
        len(report.errors),
        len(report.warnings),
    )
    return report
