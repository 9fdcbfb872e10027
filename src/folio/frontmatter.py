"""Metadata header codec: split, parse, coerce and serialize.

A content file starts with one of three header forms::

    ---            +++            {
    title: X       title = "X"      "title": "X"
    ---            +++            }

YAML headers are read and written with PyYAML, TOML headers are read
with ``tomllib`` and written by a small emitter below, JSON headers go
through ``json``.
"""

from __future__ import annotations

import json
import logging
import math
import re
import tomllib
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from folio.errors import FrontMatterError
from folio.models import ContentDocument, FrontMatter, HeaderFormat

logger = logging.getLogger(__name__)

FENCES: dict[HeaderFormat, str] = {
    HeaderFormat.YAML: "---",
    HeaderFormat.TOML: "+++",
}

KNOWN_KEYS = ("title", "date", "draft", "description", "summary", "tags", "categories")
LABEL_KEYS = ("tags", "categories")

_BARE_TOML_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


def split_document(text: str) -> tuple[HeaderFormat | None, str, str]:
    """Split raw file text into ``(format, header_text, body)``.

    The body is returned untouched, starting right after the closing
    fence's line break. Text without a recognised header yields
    ``(None, "", text)``.

    Raises:
        FrontMatterError: If a header is opened but never closed.
    """
    text = text.removeprefix("\ufeff")
    if not text:
        return None, "", text

    stripped = text.lstrip(" \t")
    if stripped.startswith("{") and not stripped.startswith("{{"):
        return _split_json(text)

    first_line, _, _ = text.partition("\n")
    opener = first_line.rstrip("\r").strip()
    for fmt, fence in FENCES.items():
        if opener == fence:
            return _split_fenced(text, fmt, fence)

    return None, "", text


def _split_fenced(text: str, fmt: HeaderFormat, fence: str) -> tuple[HeaderFormat, str, str]:
    lines = text.splitlines(keepends=True)
    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n").strip() == fence:
            header = "".join(lines[1:index])
            body = "".join(lines[index + 1 :])
            return fmt, header, body
    raise FrontMatterError(None, f"unterminated {fmt.value} header (missing closing {fence!r})", 1)


def _split_json(text: str) -> tuple[HeaderFormat, str, str]:
    start = len(text) - len(text.lstrip(" \t"))
    try:
        _, end = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError as exc:
        raise FrontMatterError(None, f"invalid JSON header: {exc.msg}", exc.lineno) from exc
    body = text[end:]
    # Drop the rest of the closing brace's line.
    if "\n" in body:
        head, _, rest = body.partition("\n")
        if not head.strip():
            body = rest
    elif not body.strip():
        body = ""
    return HeaderFormat.JSON, text[start:end], body


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_header(fmt: HeaderFormat, header_text: str) -> dict[str, Any]:
    """Parse header markup into a plain mapping.

    Raises:
        FrontMatterError: On malformed markup or a non-mapping root.
    """
    try:
        if fmt == HeaderFormat.YAML:
            data = yaml.safe_load(header_text) if header_text.strip() else {}
        elif fmt == HeaderFormat.TOML:
            data = tomllib.loads(header_text)
        else:
            data = json.loads(header_text)
    except yaml.YAMLError as exc:
        line = None
        mark = getattr(exc, "problem_mark", None)
        if mark is not None:
            line = mark.line + 2  # header starts on the line after the fence
        raise FrontMatterError(None, f"invalid YAML header: {exc}", line) from exc
    except tomllib.TOMLDecodeError as exc:
        raise FrontMatterError(None, f"invalid TOML header: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise FrontMatterError(None, f"invalid JSON header: {exc.msg}", exc.lineno) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontMatterError(
            None, f"{fmt.value} header must be a mapping, got {type(data).__name__}"
        )
    return data


def _parse_date_string(value: str) -> date | datetime | str:
    """Parse an ISO-8601 date or datetime string, leaving other text as is."""
    candidate = value.strip()
    if len(candidate) == 10:
        try:
            return date.fromisoformat(candidate)
        except ValueError:
            return value
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return value


def coerce_front_matter(mapping: dict[str, Any], path: Path | None = None) -> FrontMatter:
    """Build a FrontMatter from a parsed header mapping.

    Known keys are matched case-insensitively; everything else lands in
    ``extra`` under its original spelling and order. A single string
    for ``tags``/``categories`` is taken as a one-label list.

    Raises:
        FrontMatterError: If a known key has the wrong type or appears
            twice under different letter case. The error's
            ``errors`` attribute lists ``(field, message)`` pairs.
    """
    known: dict[str, Any] = {}
    spelled: dict[str, str] = {}
    extra: dict[str, Any] = {}
    duplicates: list[tuple[str, str]] = []
    for key, value in mapping.items():
        lowered = str(key).lower()
        if lowered not in KNOWN_KEYS:
            extra[str(key)] = value
        elif lowered in known:
            duplicates.append((lowered, f"key {str(key)!r} repeats {spelled[lowered]!r}"))
        else:
            known[lowered] = value
            spelled[lowered] = str(key)

    if duplicates:
        reason = "; ".join(f"{field}: {msg}" for field, msg in duplicates)
        raise FrontMatterError(path, reason, errors=duplicates)

    for key in LABEL_KEYS:
        if key in known:
            if known[key] is None:
                known[key] = []
            elif isinstance(known[key], str):
                known[key] = [known[key]]

    if isinstance(known.get("date"), str):
        known["date"] = _parse_date_string(known["date"])
    if known.get("date") is None:
        known.pop("date", None)
    if known.get("title") is None:
        known.pop("title", None)

    try:
        return FrontMatter(**known, extra=extra)
    except ValidationError as exc:
        errors: list[tuple[str, str]] = []
        for err in exc.errors():
            entry = (_error_field(err["loc"]), err["msg"])
            if entry not in errors:
                errors.append(entry)
        reason = "; ".join(f"{field}: {msg}" for field, msg in errors)
        raise FrontMatterError(path, reason, errors=errors) from exc


def _error_field(loc: tuple[Any, ...]) -> str:
    if not loc:
        return "header"
    field = str(loc[0])
    if field in LABEL_KEYS and len(loc) > 1 and isinstance(loc[1], int):
        return f"{field}[{loc[1]}]"
    return field


def parse_document(text: str, path: Path | None = None, relative_path: str = "") -> ContentDocument:
    """Parse a full content file into a ContentDocument.

    Raises:
        FrontMatterError: If the file has no header or it is malformed.
    """
    try:
        fmt, header_text, body = split_document(text)
        if fmt is None:
            raise FrontMatterError(path, "no metadata header found", 1)
        raw = parse_header(fmt, header_text)
    except FrontMatterError as exc:
        if exc.path is None and path is not None:
            raise FrontMatterError(path, exc.reason, exc.line, errors=exc.errors) from exc
        raise

    front_matter = coerce_front_matter(raw, path)
    text = text.removeprefix("\ufeff")
    body_offset = text[: len(text) - len(body)].count("\n")
    return ContentDocument(
        path=path or Path("<string>"),
        relative_path=relative_path,
        header_format=fmt,
        front_matter=front_matter,
        raw_header=raw,
        body=body,
        body_offset=body_offset,
    )


# ---------------------------------------------------------------------------
# Serializing
# ---------------------------------------------------------------------------


def header_mapping(front_matter: FrontMatter) -> dict[str, Any]:
    """Return the header as an ordered mapping in canonical key order."""
    data: dict[str, Any] = {"title": front_matter.title}
    if front_matter.date is not None:
        data["date"] = front_matter.date
    if front_matter.draft:
        data["draft"] = True
    if front_matter.description is not None:
        data["description"] = front_matter.description
    if front_matter.summary is not None:
        data["summary"] = front_matter.summary
    if front_matter.tags:
        data["tags"] = list(front_matter.tags)
    if front_matter.categories:
        data["categories"] = list(front_matter.categories)
    for key, value in front_matter.extra.items():
        if key.lower() in KNOWN_KEYS:
            logger.warning("Dropping extra key %r: it collides with %r", key, key.lower())
            continue
        data[key] = value
    return data


def serialize_header(front_matter: FrontMatter, fmt: HeaderFormat = HeaderFormat.YAML) -> str:
    """Serialize front matter to a fenced header, ending with a newline.

    YAML and JSON have no local time-of-day type; such values are
    written as ISO strings there.

    Raises:
        FrontMatterError: If a value cannot be written in ``fmt``.
    """
    data = header_mapping(front_matter)
    try:
        return _dump_header(data, fmt)
    except (TypeError, ValueError, yaml.YAMLError) as exc:
        raise FrontMatterError(None, f"cannot write {fmt.value} header: {exc}") from exc


def _dump_header(data: dict[str, Any], fmt: HeaderFormat) -> str:
    if fmt == HeaderFormat.YAML:
        dumped = yaml.safe_dump(
            _times_as_text(data),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=1000,
        )
        return f"---\n{dumped}---\n"
    if fmt == HeaderFormat.TOML:
        lines = [
            f"{_toml_key(key)} = {_toml_value(value)}"
            for key, value in data.items()
            if value is not None
        ]
        skipped = [key for key, value in data.items() if value is None]
        if skipped:
            logger.warning("TOML has no null; dropped keys: %s", ", ".join(skipped))
        return "+++\n" + "\n".join(lines) + "\n+++\n"
    return json.dumps(data, indent=2, ensure_ascii=False, default=_json_default) + "\n"


def render_document(document: ContentDocument, fmt: HeaderFormat | None = None) -> str:
    """Render a document back to file text: header followed by the body."""
    target = fmt or document.header_format or HeaderFormat.YAML
    return serialize_header(document.front_matter, target) + document.body


def _times_as_text(value: Any) -> Any:
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _times_as_text(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_times_as_text(item) for item in value]
    return value


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, time)):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__} to JSON")


def _toml_string(text: str) -> str:
    # JSON escapes C0 controls the same way TOML does; DEL is the one
    # TOML forbids raw that JSON leaves alone.
    return json.dumps(text, ensure_ascii=False).replace("\x7f", "\\u007f")


def _toml_key(key: str) -> str:
    if _BARE_TOML_KEY.match(key):
        return key
    return _toml_string(key)


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "nan"
        if math.isinf(value):
            return "inf" if value > 0 else "-inf"
        return repr(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, str):
        return _toml_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value if v is not None) + "]"
    if isinstance(value, dict):
        items = ", ".join(
            f"{_toml_key(str(k))} = {_toml_value(v)}" for k, v in value.items() if v is not None
        )
        return "{ " + items + " }" if items else "{}"
    raise TypeError(f"Cannot serialize {type(value).__name__} to TOML")
