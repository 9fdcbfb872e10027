"""Scan document bodies for shortcodes, links and code listings.

Nothing here renders Markdown. Fenced code is located so that its
contents can be skipped; it is never parsed.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from folio.models import CodeBlock, Link, Shortcode

# Shortcodes that wrap inner content and need a matching ``{{< /name >}}``.
PAIRED_SHORTCODES = frozenset({"highlight", "details", "tabs", "tab", "notice"})

_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*([^\s`{]*)")
_OPEN_RE = re.compile(r"\{\{([<%])")
_CLOSE_RE = re.compile(r"([>%])\}\}")
_NAME_RE = re.compile(r"^\s*(/?)\s*([\w./-]+)(.*?)\s*(/?)\s*$", re.DOTALL)
_PARAM_RE = re.compile(
    r"""(?:([\w-]+)=)?(?:"((?:[^"\\]|\\.)*)"|`([^`]*)`|([^\s"`]+))""",
    re.DOTALL,
)
_INLINE_LINK_RE = re.compile(
    r"""(!?)\[((?:[^\[\]]|\[[^\]]*\])*)\]\(\s*"""
    # target: <angle-bracketed>, or bare with balanced parentheses
    r"""(?:<([^>\n]+)>|((?:[^()\s]|\([^()\s]*\))+))(?:\s+(?:"[^"]*"|'[^']*'))?\s*\)"""
)
_REF_DEF_RE = re.compile(r"^ {0,3}\[([^\]^][^\]]*)\]:\s*<?(\S+?)>?(?:\s+.*)?$", re.MULTILINE)
_AUTOLINK_RE = re.compile(r"<((?:https?|mailto):[^>\s]+)>")
_WORD_RE = re.compile(r"[^\W_](?:[\w'’.-]*[^\W_])?")


# ---------------------------------------------------------------------------
# Fenced code
# ---------------------------------------------------------------------------


def _fence_spans(body: str) -> Iterator[tuple[int, int, str, int, bool]]:
    """Yield ``(start_offset, end_offset, language, line, closed)`` per fence."""
    offset = 0
    open_fence: tuple[str, int, str, int] | None = None
    for number, line in enumerate(body.splitlines(keepends=True), start=1):
        stripped = line.rstrip("\r\n")
        match = _FENCE_RE.match(stripped)
        if open_fence is None:
            if match:
                open_fence = (match.group(1), offset, match.group(2), number)
        elif _closes_fence(open_fence[0], stripped):
            yield open_fence[1], offset + len(line), open_fence[2], open_fence[3], True
            open_fence = None
        offset += len(line)
    if open_fence is not None:
        yield open_fence[1], len(body), open_fence[2], open_fence[3], False


def _closes_fence(fence: str, line: str) -> bool:
    """A closing fence uses the same character, is at least as long, and has no info string."""
    text = line.strip()
    run = len(text) - len(text.lstrip(fence[0]))
    return run >= len(fence) and not text[run:] and len(line) - len(line.lstrip(" ")) <= 3


def _mask_code(body: str) -> str:
    """Blank out fenced code, keeping offsets and line breaks intact."""
    chars = list(body)
    for start, end, _, _, _ in _fence_spans(body):
        for index in range(start, end):
            if chars[index] not in "\r\n":
                chars[index] = " "
    return "".join(chars)


def extract_code_blocks(body: str) -> list[CodeBlock]:
    """Return fenced code listings with their info-string language."""
    blocks: list[CodeBlock] = []
    for start, end, language, line, closed in _fence_spans(body):
        inner = body[start:end].splitlines(keepends=True)[1:]
        if closed:
            inner = inner[:-1]
        blocks.append(CodeBlock(language=language, content="".join(inner), line=line))
    return blocks


def _line_at(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


# ---------------------------------------------------------------------------
# Shortcodes
# ---------------------------------------------------------------------------


def _parse_params(text: str) -> tuple[dict[str, str], list[str]]:
    params: dict[str, str] = {}
    positional: list[str] = []
    for match in _PARAM_RE.finditer(text):
        key, quoted, raw, bare = match.groups()
        if quoted is not None:
            value = quoted.replace('\\"', '"')
        elif raw is not None:
            value = raw
        else:
            value = bare or ""
        if key:
            params[key] = value
        else:
            positional.append(value)
    return params, positional


def _scan_shortcodes(body: str) -> Iterator[Shortcode | tuple[int, str]]:
    """Yield shortcodes, or ``(line, problem)`` for malformed markers."""
    masked = _mask_code(body)
    position = 0
    while True:
        opener = _OPEN_RE.search(masked, position)
        if opener is None:
            return
        line = _line_at(masked, opener.start())
        closer = _CLOSE_RE.search(masked, opener.end())
        next_open = _OPEN_RE.search(masked, opener.end())
        if closer is None or (next_open is not None and next_open.start() < closer.start()):
            yield line, f"unterminated shortcode starting with '{{{{{opener.group(1)}'"
            position = opener.end()
            continue

        inner = masked[opener.end() : closer.start()]
        position = closer.end()
        if inner.strip().startswith("/*"):
            # Escaped shortcode shown literally: {{</* name */>}}
            continue
        expected = ">" if opener.group(1) == "<" else "%"
        if closer.group(1) != expected:
            yield line, (
                f"mismatched shortcode delimiters '{{{{{opener.group(1)}' "
                f"and '{closer.group(1)}}}}}'"
            )
            continue

        parts = _NAME_RE.match(inner)
        if parts is None:
            yield line, "shortcode has no name"
            continue
        params, positional = _parse_params(parts.group(3))
        yield Shortcode(
            name=parts.group(2),
            params=params,
            positional=positional,
            line=line,
            raw=body[opener.start() : closer.end()],
            closing=bool(parts.group(1)),
            self_closing=bool(parts.group(4)),
        )


def extract_shortcodes(body: str) -> list[Shortcode]:
    """Return every well-formed shortcode in the body, in order."""
    return [item for item in _scan_shortcodes(body) if isinstance(item, Shortcode)]


def find_unbalanced_shortcodes(body: str) -> list[tuple[int, str]]:
    """Return ``(line, message)`` for each malformed or unbalanced shortcode."""
    problems: list[tuple[int, str]] = []
    stack: list[Shortcode] = []
    for item in _scan_shortcodes(body):
        if not isinstance(item, Shortcode):
            problems.append(item)
            continue
        if item.closing:
            for index in range(len(stack) - 1, -1, -1):
                if stack[index].name == item.name:
                    del stack[index:]
                    break
            else:
                problems.append((item.line, f"closing shortcode '/{item.name}' has no opener"))
        elif not item.self_closing:
            stack.append(item)

    for opened in stack:
        if opened.name in PAIRED_SHORTCODES:
            problems.append((opened.line, f"shortcode '{opened.name}' is never closed"))
    return sorted(problems)


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


def extract_links(body: str) -> list[Link]:
    """Return inline links, images, reference definitions and autolinks.

    ``figure`` shortcode sources are reported as images too. Targets are
    not checked.
    """
    masked = _mask_code(body)
    found: list[tuple[int, Link]] = []

    for match in _INLINE_LINK_RE.finditer(masked):
        found.append(
            (
                match.start(),
                Link(
                    text=match.group(2),
                    target=match.group(3) or match.group(4),
                    is_image=bool(match.group(1)),
                    line=_line_at(masked, match.start()),
                ),
            )
        )
    for match in _REF_DEF_RE.finditer(masked):
        found.append(
            (
                match.start(),
                Link(text=match.group(1), target=match.group(2), line=_line_at(masked, match.start())),
            )
        )
    for match in _AUTOLINK_RE.finditer(masked):
        found.append(
            (
                match.start(),
                Link(text=match.group(1), target=match.group(1), line=_line_at(masked, match.start())),
            )
        )
    for shortcode in extract_shortcodes(body):
        if shortcode.name == "figure" and shortcode.params.get("src"):
            caption = shortcode.params.get("title") or shortcode.params.get("caption", "")
            offset = masked.find(shortcode.raw)
            found.append(
                (
                    offset,
                    Link(
                        text=caption,
                        target=shortcode.params["src"],
                        is_image=True,
                        line=shortcode.line,
                    ),
                )
            )

    return [link for _, link in sorted(found, key=lambda item: item[0])]


# ---------------------------------------------------------------------------
# Words
# ---------------------------------------------------------------------------


def word_count(body: str) -> int:
    """Count prose words, ignoring fenced code and shortcode markers."""
    text = _mask_code(body)
    text = re.sub(r"\{\{[<%].*?[>%]\}\}", " ", text, flags=re.DOTALL)
    text = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", text)
    return len(_WORD_RE.findall(text))
