"""Tests for the metadata header codec (split, parse, coerce, serialize)."""

import re
from datetime import UTC, date, datetime, time, timedelta, timezone

import pytest
import yaml

from folio.errors import FrontMatterError
from folio.frontmatter import (
    coerce_front_matter,
    header_mapping,
    parse_document,
    parse_header,
    render_document,
    serialize_header,
    split_document,
)
from folio.models import FrontMatter, HeaderFormat

SAMPLE_POST = """\
---
title: "Unordered collections at the type level"
date: 2024-06-17
tags: [haskell, type-level]
categories:
  - programming
description: "A U type whose element order does not matter"
---

Type families let us write a collection where order is irrelevant.

```haskell
data U (xs :: [Type]) where
  UNil :: U '[]
```

{{< figure src="/images/u-type.png" title="The U type" >}}
"""

TOML_POST = """\
+++
title = "Newcomb's paradox"
date = 2023-11-02T08:30:00Z
draft = true
tags = ["philosophy"]
+++
One box or two?
"""

JSON_POST = """\
{
  "title": "JSON header",
  "date": "2024-01-05",
  "categories": ["notes"]
}
Body after the brace.
"""


class TestSplitDocument:
    def test_yaml_header(self):
        fmt, header, body = split_document(SAMPLE_POST)
        assert fmt == HeaderFormat.YAML
        assert header.startswith("title:")
        assert body.startswith("\nType families")

    def test_toml_header(self):
        fmt, header, body = split_document(TOML_POST)
        assert fmt == HeaderFormat.TOML
        assert 'title = "Newcomb' in header
        assert body == "One box or two?\n"

    def test_json_header(self):
        fmt, header, body = split_document(JSON_POST)
        assert fmt == HeaderFormat.JSON
        assert header.startswith("{") and header.endswith("}")
        assert body == "Body after the brace.\n"

    def test_no_header(self):
        text = "Just prose, no header.\n"
        assert split_document(text) == (None, "", text)

    def test_leading_shortcode_is_not_json(self):
        text = '{{< figure src="a.png" >}}\n'
        fmt, _, body = split_document(text)
        assert fmt is None
        assert body == text

    def test_unterminated_header(self):
        with pytest.raises(FrontMatterError, match="unterminated yaml header"):
            split_document("---\ntitle: X\n\nNo closing fence\n")

    def test_byte_order_mark_and_crlf(self):
        text = "\ufeff---\r\ntitle: X\r\n---\r\nBody\r\n"
        fmt, header, body = split_document(text)
        assert fmt == HeaderFormat.YAML
        assert header == "title: X\r\n"
        assert body == "Body\r\n"

    def test_empty_text(self):
        assert split_document("") == (None, "", "")


class TestParseHeader:
    def test_yaml_mapping(self):
        data = parse_header(HeaderFormat.YAML, "title: X\ndate: 2024-06-17\n")
        assert data == {"title": "X", "date": date(2024, 6, 17)}

    def test_toml_native_datetime(self):
        _, header, _ = split_document(TOML_POST)
        data = parse_header(HeaderFormat.TOML, header)
        assert data["date"] == datetime(2023, 11, 2, 8, 30, tzinfo=UTC)
        assert data["draft"] is True

    def test_empty_yaml_header(self):
        assert parse_header(HeaderFormat.YAML, "") == {}

    def test_invalid_yaml(self):
        with pytest.raises(FrontMatterError, match="invalid YAML header"):
            parse_header(HeaderFormat.YAML, "title: [unclosed\n")

    def test_invalid_toml(self):
        with pytest.raises(FrontMatterError, match="invalid TOML header"):
            parse_header(HeaderFormat.TOML, "title = \n")

    def test_non_mapping_root(self):
        with pytest.raises(FrontMatterError, match="must be a mapping"):
            parse_header(HeaderFormat.YAML, "- a\n- b\n")


class TestCoerceFrontMatter:
    def test_known_keys(self):
        fm = coerce_front_matter(
            {"title": "X", "date": date(2024, 6, 17), "tags": ["a", "b"], "summary": "S"}
        )
        assert fm.title == "X"
        assert fm.date == date(2024, 6, 17)
        assert fm.tags == ["a", "b"]
        assert fm.teaser == "S"
        assert fm.is_draft is False

    def test_draft_absent_means_publishable(self):
        fm = coerce_front_matter({"title": "X", "date": date(2024, 6, 17)})
        assert fm.draft is False

    def test_scalar_label_becomes_list(self):
        fm = coerce_front_matter({"title": "X", "tags": "haskell", "categories": None})
        assert fm.tags == ["haskell"]
        assert fm.categories == []

    def test_keys_are_case_insensitive(self):
        fm = coerce_front_matter({"Title": "X", "Date": "2024-06-17", "Draft": True})
        assert fm.title == "X"
        assert fm.date == date(2024, 6, 17)
        assert fm.draft is True

    def test_iso_datetime_string(self):
        fm = coerce_front_matter({"title": "X", "date": "2024-06-17T09:30:00+02:00"})
        assert fm.date == datetime(2024, 6, 17, 9, 30, tzinfo=timezone(timedelta(hours=2)))
        assert fm.publish_date == datetime(2024, 6, 17, 7, 30, tzinfo=UTC)

    def test_extra_keys_keep_order(self):
        fm = coerce_front_matter({"title": "X", "slug": "x", "weight": 2, "aliases": ["/old"]})
        assert list(fm.extra) == ["slug", "weight", "aliases"]

    def test_draft_must_be_boolean(self):
        with pytest.raises(FrontMatterError) as excinfo:
            coerce_front_matter({"title": "X", "date": "2024-06-17", "draft": "true"})
        assert [field for field, _ in excinfo.value.errors] == ["draft"]

    def test_label_must_be_text(self):
        with pytest.raises(FrontMatterError) as excinfo:
            coerce_front_matter({"title": "X", "tags": ["a", 3]})
        assert excinfo.value.errors[0][0] == "tags[1]"

    def test_unparsable_date(self):
        with pytest.raises(FrontMatterError) as excinfo:
            coerce_front_matter({"title": "X", "date": "next tuesday"})
        assert all(field == "date" for field, _ in excinfo.value.errors)

    def test_integer_date_is_rejected(self):
        with pytest.raises(FrontMatterError):
            coerce_front_matter({"title": "X", "date": 1718582400})

    def test_keys_differing_only_in_case_are_rejected(self):
        with pytest.raises(FrontMatterError) as excinfo:
            coerce_front_matter({"Title": "A", "title": "B", "date": "2024-06-17"})
        assert excinfo.value.errors == [("title", "key 'title' repeats 'Title'")]


class TestParseDocument:
    def test_full_document(self):
        doc = parse_document(SAMPLE_POST, relative_path="posts/u-type.md")
        assert doc.header_format == HeaderFormat.YAML
        assert doc.front_matter.title == "Unordered collections at the type level"
        assert doc.front_matter.categories == ["programming"]
        assert doc.relative_path == "posts/u-type.md"
        assert doc.body_offset == 8

    def test_missing_header(self, tmp_path):
        path = tmp_path / "plain.md"
        with pytest.raises(FrontMatterError, match="no metadata header") as excinfo:
            parse_document("Hello\n", path)
        assert excinfo.value.path == path

    def test_error_carries_path(self, tmp_path):
        path = tmp_path / "broken.md"
        with pytest.raises(FrontMatterError) as excinfo:
            parse_document("---\ntitle: [x\n---\n", path)
        assert excinfo.value.path == path

    def test_case_colliding_title_is_a_header_error(self, tmp_path):
        path = tmp_path / "twice.md"
        with pytest.raises(FrontMatterError, match="repeats") as excinfo:
            parse_document("---\nTitle: A\ntitle: B\ndate: 2024-06-17\n---\n", path)
        assert excinfo.value.path == path
        assert [field for field, _ in excinfo.value.errors] == ["title"]


class TestSerializeHeader:
    def test_yaml_is_valid_and_ordered(self):
        fm = FrontMatter(
            title="Newcomb: one box or two?",
            date=date(2023, 11, 2),
            tags=["philosophy", "decision-theory"],
            extra={"slug": "newcomb"},
        )
        output = serialize_header(fm, HeaderFormat.YAML)
        assert output.startswith("---\n") and output.endswith("---\n")
        match = re.match(r"^---\n(.*?)\n---", output, re.DOTALL)
        assert match is not None
        parsed = yaml.safe_load(match.group(1))
        assert list(parsed) == ["title", "date", "tags", "slug"]
        assert parsed["title"] == "Newcomb: one box or two?"

    def test_draft_written_only_when_true(self):
        assert "draft" not in header_mapping(FrontMatter(title="X"))
        assert header_mapping(FrontMatter(title="X", draft=True))["draft"] is True

    def test_toml_output(self):
        fm = FrontMatter(title='Say "hi"', date=date(2024, 6, 17), tags=["a"])
        output = serialize_header(fm, HeaderFormat.TOML)
        assert output.startswith("+++\n")
        assert 'title = "Say \\"hi\\""' in output
        assert "date = 2024-06-17" in output
        assert 'tags = ["a"]' in output

    def test_render_keeps_body(self):
        doc = parse_document(SAMPLE_POST)
        rendered = render_document(doc)
        assert rendered.endswith(doc.body)

    def test_render_converts_format(self):
        doc = parse_document(SAMPLE_POST)
        rendered = render_document(doc, HeaderFormat.TOML)
        assert rendered.startswith("+++\n")
        assert parse_document(rendered).front_matter == doc.front_matter

    def test_extra_never_replaces_canonical_key(self):
        fm = FrontMatter(title="A", date=date(2024, 6, 17), extra={"Title": "B", "slug": "a"})
        mapping = header_mapping(fm)
        assert mapping["title"] == "A"
        assert list(mapping) == ["title", "date", "slug"]

    def test_local_time_extra_converts(self):
        doc = parse_document('+++\ntitle = "X"\ndate = 2024-06-17\nat = 07:30:00\n+++\nBody\n')
        assert doc.front_matter.extra["at"] == time(7, 30)

        for fmt in (HeaderFormat.YAML, HeaderFormat.JSON):
            converted = parse_document(render_document(doc, fmt))
            assert converted.front_matter.extra["at"] == "07:30:00"
            assert converted.body == "Body\n"

        back = parse_document(render_document(doc, HeaderFormat.TOML))
        assert back.front_matter.extra["at"] == time(7, 30)

    @pytest.mark.parametrize("fmt", list(HeaderFormat))
    def test_unwritable_value_is_a_header_error(self, fmt):
        fm = FrontMatter(title="X", extra={"blob": object()})
        with pytest.raises(FrontMatterError, match=f"cannot write {fmt.value} header"):
            serialize_header(fm, fmt)

    def test_toml_escapes_delete_character(self):
        output = serialize_header(FrontMatter(title="rub\x7fout"), HeaderFormat.TOML)
        assert "\x7f" not in output
        assert parse_document(output).front_matter.title == "rub\x7fout"


@pytest.mark.parametrize("fmt", list(HeaderFormat))
class TestRoundTrip:
    """Serializing parsed metadata and re-parsing it yields the same record."""

    def test_date_only(self, fmt):
        fm = FrontMatter(
            title="X",
            date=date(2024, 6, 17),
            tags=["a", "b"],
            categories=["essays"],
            description="Short description",
            extra={"slug": "x", "weight": 3, "aliases": ["/old-x"]},
        )
        text = serialize_header(fm, fmt)
        assert parse_document(text).front_matter == fm

    def test_aware_datetime_and_draft(self, fmt):
        fm = FrontMatter(
            title="Draft with time",
            date=datetime(2024, 6, 17, 9, 30, tzinfo=UTC),
            draft=True,
            summary="Not yet",
        )
        text = serialize_header(fm, fmt)
        parsed = parse_document(text).front_matter
        assert parsed == fm
        assert parsed.publish_date == fm.publish_date

    def test_nested_extras_and_control_characters(self, fmt):
        fm = FrontMatter(
            title='Bell\x07, tab\t, delete\x7f, quote" and backslash\\',
            date=datetime(2024, 6, 17, 9, 30, 15, tzinfo=UTC),
            tags=["naïve", "type-level"],
            extra={
                "params": {"math": True, "weights": [1, 2.5], "series": {"name": "U", "part": 2}},
                "aliases": ["/a", "/b"],
            },
        )
        assert parse_document(serialize_header(fm, fmt)).front_matter == fm

    def test_existing_document(self, fmt):
        original = parse_document(SAMPLE_POST).front_matter
        rendered = serialize_header(original, fmt) + "\nbody\n"
        assert parse_document(rendered).front_matter == original
