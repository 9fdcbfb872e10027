"""Tests for content-integrity validation."""

from pathlib import Path

import pytest

from folio.errors import FrontMatterError
from folio.frontmatter import parse_document
from folio.models import Severity, ValidationOptions
from folio.validation import issues_from_failure, validate_corpus, validate_document

CLEAN = """\
---
title: "X"
date: 2024-06-17
tags: [a, b]
---

Body.
"""


def _doc(text: str, path: Path = Path("content/posts/x.md")):
    return parse_document(text, path)


class TestRequiredFields:
    def test_clean_document(self):
        assert validate_document(_doc(CLEAN)) == []

    def test_missing_title(self):
        issues = validate_document(_doc("---\ndate: 2024-06-17\n---\n"))
        assert [(i.field, i.message, i.severity) for i in issues] == [
            ("title", "title is missing", Severity.ERROR)
        ]

    def test_empty_title(self):
        issues = validate_document(_doc('---\ntitle: "   "\ndate: 2024-06-17\n---\n'))
        assert issues[0].message == "title is empty"

    def test_null_title(self):
        issues = validate_document(_doc("---\ntitle:\ndate: 2024-06-17\n---\n"))
        assert issues[0].message == "title is empty"

    def test_missing_date(self):
        issues = validate_document(_doc("---\ntitle: X\n---\n"))
        assert [(i.field, i.message) for i in issues] == [("date", "date is missing")]


class TestLabels:
    def test_empty_label_is_error(self):
        issues = validate_document(_doc('---\ntitle: X\ndate: 2024-06-17\ntags: ["a", ""]\n---\n'))
        assert len(issues) == 1
        assert issues[0].field == "tags[1]"
        assert issues[0].severity == Severity.ERROR

    def test_duplicate_label_warns(self):
        text = "---\ntitle: X\ndate: 2024-06-17\ncategories: [Essays, essays]\n---\n"
        issues = validate_document(_doc(text))
        assert [(i.field, i.severity) for i in issues] == [("categories", Severity.WARNING)]
        assert "repeats" in issues[0].message

    def test_label_without_slug_characters_warns(self):
        text = '---\ntitle: X\ndate: 2024-06-17\ntags: ["..."]\n---\n'
        issues = validate_document(_doc(text))
        assert [(i.field, i.severity) for i in issues] == [("tags[0]", Severity.WARNING)]

    def test_duplicate_warning_can_be_disabled(self):
        text = "---\ntitle: X\ndate: 2024-06-17\ntags: [a, a]\n---\n"
        options = ValidationOptions(warn_duplicate_labels=False)
        assert validate_document(_doc(text), options) == []


class TestBodyChecks:
    def test_summary_and_description_differ(self):
        text = "---\ntitle: X\ndate: 2024-06-17\nsummary: One\ndescription: Two\n---\n"
        issues = validate_document(_doc(text))
        assert [(i.field, i.severity) for i in issues] == [("summary", Severity.WARNING)]

    def test_shortcode_problem_reports_file_line(self):
        text = "---\ntitle: X\ndate: 2024-06-17\n---\n\n{{< highlight go >}}\n"
        issues = validate_document(_doc(text))
        assert len(issues) == 1
        assert issues[0].line == 6
        assert issues[0].severity == Severity.WARNING

    def test_missing_local_image(self, tmp_path: Path):
        content = tmp_path / "content" / "posts"
        content.mkdir(parents=True)
        static = tmp_path / "static"
        (static / "images").mkdir(parents=True)
        (static / "images" / "u.png").write_bytes(b"png")
        (content / "bundled.png").write_bytes(b"png")

        text = (
            "---\ntitle: X\ndate: 2024-06-17\n---\n"
            '{{< figure src="/images/u.png" title="U" >}}\n'
            "![here](bundled.png)\n"
            "![gone](missing.png)\n"
            "![remote](https://example.com/x.png)\n"
        )
        doc = _doc(text, content / "x.md")
        options = ValidationOptions(check_images=True, static_dir=static)
        issues = validate_document(doc, options)
        assert [i.message for i in issues] == ["image not found: missing.png"]
        assert issues[0].line == 7

    def test_images_not_checked_by_default(self):
        text = "---\ntitle: X\ndate: 2024-06-17\n---\n![gone](missing.png)\n"
        assert validate_document(_doc(text)) == []


class TestParseFailures:
    def test_type_errors_become_field_issues(self, tmp_path: Path):
        path = tmp_path / "draft.md"
        with pytest.raises(FrontMatterError) as excinfo:
            parse_document("---\ntitle: X\ndate: 2024-06-17\ndraft: \"yes\"\n---\n", path)
        issues = issues_from_failure(excinfo.value)
        assert [(i.path, i.field, i.severity) for i in issues] == [
            (path, "draft", Severity.ERROR)
        ]

    def test_syntax_error_is_header_issue(self):
        failure = FrontMatterError(Path("bad.md"), "invalid YAML header: boom", 3)
        issues = issues_from_failure(failure)
        assert issues[0].field == "header"
        assert issues[0].line == 3


class TestValidateCorpus:
    def test_report_counts_and_order(self):
        good = _doc(CLEAN, Path("content/b.md"))
        untitled = _doc("---\ndate: 2024-06-17\n---\n", Path("content/c.md"))
        failure = FrontMatterError(Path("content/a.md"), "no metadata header found", 1)

        report = validate_corpus([good, untitled], [failure])

        assert report.documents_checked == 3
        assert not report.ok
        assert len(report.errors) == 2
        assert [str(i.path) for i in report.issues] == ["content/a.md", "content/c.md"]
        assert set(report.by_path()) == {Path("content/a.md"), Path("content/c.md")}

    def test_clean_corpus_is_ok(self):
        report = validate_corpus([_doc(CLEAN)])
        assert report.ok
        assert report.warnings == []
