"""CLI interface for folio."""

import json
import logging
import os
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from folio.body import extract_code_blocks, extract_links, extract_shortcodes
from folio.config import FolioConfig, load_config, merge_cli_overrides
from folio.errors import FolioError, FrontMatterError
from folio.frontmatter import parse_document
from folio.models import ContentDocument, HeaderFormat, Severity
from folio.publishers import IndexFormat, create_publisher
from folio.publishers.json_index import document_record
from folio.services import (
    ContentReader,
    build_listing,
    new_document,
    normalize_document,
    taxonomy_slug,
)
from folio.validation import validate_corpus

app = typer.Typer(
    name="folio",
    help="Validate and list the Markdown content documents of a static site.",
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from folio import __version__

        console.print(f"folio {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Enable debug logging."),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .folio.toml file."),
    ] = None,
) -> None:
    """Folio - check and list static-site content documents."""
    _configure_logging(verbose)
    ctx.obj = load_config(config_path)


def _config(ctx: typer.Context, **overrides: object) -> FolioConfig:
    base = ctx.obj if isinstance(ctx.obj, FolioConfig) else load_config()
    return merge_cli_overrides(base, **overrides)


def _fail(message: str, code: int = 2) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(code)


def _read_corpus(config: FolioConfig) -> tuple[list[ContentDocument], list[FrontMatterError]]:
    reader = ContentReader(config.content_dir, config.content.extensions)
    try:
        return reader.read_all()
    except FolioError as exc:
        _fail(str(exc))


def _display(path: Path, base: Path) -> str:
    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return str(path)


DirOption = Annotated[
    Optional[Path],
    typer.Option(
        "--dir",
        "-d",
        help="Content directory. Defaults to the configured one.",
        file_okay=False,
        dir_okay=True,
    ),
]


@app.command(name="check")
def check_cmd(
    ctx: typer.Context,
    directory: DirOption = None,
    strict: Annotated[
        Optional[bool],
        typer.Option("--strict/--no-strict", help="Treat warnings as failures."),
    ] = None,
    check_images: Annotated[
        Optional[bool],
        typer.Option(
            "--check-images/--no-check-images",
            help="Warn about local images that do not exist.",
        ),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print issues as JSON.")] = False,
) -> None:
    """Validate every content document's metadata and directives.

    Exits with status 1 when errors are found, or warnings with --strict.
    """
    config = _config(ctx, content_dir=directory, strict=strict, check_images=check_images)
    documents, failures = _read_corpus(config)
    report = validate_corpus(documents, failures, config.to_validation_options())

    if as_json:
        payload = {
            "documents_checked": report.documents_checked,
            "errors": len(report.errors),
            "warnings": len(report.warnings),
            "issues": [
                {
                    "path": _display(issue.path, config.content_dir),
                    "line": issue.line,
                    "field": issue.field,
                    "severity": issue.severity.value,
                    "message": issue.message,
                }
                for issue in report.issues
            ],
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        if report.issues:
            table = Table(title="Content issues")
            table.add_column("File")
            table.add_column("Line", justify="right")
            table.add_column("Field")
            table.add_column("Severity")
            table.add_column("Message")
            for issue in report.issues:
                colour = "red" if issue.severity == Severity.ERROR else "yellow"
                table.add_row(
                    escape(_display(issue.path, config.content_dir)),
                    str(issue.line or ""),
                    escape(issue.field),
                    f"[{colour}]{issue.severity.value}[/{colour}]",
                    escape(issue.message),
                )
            console.print(table)
        summary = (
            f"Checked {report.documents_checked} document(s): "
            f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)"
        )
        if report.ok and not report.warnings:
            console.print(f"[green]{summary}[/green]")
        else:
            console.print(summary)

    if not report.ok or (config.validate_.strict and report.warnings):
        raise typer.Exit(1)


@app.command(name="list")
def list_cmd(
    ctx: typer.Context,
    directory: DirOption = None,
    drafts: Annotated[
        Optional[bool],
        typer.Option("--drafts/--no-drafts", help="Include draft documents."),
    ] = None,
    future: Annotated[
        Optional[bool],
        typer.Option("--future/--no-future", help="Include documents dated in the future."),
    ] = None,
    tag: Annotated[Optional[str], typer.Option("--tag", "-t", help="Only this tag.")] = None,
    category: Annotated[
        Optional[str], typer.Option("--category", help="Only this category.")
    ] = None,
    newest_first: Annotated[
        bool, typer.Option("--newest-first", help="Reverse chronological order.")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the listing as JSON.")] = False,
) -> None:
    """List published documents in chronological order."""
    config = _config(ctx, content_dir=directory, include_drafts=drafts, include_future=future)
    documents, _ = _read_corpus(config)
    listing = build_listing(
        documents,
        include_drafts=config.build.include_drafts,
        include_future=config.build.include_future,
        newest_first=newest_first,
    )

    selected = listing.documents
    if tag is not None:
        term = listing.tags.get(taxonomy_slug(tag))
        selected = [d for d in selected if term is not None and d in term.documents]
    if category is not None:
        term = listing.categories.get(taxonomy_slug(category))
        selected = [d for d in selected if term is not None and d in term.documents]

    if as_json:
        typer.echo(json.dumps([document_record(d) for d in selected], indent=2))
        return

    if not selected:
        console.print("[yellow]No published documents found.[/yellow]")
        return

    table = Table(title=f"{len(selected)} document(s)")
    table.add_column("Date")
    table.add_column("Title")
    table.add_column("Tags")
    table.add_column("Path")
    for document in selected:
        fm = document.front_matter
        title = escape(document.title)
        if fm.is_draft:
            title += " [dim](draft)[/dim]"
        table.add_row(
            fm.publish_date.strftime("%Y-%m-%d"),
            title,
            escape(", ".join(fm.tags)),
            escape(document.relative_path),
        )
    console.print(table)


@app.command(name="taxonomy")
def taxonomy_cmd(
    ctx: typer.Context,
    kind: Annotated[str, typer.Argument(help="'tags' or 'categories'.")] = "tags",
    directory: DirOption = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print term counts as JSON.")] = False,
) -> None:
    """Show tag or category terms with their document counts."""
    if kind not in ("tags", "categories"):
        _fail(f"Unknown taxonomy: {kind} (use 'tags' or 'categories')")

    config = _config(ctx, content_dir=directory)
    documents, _ = _read_corpus(config)
    listing = build_listing(
        documents,
        include_drafts=config.build.include_drafts,
        include_future=config.build.include_future,
    )
    terms = listing.taxonomy(kind)

    if as_json:
        typer.echo(json.dumps({slug: term.count for slug, term in terms.items()}, indent=2))
        return

    table = Table(title=kind.capitalize())
    table.add_column("Term")
    table.add_column("Slug")
    table.add_column("Posts", justify="right")
    for term in sorted(terms.values(), key=lambda t: (-t.count, t.slug)):
        table.add_row(escape(term.name), term.slug, str(term.count))
    console.print(table)


@app.command(name="show")
def show_cmd(
    path: Annotated[
        Path,
        typer.Argument(help="Content file to inspect.", exists=True, dir_okay=False),
    ],
    as_json: Annotated[bool, typer.Option("--json", help="Print as JSON.")] = False,
) -> None:
    """Show a document's parsed metadata, shortcodes, links and code listings."""
    try:
        document = parse_document(path.read_text(encoding="utf-8"), path, path.name)
    except FolioError as exc:
        _fail(str(exc))

    shortcodes = [s for s in extract_shortcodes(document.body) if not s.closing]
    links = extract_links(document.body)
    blocks = extract_code_blocks(document.body)

    if as_json:
        payload = document_record(document)
        payload.update(
            {
                "format": document.header_format.value if document.header_format else None,
                "extra": document.front_matter.extra,
                "word_count": document.word_count,
                "shortcodes": [
                    {"name": s.name, "params": s.params, "line": s.line + document.body_offset}
                    for s in shortcodes
                ],
                "links": [
                    {"target": link.target, "image": link.is_image, "external": link.is_external}
                    for link in links
                ],
                "code_blocks": [
                    {"language": b.language, "line": b.line + document.body_offset} for b in blocks
                ],
            }
        )
        typer.echo(json.dumps(payload, indent=2, default=str))
        return

    fm = document.front_matter
    console.print(f"[bold]{escape(fm.title or '(untitled)')}[/bold]")
    console.print(f"  Date: {fm.date.isoformat() if fm.date else '(none)'}")
    console.print(f"  Draft: {'yes' if fm.is_draft else 'no'}")
    console.print(f"  Tags: {escape(', '.join(fm.tags) or '-')}")
    console.print(f"  Categories: {escape(', '.join(fm.categories) or '-')}")
    if fm.teaser:
        console.print(f"  Summary: {escape(fm.teaser)}")
    console.print(f"  Words: {document.word_count} (~{document.reading_time} min)")
    if shortcodes:
        console.print()
        console.print("[bold]Shortcodes:[/bold]")
        for shortcode in shortcodes:
            params = " ".join(f"{k}={v!r}" for k, v in shortcode.params.items())
            line = shortcode.line + document.body_offset
            console.print(f"  - line {line}: {escape(shortcode.name)} {escape(params)}")
    if links:
        console.print()
        console.print("[bold]Links:[/bold]")
        for link in links:
            kind = "image" if link.is_image else "link"
            console.print(f"  - {kind}: {escape(link.target)}")
    if blocks:
        console.print()
        console.print("[bold]Code listings:[/bold]")
        for block in blocks:
            console.print(f"  - line {block.line + document.body_offset}: {block.language or 'plain'}")


@app.command(name="fmt")
def fmt_cmd(
    ctx: typer.Context,
    paths: Annotated[
        Optional[list[Path]],
        typer.Argument(help="Files to format. Defaults to every content file."),
    ] = None,
    directory: DirOption = None,
    to: Annotated[
        Optional[HeaderFormat],
        typer.Option("--to", help="Convert headers to this format."),
    ] = None,
    check: Annotated[
        bool,
        typer.Option("--check", help="Only report files that would change."),
    ] = False,
) -> None:
    """Rewrite metadata headers in canonical form."""
    config = _config(ctx, content_dir=directory)
    if not paths:
        try:
            paths = ContentReader(config.content_dir, config.content.extensions).discover()
        except FolioError as exc:
            _fail(str(exc))

    changed: list[Path] = []
    failed = 0
    for path in paths:
        try:
            if normalize_document(path, to, write=not check):
                changed.append(path)
        except (FrontMatterError, OSError) as exc:
            err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
            failed += 1

    verb = "Would reformat" if check else "Reformatted"
    for path in changed:
        console.print(f"{verb} {escape(str(path))}")
    console.print(f"{len(changed)} file(s) {'would change' if check else 'changed'}, {failed} failed")

    if failed or (check and changed):
        raise typer.Exit(1)


@app.command(name="new")
def new_cmd(
    ctx: typer.Context,
    title: Annotated[str, typer.Argument(help="Title of the new document.")],
    directory: DirOption = None,
    section: Annotated[
        Optional[str], typer.Option("--section", "-s", help="Section under the content dir.")
    ] = None,
    tags: Annotated[
        Optional[list[str]], typer.Option("--tag", "-t", help="Tag (repeatable).")
    ] = None,
    categories: Annotated[
        Optional[list[str]], typer.Option("--category", help="Category (repeatable).")
    ] = None,
    summary: Annotated[Optional[str], typer.Option("--summary", help="Summary text.")] = None,
    header_format: Annotated[
        Optional[HeaderFormat],
        typer.Option("--format", "-f", help="Header format."),
    ] = None,
    publish: Annotated[
        bool, typer.Option("--publish", help="Create as published instead of draft.")
    ] = False,
) -> None:
    """Create a new content document with a metadata header."""
    config = _config(ctx, content_dir=directory, section=section, header_format=header_format)
    try:
        path = new_document(
            config.content_dir,
            title,
            section=config.new.section,
            tags=tags or [],
            categories=categories or [],
            summary=summary,
            draft=config.new.draft and not publish,
            header_format=config.new.header_format,
        )
    except FileExistsError as exc:
        _fail(f"File already exists: {exc}")
    except ValueError as exc:
        _fail(str(exc))

    console.print(f"[green]Created[/green] {escape(str(path))}")


@app.command(name="index")
def index_cmd(
    ctx: typer.Context,
    directory: DirOption = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output directory for index files."),
    ] = None,
    index_format: Annotated[
        Optional[IndexFormat],
        typer.Option("--format", "-f", help="Index format."),
    ] = None,
    drafts: Annotated[
        Optional[bool],
        typer.Option("--drafts/--no-drafts", help="Include draft documents."),
    ] = None,
    future: Annotated[
        Optional[bool],
        typer.Option("--future/--no-future", help="Include documents dated in the future."),
    ] = None,
) -> None:
    """Write an index page and per-term pages for the published listing."""
    config = _config(
        ctx,
        content_dir=directory,
        output_dir=output,
        output_format=index_format.value if index_format else None,
        include_drafts=drafts,
        include_future=future,
    )
    documents, _ = _read_corpus(config)
    listing = build_listing(
        documents,
        include_drafts=config.build.include_drafts,
        include_future=config.build.include_future,
    )

    output_dir = config.output_dir
    link_prefix = os.path.relpath(config.content_dir.resolve(), output_dir.resolve())
    try:
        publisher = create_publisher(config.output.format, link_prefix=Path(link_prefix).as_posix())
    except ValueError as exc:
        _fail(str(exc))

    written = publisher.write(listing, output_dir)
    console.print(
        f"[green]Wrote {len(written)} file(s)[/green] for {len(listing.documents)} document(s) "
        f"to {escape(str(output_dir))}"
    )


if __name__ == "__main__":
    app()
