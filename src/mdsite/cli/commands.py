"""CLI command implementations"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from mdsite.config import Settings, load_config, load_site_config
from mdsite.core.errors import SiteError
from mdsite.core.parse import load_documents
from mdsite.core.pipeline import assemble_site, render_site, run_build


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except SiteError as e:
        _fail(str(e))


def _setup_logging(settings: Settings, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.log_level),
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


ContentArg = Annotated[Optional[str], typer.Argument(help="Content directory (default: settings content_dir)")]
ConfigOpt = Annotated[Optional[str], typer.Option("--config", help="Site configuration file")]
DraftsOpt = Annotated[Optional[bool], typer.Option("--include-drafts/--no-drafts", help="Include draft documents")]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")]


def build_cmd(
    content: ContentArg = None,
    config: ConfigOpt = None,
    out: Annotated[Optional[str], typer.Option("--output", "-o", help="Output directory")] = None,
    drafts: DraftsOpt = None,
    workers: Annotated[Optional[int], typer.Option("--workers", help="Parallel parse/render threads")] = None,
    verbose: VerboseOpt = False,
    ):
    """Render the site and publish it atomically to the output directory."""
    settings = _settings(overrides={
        "content_dir": content, "config_file": config, "output_dir": out,
        "include_drafts": drafts, "workers": workers,
    })
    _setup_logging(settings, verbose)
    try:
        report = run_build(
            Path(settings.content_dir),
            Path(settings.config_file),
            Path(settings.output_dir),
            include_drafts=settings.include_drafts,
            workers=settings.workers,
            parser_config=settings.parser_config,
        )
    except SiteError as e:
        _fail(str(e))
    typer.echo(
        f"Build complete - "
        f"{report.documents} document(s), "
        f"{report.drafts_skipped} draft(s) skipped, "
        f"{report.artifacts} file(s) written to {report.output_dir}/"
    )


def check_cmd(
    content: ContentArg = None,
    config: ConfigOpt = None,
    verbose: VerboseOpt = False,
    ):
    """Parse, index and render everything without writing output."""
    settings = _settings(overrides={"content_dir": content, "config_file": config})
    _setup_logging(settings, verbose)
    try:
        site_config = load_site_config(Path(settings.config_file))
        documents = load_documents(Path(settings.content_dir), settings.workers)
        site = assemble_site(documents, site_config, include_drafts=True, parser_config=settings.parser_config)
        artifacts = render_site(site, settings.workers)
    except SiteError as e:
        _fail(str(e))
    typer.echo(f"OK - {len(documents)} document(s), {len(artifacts)} route(s)")


def list_cmd(
    content: ContentArg = None,
    drafts: DraftsOpt = None,
    ):
    """List documents newest first with their status, tags and series."""
    settings = _settings(overrides={"content_dir": content, "include_drafts": drafts})
    _setup_logging(settings, verbose=False)
    try:
        documents = load_documents(Path(settings.content_dir), settings.workers)
    except SiteError as e:
        _fail(str(e))
    shown = [d for d in documents if settings.include_drafts or not d.is_draft]
    if not shown:
        typer.echo("No documents found.")
        raise typer.Exit(1)
    for doc in sorted(shown, key=lambda d: (-d.date.timestamp(), d.identifier)):
        status = "draft" if doc.is_draft else "published"
        series = f" [{doc.series_name}]" if doc.series_name else ""
        typer.echo(f"{doc.date:%Y-%m-%d}  {status:<9}  {doc.identifier}{series}  {', '.join(doc.tags)}")
