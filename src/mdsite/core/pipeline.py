"""Site assembly: load -> index -> render -> publish"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Sequence

from mdsite.config import load_site_config
from mdsite.core.errors import ConfigError, MalformedMetadata, SiteError
from mdsite.core.feeds import render_json_feed, render_robots, render_rss, render_sitemap
from mdsite.core.models import Artifact, Document, Site, SiteConfig
from mdsite.core.output import write_tree
from mdsite.core.parse import load_documents
from mdsite.core.render import (
    render_archive,
    render_document,
    render_home_pages,
    render_series_page,
    render_tag_page,
    render_terms_page,
)
from mdsite.core.taxonomy import build_index, resolve_series


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildReport:
    documents:      int
    drafts_skipped: int
    artifacts:      int
    output_dir:     Path


def assemble_site(
    documents: Iterable[Document],
    config: SiteConfig,
    include_drafts: bool = False,
    parser_config: str = "gfm-like",
    ) -> Site:
    """Select the documents of this build mode and index them."""
    docs = [d for d in documents if include_drafts or not d.is_draft]
    docs = resolve_series(docs, config.known_series)
    return Site(
        config=config,
        documents=tuple(docs),
        index=build_index(docs),
        preview=include_drafts,
        parser_config=parser_config,
    )


def _fan_out(fn: Callable, items: Sequence, site: Site, workers: int) -> list[Artifact]:
    """Apply fn(item, site) to every item, in parallel when workers > 1; order is preserved."""
    if workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda item: fn(item, site), items))
    return [fn(item, site) for item in items]


def render_site(site: Site, workers: int = 1) -> list[Artifact]:
    """Render every route of the site, sorted by output path."""
    listed = site.listed()
    artifacts = _fan_out(render_document, list(site.documents), site, workers)

    artifacts += [render_tag_page(name, docs, site) for name, docs in site.index.tags.items()]
    artifacts += [render_series_page(name, docs, site) for name, docs in site.index.series.items()]
    artifacts.append(render_terms_page("tag", site.index.tags, site))
    artifacts.append(render_terms_page("series", site.index.series, site))

    if site.config.wants("HTML"):
        artifacts += render_home_pages(listed, site)
    artifacts.append(render_archive(listed, site))
    if site.config.wants("RSS"):
        artifacts.append(render_rss(listed, site))
    if site.config.wants("JSON"):
        artifacts.append(render_json_feed(listed, site))
    artifacts.append(render_sitemap(list(site.documents), site))
    if site.config.enable_robots_txt:
        artifacts.append(render_robots(site))

    _check_paths(artifacts, site)
    return sorted(artifacts, key=lambda a: a.path)


def _check_paths(artifacts: Sequence[Artifact], site: Site) -> None:
    """Every artifact needs its own path; a document clashing with a generated page is malformed."""
    owners = {f"{doc.route}/index.html": doc.identifier for doc in site.documents}
    seen: set[str] = set()
    for artifact in artifacts:
        if artifact.path in seen:
            if artifact.path in owners:
                route = artifact.path.rsplit("index.html", 1)[0]
                raise MalformedMetadata(owners[artifact.path], f"URL /{route} collides with a generated page")
            raise SiteError(f"Two pages render to {artifact.path}")
        seen.add(artifact.path)


def run_build(
    content_dir: Path,
    config_path: Path,
    output_dir: Path,
    include_drafts: bool = False,
    workers: int = 1,
    parser_config: str = "gfm-like",
    ) -> BuildReport:
    """Build the whole site. Any fatal error propagates before output_dir is touched."""
    if not content_dir.exists():
        raise ConfigError(f"Content directory not found: {content_dir}")
    config = load_site_config(config_path)
    if not config_path.exists():
        logger.warning("site config %s not found; using defaults", config_path)

    documents = load_documents(content_dir, workers)
    site = assemble_site(documents, config, include_drafts, parser_config)
    drafts_skipped = len(documents) - len(site.documents)
    if drafts_skipped:
        logger.info("skipped %d draft(s)", drafts_skipped)

    artifacts = render_site(site, workers)
    write_tree(artifacts, output_dir)
    return BuildReport(
        documents=len(site.documents),
        drafts_skipped=drafts_skipped,
        artifacts=len(artifacts),
        output_dir=output_dir,
    )
