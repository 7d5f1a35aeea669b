"""Route rendering: documents and taxonomy entries to HTML artifacts"""

import math
import re
from functools import lru_cache
from itertools import groupby
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import urlsplit

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from markdown_it import MarkdownIt

from mdsite.core.models import Artifact, Document, Site
from mdsite.core.taxonomy import series_neighbours
from mdsite.core.utils.slug import term_slug


TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
WORDS_PER_MINUTE = 213
WORD_RE = re.compile(r'\w+')


@lru_cache(maxsize=None)
def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def render_markdown(text: str, preset: str = "gfm-like") -> str:
    return _make_parser(preset).render(text)


def reading_time(text: str) -> int:
    """Whole minutes to read text, at least one."""
    return max(1, math.ceil(len(WORD_RE.findall(text)) / WORDS_PER_MINUTE))


def base_path(site: Site) -> str:
    """Path component of the base URL, always with a trailing slash ('/' or '/blog/')."""
    path = urlsplit(site.config.base_url).path or "/"
    return path if path.endswith("/") else path + "/"


def rel_url(site: Site, route: str = "") -> str:
    """Site-relative URL of a route ('posts/x' -> '/blog/posts/x/')."""
    route = route.strip("/")
    return base_path(site) + (route + "/" if route else "")


def abs_url(site: Site, route: str = "") -> str:
    """Absolute URL of a route under the configured base URL."""
    parts = urlsplit(site.config.base_url)
    if not parts.netloc:
        return rel_url(site, route)
    return f"{parts.scheme}://{parts.netloc}{rel_url(site, route)}"


def term_route(site: Site, taxonomy: str, name: str) -> str:
    return f"{site.config.taxonomy_path(taxonomy)}/{term_slug(name)}"


def _format_date(value) -> str:
    return f"{value:%B} {value.day}, {value:%Y}"


@lru_cache(maxsize=None)
def make_env(templates_dir: Path = TEMPLATES_DIR) -> Environment:
    """Jinja environment over the template directory; HTML and XML are autoescaped."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["date_format"] = _format_date
    return env


def _render(site: Site, template: str, path: str, **context) -> Artifact:
    """Render template with the shared site context into an artifact at path."""
    route = path.rsplit("index.html", 1)[0].strip("/")
    html = make_env().get_template(template).render(
        site=site.config,
        menu=site.config.menu,
        preview=site.preview,
        home_url=rel_url(site),
        canonical=abs_url(site, route),
        url=lambda r="": rel_url(site, r),
        doc_url=lambda d: rel_url(site, d.route),
        tag_url=lambda name: rel_url(site, term_route(site, "tag", name)),
        series_url=lambda name: rel_url(site, term_route(site, "series", name)),
        md=lambda text: render_markdown(text, site.parser_config),
        **context,
    )
    return Artifact(path=path, content=html.encode("utf-8"))


def render_document(doc: Document, site: Site) -> Artifact:
    """Single page for one document at <route>/index.html."""
    prev_doc, next_doc = series_neighbours(site.index, doc)
    params = site.config.params
    return _render(
        site, "single.html", f"{doc.route}/index.html",
        title=doc.title,
        doc=doc,
        content=render_markdown(doc.body, site.parser_config),
        reading_time=reading_time(doc.body) if params.get("ShowReadingTime") else None,
        series_name=doc.series_name,
        prev_doc=prev_doc if params.get("ShowPostNavLinks", True) else None,
        next_doc=next_doc if params.get("ShowPostNavLinks", True) else None,
    )


def render_tag_page(name: str, docs: Sequence[Document], site: Site) -> Artifact:
    """Listing of every document carrying tag name, newest first."""
    route = term_route(site, "tag", name)
    return _render(site, "list.html", f"{route}/index.html", title=name, heading=name,
                   docs=list(docs), pager=None)


def render_series_page(name: str, docs: Sequence[Document], site: Site) -> Artifact:
    """Listing of a series' parts in reading order."""
    route = term_route(site, "series", name)
    return _render(site, "list.html", f"{route}/index.html", title=name, heading=name,
                   docs=list(docs), pager=None)


def render_terms_page(taxonomy: str, terms: dict[str, Sequence[Document]], site: Site) -> Artifact:
    """Overview of all terms of one taxonomy with their document counts."""
    plural = site.config.taxonomy_path(taxonomy)
    entries = [
        {"name": name, "count": len(docs), "url": rel_url(site, term_route(site, taxonomy, name))}
        for name, docs in sorted(terms.items(), key=lambda kv: kv[0].lower())
    ]
    return _render(site, "terms.html", f"{plural}/index.html", title=plural.capitalize(), terms=entries)


def paginate(items: Sequence, page_size: int) -> list[list]:
    """Split items into pages; page N holds offsets (N-1)*size .. N*size-1.

    There is always at least one page, possibly empty.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    pages = [list(items[i:i + page_size]) for i in range(0, len(items), page_size)]
    return pages or [[]]


def page_path(number: int) -> str:
    return "index.html" if number == 1 else f"page/{number}/index.html"


def _page_url(site: Site, number: Optional[int]) -> Optional[str]:
    if number is None:
        return None
    return rel_url(site) if number == 1 else rel_url(site, f"page/{number}")


def render_home_pages(docs: Sequence[Document], site: Site) -> list[Artifact]:
    """Paginated home listing; docs must already be in home order."""
    pages = paginate(docs, site.config.pager_size)
    total = len(pages)
    artifacts = []
    for number, page in enumerate(pages, start=1):
        pager = {
            "number": number,
            "total": total,
            "prev": _page_url(site, number - 1 if number > 1 else None),
            "next": _page_url(site, number + 1 if number < total else None),
        }
        artifacts.append(_render(
            site, "list.html", page_path(number),
            title=site.config.title, heading=None, docs=page, pager=pager,
            home_info=site.config.params.get("homeInfoParams") if number == 1 else None,
        ))
    return artifacts


def render_archive(docs: Sequence[Document], site: Site) -> Artifact:
    """Archive of listed documents grouped by year, newest first."""
    years = [
        {"year": year, "docs": list(group)}
        for year, group in groupby(docs, key=lambda d: d.date.year)
    ]
    return _render(site, "archive.html", "archives/index.html", title="Archive", years=years)
