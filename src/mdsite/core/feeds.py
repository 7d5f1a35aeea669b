"""Machine-readable outputs: RSS 2.0, JSON Feed, sitemap and robots.txt"""

import json
from email.utils import format_datetime
from typing import Sequence

from mdsite.core.models import Artifact, Document, Site
from mdsite.core.render import abs_url, make_env, render_markdown, term_route


JSON_FEED_VERSION = "https://jsonfeed.org/version/1.1"


def _last_build(docs: Sequence[Document]):
    """Newest listed date; stands in for a wall-clock build time so output stays reproducible."""
    return max((d.date for d in docs), default=None)


def render_rss(docs: Sequence[Document], site: Site) -> Artifact:
    """RSS 2.0 channel at index.xml; one <category> per tag."""
    last_build = _last_build(docs)
    xml = make_env().get_template("rss.xml").render(
        site=site.config,
        home=abs_url(site),
        feed_url=abs_url(site) + "index.xml",
        last_build=format_datetime(last_build) if last_build else None,
        items=[
            {
                "title": d.title,
                "link": abs_url(site, d.route),
                "pub_date": format_datetime(d.date),
                "description": render_markdown(d.summary, site.parser_config),
                "categories": list(d.tags),
            }
            for d in docs
        ],
    )
    return Artifact(path="index.xml", content=xml.encode("utf-8"))


def json_feed(docs: Sequence[Document], site: Site) -> dict:
    """JSON Feed 1.1 document as a dict."""
    author = site.config.params.get("author")
    feed = {
        "version": JSON_FEED_VERSION,
        "title": site.config.title,
        "home_page_url": abs_url(site),
        "feed_url": abs_url(site) + "index.json",
        "language": site.config.language_code,
        "items": [
            {
                "id": abs_url(site, d.route),
                "url": abs_url(site, d.route),
                "title": d.title,
                "summary": d.summary,
                "content_html": render_markdown(d.body, site.parser_config),
                "date_published": d.date.isoformat(),
                "tags": list(d.tags),
                **({"image": d.cover.image} if d.cover else {}),
                **({"_series": d.series_name} if d.series_name else {}),
            }
            for d in docs
        ],
    }
    if author:
        feed["authors"] = [{"name": author}]
    return feed


def render_json_feed(docs: Sequence[Document], site: Site) -> Artifact:
    payload = json.dumps(json_feed(docs, site), indent=2, ensure_ascii=False) + "\n"
    return Artifact(path="index.json", content=payload.encode("utf-8"))


def render_sitemap(docs: Sequence[Document], site: Site) -> Artifact:
    """sitemap.xml covering the home page, every document and every taxonomy term."""
    urls = [{"loc": abs_url(site), "lastmod": None}]
    urls += [{"loc": abs_url(site, d.route), "lastmod": d.date.isoformat()} for d in docs]
    for taxonomy, terms in (("tag", site.index.tags), ("series", site.index.series)):
        urls += [{"loc": abs_url(site, term_route(site, taxonomy, name)), "lastmod": None} for name in terms]
    xml = make_env().get_template("sitemap.xml").render(urls=urls)
    return Artifact(path="sitemap.xml", content=xml.encode("utf-8"))


def render_robots(site: Site) -> Artifact:
    text = f"User-agent: *\nDisallow:\n\nSitemap: {abs_url(site)}sitemap.xml\n"
    return Artifact(path="robots.txt", content=text.encode("utf-8"))
