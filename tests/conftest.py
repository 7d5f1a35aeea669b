"""Shared fixtures: document factories and a small content tree"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import yaml

from mdsite.core.models import Document, Draft, InSeries, Published, SiteConfig, Standalone
from mdsite.core.pipeline import assemble_site


BASE_DATE = datetime(2024, 1, 1, 9, 0, 0, tzinfo=timezone.utc)

SITE_YAML = """\
baseURL: https://example.org/
languageCode: en-us
title: Example Blog
enableRobotsTXT: true
menu:
  main:
    - identifier: tags
      name: Tags
      url: /tags/
      weight: 20
    - identifier: blog
      name: Blog
      url: /
      weight: 10
taxonomies:
  tag: tags
  series: series
params:
  author: "Jane Doe"
  description: "Notes on software design"
  mainSections: [posts]
  ShowReadingTime: true
outputs:
  home:
    - HTML
    - RSS
    - JSON
"""


@pytest.fixture(autouse=True)
def restore_root_logging():
    """CLI commands reconfigure the root logger; undo that after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(name="make_doc")
def make_doc_fixture():
    """Factory for Documents with sensible defaults; day offsets BASE_DATE."""
    def _make(title="Post", day=0, tags=(), series=None, part=None, draft=False,
              identifier=None, section="posts", **kwargs) -> Document:
        slug = kwargs.pop("slug", None) or title.lower().replace(" ", "-").replace("#", "")
        return Document(
            identifier=identifier or (f"{section}/{slug}.md" if section else f"{slug}.md"),
            slug=slug,
            section=section,
            title=title,
            date=BASE_DATE + timedelta(days=day),
            status=Draft() if draft else Published(),
            tags=tuple(tags),
            series=InSeries(name=series, part=part) if series else Standalone(),
            body=kwargs.pop("body", f"Body of {title}."),
            summary=kwargs.pop("summary", f"Summary of {title}."),
            **kwargs,
        )
    return _make


@pytest.fixture(name="site_config")
def site_config_fixture():
    return SiteConfig(
        base_url="https://example.org/",
        title="Example Blog",
        params={"author": "Jane Doe", "ShowReadingTime": True},
    )


@pytest.fixture(name="make_site")
def make_site_fixture(site_config):
    def _make(docs, config=None, include_drafts=False):
        return assemble_site(docs, config or site_config, include_drafts=include_drafts)
    return _make


def write_content(root: Path, rel: str, body: str = "Body text.", **frontmatter) -> Path:
    """Write a Markdown file with YAML front-matter under root."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True) if frontmatter else ""
    path.write_text(f"---\n{header}---\n\n{body}\n", encoding="utf-8")
    return path


@pytest.fixture(name="write_md")
def write_md_fixture():
    return write_content


@pytest.fixture(name="blog")
def blog_fixture(tmp_path):
    """A small site: config file plus content with tags, a series, a draft and a page."""
    (tmp_path / "hugo.yaml").write_text(SITE_YAML)
    content = tmp_path / "content"
    write_content(content, "posts/sum-types.md", "Intro paragraph.\n\n<!--more-->\n\n## Details\n\nMore.",
                  title="Sum types", date="2024-02-01T10:00:00+01:00", tags=["design", "types"])
    write_content(content, "posts/skeleton-2.md", "Second part.",
                  title="Walking skeleton #02", date="2024-01-10", tags=["skeleton"],
                  series="Walking skeleton")
    write_content(content, "posts/skeleton-1.md", "First part.",
                  title="Walking skeleton #01", date="2024-01-20", tags=["skeleton", "design"],
                  series=["Walking skeleton"])
    write_content(content, "posts/unfinished.md", "Secret draft body.",
                  title="Unfinished thoughts", date="2024-03-01", draft=True, tags=["design"])
    write_content(content, "about.md", "About me.", title="About me", date="2023-12-01")
    return tmp_path
