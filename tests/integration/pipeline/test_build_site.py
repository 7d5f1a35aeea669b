"""Integration tests for run_build against the `blog` fixture content tree.

Content (see conftest.py):
    posts/sum-types.md      tags design, types; summary cut by <!--more-->
    posts/skeleton-1.md     "Walking skeleton #01", series, dated after #02
    posts/skeleton-2.md     "Walking skeleton #02", series
    posts/unfinished.md     draft, tag design
    about.md                root page, outside mainSections
"""

import json
from pathlib import Path

import pytest

from mdsite.core.errors import ConfigError, MalformedMetadata
from mdsite.core.pipeline import run_build


def _tree(root: Path) -> dict[str, bytes]:
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


def _build(blog: Path, out: str = "public", **kwargs):
    return run_build(blog / "content", blog / "hugo.yaml", blog / out, **kwargs)


def test_build_writes_expected_routes(blog):
    report = _build(blog)
    tree = _tree(blog / "public")
    for path in [
        "index.html",
        "index.xml",
        "index.json",
        "sitemap.xml",
        "robots.txt",
        "archives/index.html",
        "about/index.html",
        "posts/sum-types/index.html",
        "posts/skeleton-1/index.html",
        "posts/skeleton-2/index.html",
        "tags/index.html",
        "tags/design/index.html",
        "tags/skeleton/index.html",
        "series/index.html",
        "series/walking-skeleton/index.html",
    ]:
        assert path in tree, path
    assert report.documents == 4
    assert report.drafts_skipped == 1
    assert report.artifacts == len(tree)


def test_build_is_deterministic(blog):
    """Two builds of unchanged input are byte-identical."""
    _build(blog, "first", workers=4)
    _build(blog, "second", workers=1)
    assert _tree(blog / "first") == _tree(blog / "second")


def test_drafts_excluded_from_production(blog):
    _build(blog)
    tree = _tree(blog / "public")
    assert "posts/unfinished/index.html" not in tree
    for path, content in tree.items():
        assert b"Unfinished thoughts" not in content, path
        assert b"Secret draft body" not in content, path


def test_drafts_included_in_preview(blog):
    _build(blog, include_drafts=True)
    tree = _tree(blog / "public")
    assert "posts/unfinished/index.html" in tree
    assert b"Unfinished thoughts" in tree["tags/design/index.html"]


def test_tag_page_lists_every_tagged_document(blog):
    _build(blog)
    html = (blog / "public" / "tags" / "design" / "index.html").read_text()
    assert html.count('href="/posts/sum-types/"') == 1
    assert html.count('href="/posts/skeleton-1/"') == 1


def test_series_page_in_part_order(blog):
    """#01 precedes #02 although #02 was published earlier."""
    _build(blog)
    html = (blog / "public" / "series" / "walking-skeleton" / "index.html").read_text()
    assert html.index("Walking skeleton #01") < html.index("Walking skeleton #02")


def test_home_and_feeds_only_list_main_sections(blog):
    _build(blog)
    home = (blog / "public" / "index.html").read_text()
    feed = json.loads((blog / "public" / "index.json").read_text())
    assert "/about/" not in home.split("<main>")[1]
    assert [i["title"] for i in feed["items"]] == [
        "Sum types", "Walking skeleton #01", "Walking skeleton #02",
    ]


def test_unset_main_sections_lists_largest_section(blog, write_md):
    """Without mainSections only the biggest section is listed; root pages stay off."""
    config = (blog / "hugo.yaml").read_text().replace("  mainSections: [posts]\n", "")
    (blog / "hugo.yaml").write_text(config)
    write_md(blog / "content", "notes/one.md", title="A note", date="2024-05-01")
    _build(blog)
    feed = (blog / "public" / "index.json").read_text()
    assert "/about/" not in feed
    assert "/notes/one/" not in feed
    assert "/posts/sum-types/" in feed


@pytest.mark.parametrize("name,generated", [
    ("archives.md", "archives"),
    ("tags.md", "tags"),
    ("series.md", "series"),
])
def test_page_on_generated_route_is_malformed(blog, write_md, name, generated):
    """A content page may not take a URL the site itself generates."""
    _build(blog)
    before = _tree(blog / "public")
    write_md(blog / "content", name, title="Clash", date="2024-01-01")
    with pytest.raises(MalformedMetadata, match=f"{name}: URL /{generated}/ collides"):
        _build(blog)
    assert _tree(blog / "public") == before


def test_tags_with_one_slug_fail_the_build(blog, write_md):
    write_md(blog / "content", "posts/pointers.md", title="Pointers", date="2024-01-05", tags=["C"])
    write_md(blog / "content", "posts/records.md", title="Records", date="2024-01-06", tags=["C#"])
    with pytest.raises(MalformedMetadata, match="posts/records.md: tag 'C#' and tag 'C'"):
        _build(blog)
    assert not (blog / "public").exists()


def test_summary_cut_marker_on_home(blog):
    _build(blog)
    home = (blog / "public" / "index.html").read_text()
    assert "Intro paragraph." in home
    assert "Details" not in home


def test_malformed_document_aborts_without_touching_output(blog, write_md):
    """A broken document fails the build and the previous output survives."""
    _build(blog)
    before = _tree(blog / "public")
    write_md(blog / "content", "posts/broken.md", title="No date here")
    with pytest.raises(MalformedMetadata, match="posts/broken.md"):
        _build(blog)
    assert _tree(blog / "public") == before


def test_unknown_series_still_renders(blog, caplog):
    """With declared series, an undeclared one is a warning, not a failure."""
    config = (blog / "hugo.yaml").read_text().replace(
        "  mainSections: [posts]\n", "  mainSections: [posts]\n  series: [Other]\n")
    (blog / "hugo.yaml").write_text(config)
    _build(blog)
    tree = _tree(blog / "public")
    assert "posts/skeleton-1/index.html" in tree
    assert "series/walking-skeleton/index.html" not in tree
    assert "unknown series 'Walking skeleton'" in caplog.text


def test_missing_content_dir(tmp_path):
    with pytest.raises(ConfigError, match="Content directory not found"):
        run_build(tmp_path / "nope", tmp_path / "hugo.yaml", tmp_path / "public")
