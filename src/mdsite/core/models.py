"""Content and site data models shared by the loader, indexer and renderer"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Published(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["published"] = "published"


class Draft(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["draft"] = "draft"


Status = Annotated[Union[Published, Draft], Field(discriminator="kind")]


class InSeries(BaseModel):
    """Membership of a named series, with the explicit part number when one is encoded."""
    model_config = ConfigDict(frozen=True)
    kind: Literal["series"] = "series"
    name: str = Field(..., min_length=1)
    part: Optional[int] = None


class Standalone(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["standalone"] = "standalone"


Membership = Annotated[Union[InSeries, Standalone], Field(discriminator="kind")]


class Cover(BaseModel):
    model_config = ConfigDict(frozen=True)
    image: str
    alt: str = ""
    caption: str = ""


class Document(BaseModel):
    """One content file after front-matter validation; immutable for the whole build."""
    model_config = ConfigDict(frozen=True)

    identifier: str                 # source path relative to the content root, POSIX form
    slug: str
    section: str = ""               # first directory of identifier; "" for root-level pages
    title: str = Field(..., min_length=1)
    date: datetime
    status: Status = Published()
    tags: tuple[str, ...] = ()
    series: Membership = Standalone()
    cover: Optional[Cover] = None
    description: str = ""
    summary: str = ""
    body: str = ""
    params: dict[str, Any] = {}     # unrecognised front-matter keys, passed through to templates

    @property
    def is_draft(self) -> bool:
        return isinstance(self.status, Draft)

    @property
    def series_name(self) -> Optional[str]:
        return self.series.name if isinstance(self.series, InSeries) else None

    @property
    def route(self) -> str:
        """Site-relative directory of the rendered page, e.g. 'posts/hello'."""
        return f"{self.section}/{self.slug}" if self.section else self.slug


class MenuEntry(BaseModel):
    model_config = ConfigDict(frozen=True)
    identifier: str
    name: str
    url: str
    weight: int = 0


class SiteConfig(BaseModel):
    """Global site configuration; read once per build and never mutated."""
    model_config = ConfigDict(frozen=True)

    base_url: str = "/"
    language_code: str = "en-us"
    title: str = ""
    menu: tuple[MenuEntry, ...] = ()
    taxonomies: dict[str, str] = {"tag": "tags", "series": "series"}
    params: dict[str, Any] = {}
    home_outputs: tuple[str, ...] = ("HTML", "RSS", "JSON")
    pager_size: int = Field(default=10, ge=1)
    main_sections: Optional[tuple[str, ...]] = None     # None: the largest section
    known_series: Optional[frozenset[str]] = None       # None accepts any series name
    enable_robots_txt: bool = False

    def taxonomy_path(self, singular: str) -> str:
        """URL segment of a taxonomy ('tag' -> 'tags')."""
        return self.taxonomies.get(singular, singular)

    def wants(self, output_format: str) -> bool:
        return output_format.upper() in {f.upper() for f in self.home_outputs}


@dataclass(frozen=True)
class TaxonomyIndex:
    """Reverse indices built from one build's documents."""
    tags:   dict[str, tuple[Document, ...]] = field(default_factory=dict)
    series: dict[str, tuple[Document, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class Site:
    """Aggregate of configuration, the documents of this build, and their indices."""
    config:    SiteConfig
    documents: tuple[Document, ...]
    index:     TaxonomyIndex
    preview:   bool = False         # drafts included
    parser_config: str = "gfm-like"

    def main_sections(self) -> tuple[str, ...]:
        """Configured main sections, else the section holding the most documents.

        Root-level pages belong to no section and are never listed by default.
        """
        if self.config.main_sections is not None:
            return self.config.main_sections
        counts = Counter(d.section for d in self.documents if d.section)
        if not counts:
            return ()
        return (min(counts, key=lambda s: (-counts[s], s)),)

    def listed(self) -> list[Document]:
        """Documents shown on home, archive and feeds, newest first."""
        sections = self.main_sections()
        docs = [d for d in self.documents if d.section in sections]
        return sorted(docs, key=lambda d: (-d.date.timestamp(), d.identifier))


@dataclass(frozen=True)
class Artifact:
    """One rendered output file, addressed relative to the output root."""
    path:    str
    content: bytes
