"""Reverse indices from documents to tags and series"""

import logging
from typing import Iterable, Optional

from mdsite.core.errors import MalformedMetadata, MissingSeriesReference
from mdsite.core.models import Document, InSeries, Standalone, TaxonomyIndex
from mdsite.core.utils.slug import term_slug


logger = logging.getLogger(__name__)


def newest_first(doc: Document) -> tuple:
    return (-doc.date.timestamp(), doc.identifier)


def series_order(doc: Document) -> tuple:
    """Explicit part numbers first (ascending), then unnumbered parts by date."""
    part = doc.series.part if isinstance(doc.series, InSeries) else None
    if part is not None:
        return (0, part, doc.date.timestamp(), doc.identifier)
    return (1, 0, doc.date.timestamp(), doc.identifier)


def resolve_series(docs: Iterable[Document], known_series: Optional[frozenset[str]]) -> list[Document]:
    """Detach documents from series the site does not declare, logging each one."""
    if known_series is None:
        return list(docs)
    resolved = []
    for doc in docs:
        name = doc.series_name
        if name is not None and name not in known_series:
            logger.warning("%s", MissingSeriesReference(doc.identifier, name))
            doc = doc.model_copy(update={"series": Standalone()})
        resolved.append(doc)
    return resolved


def _check_term_slugs(kind: str, terms: dict[str, list[Document]]) -> None:
    """Distinct term names must not share a URL ('C' and 'C#' both slug to 'c')."""
    seen: dict[str, str] = {}
    for name in sorted(terms):
        slug = term_slug(name)
        if slug in seen:
            identifier = min(d.identifier for d in terms[name])
            raise MalformedMetadata(
                identifier, f"{kind} '{name}' and {kind} '{seen[slug]}' share the URL slug '{slug}'")
        seen[slug] = name


def build_index(docs: Iterable[Document]) -> TaxonomyIndex:
    """Group documents by tag (newest first) and by series (part order)."""
    tags: dict[str, list[Document]] = {}
    series: dict[str, list[Document]] = {}
    for doc in docs:
        for tag in dict.fromkeys(doc.tags):
            tags.setdefault(tag, []).append(doc)
        if doc.series_name is not None:
            series.setdefault(doc.series_name, []).append(doc)
    _check_term_slugs("tag", tags)
    _check_term_slugs("series", series)

    return TaxonomyIndex(
        tags={name: tuple(sorted(members, key=newest_first)) for name, members in sorted(tags.items())},
        series={name: tuple(sorted(members, key=series_order)) for name, members in sorted(series.items())},
    )


def series_neighbours(index: TaxonomyIndex, doc: Document) -> tuple[Optional[Document], Optional[Document]]:
    """Return (previous, next) documents in doc's series, or (None, None) if standalone."""
    members = index.series.get(doc.series_name) if doc.series_name else None
    if not members:
        return None, None
    position = next((i for i, d in enumerate(members) if d.identifier == doc.identifier), None)
    if position is None:
        return None, None
    prev_doc = members[position - 1] if position > 0 else None
    next_doc = members[position + 1] if position + 1 < len(members) else None
    return prev_doc, next_doc
