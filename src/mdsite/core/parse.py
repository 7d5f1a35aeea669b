"""Content loading: file discovery, front-matter extraction and Document validation"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from functools import partial
from pathlib import Path, PurePosixPath
from typing import Any, Iterator, Optional

import yaml
from pydantic import ValidationError

from mdsite.core.errors import MalformedMetadata
from mdsite.core.models import Cover, Document, Draft, InSeries, Membership, Published, Standalone
from mdsite.core.utils.slug import slugify


logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*(?:\n|$)', re.DOTALL)
MORE_RE = re.compile(r'<!--\s*more\s*-->', re.IGNORECASE)
PART_RE = re.compile(r'#(\d+)')
MD_EXTENSIONS = {'.md', '.markdown'}
KNOWN_KEYS = {'title', 'date', 'draft', 'tags', 'series', 'cover', 'slug', 'summary', 'description'}


def split_frontmatter(text: str, identifier: str = "<string>") -> tuple[dict[str, Any], str]:
    """Return (frontmatter_dict, body) with the YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if not m:
        return {}, text
    try:
        fm = yaml.safe_load(m.group(1)) or {}
    except yaml.YAMLError as e:
        raise MalformedMetadata(identifier, f"invalid YAML front-matter: {e}") from e
    except ValueError as e:
        # timestamp-shaped scalars that are not calendar dates (2024-02-30)
        raise MalformedMetadata(identifier, f"unparseable date: {e}") from e
    if not isinstance(fm, dict):
        raise MalformedMetadata(identifier, f"front-matter must be a mapping, got {type(fm).__name__}")
    return fm, text[m.end():]


def discover_files(root: Path) -> list[Path]:
    """Return sorted content files under root, or [root] if it is a single file.

    Files starting with '_' (section index files) are not documents.
    """
    if root.is_file():
        return [root] if root.suffix in MD_EXTENSIONS else []
    return sorted(
        p for p in root.rglob('*')
        if p.is_file() and p.suffix in MD_EXTENSIONS and not p.name.startswith('_')
    )


def _parse_date(value: Any, identifier: str) -> datetime:
    """Accept YAML timestamps, dates, and ISO 8601 strings; naive values are taken as UTC."""
    if value is None or value == "":
        raise MalformedMetadata(identifier, "missing required field 'date'")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError as e:
            raise MalformedMetadata(identifier, f"unparseable date {value!r}") from e
    else:
        raise MalformedMetadata(identifier, f"unparseable date {value!r}")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _parse_draft(value: Any, identifier: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    raise MalformedMetadata(identifier, f"'draft' must be true or false, got {value!r}")


def _parse_tags(value: Any, identifier: str) -> tuple[str, ...]:
    """Normalise tags to unique, non-empty strings in first-seen order."""
    if value is None:
        return ()
    if isinstance(value, (str, int, float)):
        value = [value]
    if not isinstance(value, list) or any(isinstance(t, (list, dict)) for t in value):
        raise MalformedMetadata(identifier, "'tags' must be a string or a list of strings")
    names = (str(t).strip() for t in value if t is not None)
    return tuple(dict.fromkeys(name for name in names if name))


def _parse_part(title: str, identifier: str) -> Optional[int]:
    """Explicit part number ('#03') from the title, else from the file stem."""
    for text in (title, PurePosixPath(identifier).stem):
        if m := PART_RE.search(text):
            return int(m.group(1))
    return None


def _parse_series(value: Any, title: str, identifier: str) -> Membership:
    if isinstance(value, list):
        if len(value) > 1:
            raise MalformedMetadata(identifier, f"a document belongs to at most one series, got {value!r}")
        value = value[0] if value else None
    if value is None or str(value).strip() == "":
        return Standalone()
    if isinstance(value, dict):
        raise MalformedMetadata(identifier, "'series' must be a string")
    return InSeries(name=str(value).strip(), part=_parse_part(title, identifier))


def _parse_cover(value: Any) -> Optional[Cover]:
    if isinstance(value, str) and value:
        return Cover(image=value)
    if isinstance(value, dict) and value.get('image'):
        return Cover(**{k: str(v) for k, v in value.items() if k in ('image', 'alt', 'caption')})
    return None


def extract_summary(body: str) -> str:
    """Text before the <!--more--> marker, else the first non-heading block."""
    if m := MORE_RE.search(body):
        return body[:m.start()].strip()
    for block in re.split(r'\n\s*\n', body.strip()):
        if block.strip() and not block.lstrip().startswith('#'):
            return block.strip()
    return ""


def _route_parts(identifier: str) -> tuple[str, str]:
    """Return (section, default_slug); page bundles ('posts/x/index.md') take the directory name."""
    path = PurePosixPath(identifier)
    parts = path.parts
    if path.stem == 'index' and len(parts) > 1:
        return (parts[0] if len(parts) > 2 else ''), slugify(path.parent.name)
    return (parts[0] if len(parts) > 1 else ''), slugify(path.stem)


def parse_text(text: str, identifier: str) -> Document:
    """Validate one document's front-matter and build a Document from it."""
    fm, body = split_frontmatter(text, identifier)

    raw_title = fm.get('title')
    if isinstance(raw_title, (list, dict)):
        raise MalformedMetadata(identifier, f"'title' must be a string, got {type(raw_title).__name__}")
    title = str(raw_title or '').strip()
    if not title:
        raise MalformedMetadata(identifier, "missing required field 'title'")
    published_at = _parse_date(fm.get('date'), identifier)

    section, default_slug = _route_parts(identifier)
    slug = slugify(str(fm['slug'])) if fm.get('slug') else default_slug
    if not slug:
        raise MalformedMetadata(identifier, "cannot derive a URL slug")

    try:
        return Document(
            identifier=identifier,
            slug=slug,
            section=section,
            title=title,
            date=published_at,
            status=Draft() if _parse_draft(fm.get('draft'), identifier) else Published(),
            tags=_parse_tags(fm.get('tags'), identifier),
            series=_parse_series(fm.get('series'), title, identifier),
            cover=_parse_cover(fm.get('cover')),
            description=str(fm.get('description') or ''),
            summary=str(fm.get('summary') or '').strip() or extract_summary(body),
            body=body,
            params={k: v for k, v in fm.items() if k not in KNOWN_KEYS},
        )
    except ValidationError as e:
        raise MalformedMetadata(identifier, str(e)) from e


def parse_document(path: Path, root: Path) -> Document:
    """Read and parse one content file; identifier is its path relative to root."""
    identifier = path.name if path == root else path.relative_to(root).as_posix()
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedMetadata(identifier, f"cannot read file: {e}") from e
    doc = parse_text(text, identifier)
    logger.debug("parsed %s -> /%s/", identifier, doc.route)
    return doc


def iter_documents(root: Path) -> Iterator[Document]:
    """Lazily parse every content file under root; each call rescans the directory."""
    for path in discover_files(root):
        yield parse_document(path, root)


def _check_routes(docs: list[Document]) -> None:
    seen: dict[str, str] = {}
    for doc in docs:
        if doc.route in seen:
            raise MalformedMetadata(doc.identifier, f"URL /{doc.route}/ already used by {seen[doc.route]}")
        seen[doc.route] = doc.identifier


def load_documents(root: Path, workers: int = 1) -> list[Document]:
    """Parse all content under root, in discovery order. The first malformed file aborts the load."""
    files = discover_files(root)
    if workers > 1 and len(files) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            docs = list(pool.map(partial(parse_document, root=root), files))
    else:
        docs = [parse_document(p, root) for p in files]
    _check_routes(docs)
    logger.info("loaded %d document(s) from %s", len(docs), root)
    return docs
