"""Tool settings (config.yaml, env, CLI) and the site configuration file loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from mdsite.core.errors import ConfigError
from mdsite.core.models import MenuEntry, SiteConfig


CONFIG_FILE = "config.yaml"
DEFAULT_PAGER_SIZE = 10


class Settings(BaseModel):
    app_name:       str  = "mdsite"
    content_dir:    str  = Field(default="content",   description="Root directory of Markdown content")
    config_file:    str  = Field(default="hugo.yaml", description="Site configuration file")
    output_dir:     str  = Field(default="public",    description="Directory the site is published to")
    include_drafts: bool = Field(default=False,       description="Render draft documents (preview mode)")
    workers:        int  = Field(default=4, ge=1,     description="Threads for parsing and rendering; 1 is sequential")
    parser_config:  str  = Field(default="gfm-like",  description="MarkdownIt parser preset name")
    log_level:      str  = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR)$")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDSITE_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if val := os.getenv(f"MDSITE_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e


def _menu(raw: dict) -> tuple[MenuEntry, ...]:
    """Main menu entries ordered by weight; declaration order breaks ties."""
    entries = [MenuEntry(**item) for item in (raw.get("menu") or {}).get("main") or []]
    return tuple(sorted(entries, key=lambda e: e.weight))


def _pager_size(raw: dict) -> int:
    pagination = raw.get("pagination") or {}
    return int(pagination.get("pagerSize") or raw.get("paginate") or DEFAULT_PAGER_SIZE)


def parse_site_config(raw: dict[str, Any]) -> SiteConfig:
    """Map a hugo.yaml-shaped mapping onto SiteConfig. Unknown keys are ignored."""
    params = dict(raw.get("params") or {})
    main_sections = params.get("mainSections")
    known_series = params.get("series")
    home_outputs = (raw.get("outputs") or {}).get("home")

    fields: dict[str, Any] = {
        "base_url": raw.get("baseURL") or "/",
        "language_code": raw.get("languageCode") or "en-us",
        "title": raw.get("title") or "",
        "menu": _menu(raw),
        "params": params,
        "pager_size": _pager_size(raw),
        "enable_robots_txt": bool(raw.get("enableRobotsTXT", False)),
    }
    if raw.get("taxonomies"):
        fields["taxonomies"] = dict(raw["taxonomies"])
    if home_outputs:
        fields["home_outputs"] = tuple(home_outputs)
    if main_sections is not None:
        fields["main_sections"] = tuple(main_sections)
    if known_series is not None:
        fields["known_series"] = frozenset(known_series)
    return SiteConfig(**fields)


def load_site_config(path: Path) -> SiteConfig:
    """Read the site configuration file; a missing file yields the defaults."""
    if not path.exists():
        return SiteConfig()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid {path}: expected a mapping, got {type(raw).__name__}")
    try:
        return parse_site_config(raw)
    except (ValidationError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {path}: {e}") from e
