# === FILE: access_scout/config.py ===
"""
Loading and validation of the AccessScout crawl configuration.
The schema is described with Pydantic; option names are snake_case and the
camelCase spellings used in configuration files are accepted as aliases.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from access_scout.errors import ConfigValidationFailure

KNOWN_MODULES: Tuple[str, ...] = (
    "rule-engine",
    "meta",
    "headings",
    "landmarks",
    "images",
    "links",
    "forms",
    "contrast",
    "keyboard",
    "skiplinks",
)

DEFAULT_MODULES: Tuple[str, ...] = (
    "meta",
    "headings",
    "landmarks",
    "images",
    "links",
    "forms",
    "contrast",
    "keyboard",
    "skiplinks",
)

DEFAULT_DOWNLOAD_TYPES: Tuple[str, ...] = (
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "odt", "ods", "odp", "csv", "txt", "zip",
)


class _Section(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class DownloadsConfig(_Section):
    enabled: bool = True
    types: List[str] = Field(default_factory=lambda: list(DEFAULT_DOWNLOAD_TYPES))
    max_bytes: int = Field(15 * 1024 * 1024, gt=0, description="Documents above this size are skipped.")
    max_count: int = Field(25, ge=0, description="Upper bound of documents probed per crawl.")

    @field_validator("types", mode="before")
    def _lower_types(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [str(t).lower().lstrip(".") for t in v]
        return v


class KeyboardOptions(_Section):
    max_tabs: int = Field(50, ge=1)
    step_delay_ms: int = Field(100, ge=0)
    min_area_ratio: float = Field(0.02, ge=0)
    min_contrast: float = Field(3.0, ge=1)
    screenshots: bool = False


class LinksOptions(_Section):
    compare_query: bool = False
    weak_texts: List[str] = Field(
        default_factory=lambda: [
            "hier", "mehr", "weiter", "click here", "here", "more",
            "learn more", "read more", "weiterlesen", "details", "link",
        ]
    )
    divergence_threshold: float = Field(0.3, ge=0, le=1)


class SkipLinksOptions(_Section):
    threshold: int = Field(3, ge=1, description="Max tab step at which a skip link is still 'early'.")


class ContrastOptions(_Section):
    max_runs: int = Field(2000, ge=1)


class MetaOptions(_Section):
    min_title_length: int = Field(10, ge=0)
    content_heuristics: bool = Field(False, description="Compare lang with the dominant language of the content.")


class RuleEngineOptions(_Section):
    script_path: Optional[Path] = None


class CrawlConfig(_Section):
    """Configuration of a single audit run."""

    start_url: HttpUrl = Field(..., description="Seed URL of the crawl.")
    scope: Literal["same-origin", "same-site", "domain-allowlist"] = "same-origin"
    allowed_domains: List[str] = Field(default_factory=list)
    respect_robots: Literal["respect", "audit", "ignore"] = "respect"
    simulate_disallowed: bool = Field(True, description="Audit mode: load disallowed pages without analysis.")
    seed_sitemap: bool = False
    sitemap_url: Optional[str] = None
    max_pages: int = Field(50, ge=1, description="Hard limit of visited pages.")
    max_depth: int = Field(3, ge=0, description="Maximum link depth from the seed.")
    rate_limit_delay_ms: Tuple[int, int] = (250, 750)
    navigation_timeout_ms: int = Field(45_000, gt=0)
    wait_until: Literal["load", "domcontentloaded", "networkidle"] = "networkidle"
    settle_delay_ms: int = Field(600, ge=0)
    wait_for_selector: Optional[str] = None
    check_iframes: bool = False
    consent_click: Literal["auto", "custom", "off"] = "off"
    consent_selector: Optional[str] = None
    keep_query: bool = True
    user_agent: str = Field("AccessScoutBot/0.3", min_length=1)
    headless: bool = True
    http_timeout: float = Field(10.0, gt=0, description="Timeout for robots/sitemap/HEAD requests (seconds).")

    downloads: DownloadsConfig = Field(default_factory=DownloadsConfig)
    modules: List[str] = Field(default_factory=lambda: list(DEFAULT_MODULES))
    keyboard: KeyboardOptions = Field(default_factory=KeyboardOptions)
    links: LinksOptions = Field(default_factory=LinksOptions)
    skiplinks: SkipLinksOptions = Field(default_factory=SkipLinksOptions)
    contrast: ContrastOptions = Field(default_factory=ContrastOptions)
    meta: MetaOptions = Field(default_factory=MetaOptions)
    rule_engine: RuleEngineOptions = Field(default_factory=RuleEngineOptions)

    scoring: Literal["penalty", "delta"] = "penalty"
    norms_table: Optional[Path] = None
    output_dir: Path = Path("out")

    @field_validator("allowed_domains", mode="before")
    def _lower_domains(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [str(d).lower().strip().lstrip(".") for d in v]
        return v

    @field_validator("modules")
    def _known_modules(cls, v: List[str]) -> List[str]:
        unknown = [m for m in v if m not in KNOWN_MODULES]
        if unknown:
            raise ValueError(f"unknown module(s): {', '.join(unknown)}")
        return v

    @field_validator("rate_limit_delay_ms")
    def _ordered_delay(cls, v: Tuple[int, int]) -> Tuple[int, int]:
        low, high = v
        if low < 0 or high < low:
            raise ValueError("rate_limit_delay_ms must be [min, max] with 0 <= min <= max")
        return v

    @model_validator(mode="after")
    def _check_dependent_options(self) -> CrawlConfig:
        if self.scope == "domain-allowlist" and not self.allowed_domains:
            raise ValueError("scope 'domain-allowlist' requires allowed_domains")
        if self.consent_click == "custom" and not self.consent_selector:
            raise ValueError("consent_click 'custom' requires consent_selector")
        return self

    @property
    def start(self) -> str:
        return str(self.start_url)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigValidationFailure(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigValidationFailure(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ConfigValidationFailure(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigValidationFailure(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def build_config(data: Dict[str, Any]) -> CrawlConfig:
    """Validate a raw mapping, converting pydantic errors into ConfigValidationFailure."""
    try:
        return CrawlConfig(**data)
    except ValidationError as exc:
        raise ConfigValidationFailure(f"Invalid configuration: {exc}") from exc


def load_config(path: Union[str, Path, None], **overrides: Any) -> CrawlConfig:
    """
    Read YAML or JSON and return a validated CrawlConfig.
    Keyword *overrides* win over values from the file.
    Raises FileNotFoundError when the file does not exist.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ConfigValidationFailure(f"Unsupported config format: {suffix}")

    for key, value in overrides.items():
        if value is None:
            continue
        data.pop(to_camel(key), None)
        data[key] = value
    return build_config(data)
