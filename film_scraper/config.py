"""YAML config loader."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class DownloadConfig:
    timeout: int = 30
    max_retries: int = 3
    backoff_factor: float = 1.0
    default_rate_limit: float = 0.5
    user_agent: str = "FilmScraper/1.0 (Educational; polite crawl)"


@dataclass
class RuleConfig:
    kind: str = "infobox"
    selector: str = ""
    # infobox: list of row labels to keep; fields: mapping of name -> sub-selector
    fields: Any = None
    anchor_fields: List[str] = field(default_factory=list)
    converters: Dict[str, str] = field(default_factory=dict)
    # infobox: row label -> field name, so label variants share one field
    aliases: Dict[str, str] = field(default_factory=dict)


@dataclass
class SourceConfig:
    enabled: bool = True
    rate_limit: float = 0.5
    base_url: str = ""
    description: str = ""
    rule: Optional[RuleConfig] = None


@dataclass
class AppConfig:
    db_path: str = "films.db"
    log_dir: str = "logs"
    log_level: str = "INFO"
    download: DownloadConfig = field(default_factory=DownloadConfig)
    sources: Dict[str, SourceConfig] = field(default_factory=dict)


def _pick(cls, raw: Optional[dict]) -> dict:
    return {k: v for k, v in (raw or {}).items() if k in cls.__dataclass_fields__}


def load_config(config_path: str = "config.yaml") -> AppConfig:
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    download = DownloadConfig(**_pick(DownloadConfig, raw.get("download")))

    sources = {}
    for name, src_raw in (raw.get("sources") or {}).items():
        src_raw = src_raw or {}
        rule_raw = src_raw.get("rule")
        src_kwargs = _pick(SourceConfig, src_raw)
        src_kwargs["rule"] = RuleConfig(**_pick(RuleConfig, rule_raw)) if rule_raw else None
        sources[name] = SourceConfig(**src_kwargs)

    return AppConfig(
        db_path=raw.get("db_path", "films.db"),
        log_dir=raw.get("log_dir", "logs"),
        log_level=raw.get("log_level", "INFO"),
        download=download,
        sources=sources,
    )
