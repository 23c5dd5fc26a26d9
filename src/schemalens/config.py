from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from .errors import ConfigError


DEFAULT_CONFIG_FILE = "schemalens.yml"


@dataclass
class RuntimeConfig:
    default_schema: Optional[str] = "dbo"
    catalog: Optional[str] = None
    sql_dir: str = "sql"
    out_dir: str = "build/schemalens"
    include: List[str] = field(default_factory=lambda: ["*.sql"])
    exclude: List[str] = field(default_factory=list)
    log_level: str = "info"
    output_format: str = "text"


def load_config(path: Optional[Path]) -> RuntimeConfig:
    cfg = RuntimeConfig()
    if path is None:
        # Try working directory default
        default = Path(DEFAULT_CONFIG_FILE)
        if default.exists():
            path = default
    if path and Path(path).exists():
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping")
        for k, v in data.items():
            if hasattr(cfg, k):
                setattr(cfg, k, v)
    return cfg
