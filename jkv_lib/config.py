"""Configuration for the jkv command line client.

Settings come from an optional YAML file; command line flags override them.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from jkv_lib.storage.file_backend import DEFAULT_DB
from jkv_lib.storage.redis_backend import DEFAULT_ADDR

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("jkv.yml")


@dataclass
class Config:
    data_dir: str = DEFAULT_DB
    backend: str = "file"
    redis_addr: str = DEFAULT_ADDR
    redis_password: str = ""
    redis_db: int = 0
    log_level: str = "WARNING"

    def storage_options(self) -> dict[str, Any]:
        """Keyword arguments for `jkv_lib.storage.create_storage`."""
        return {
            "data_dir": self.data_dir,
            "addr": self.redis_addr,
            "password": self.redis_password,
            "db": self.redis_db,
        }


def load_config(path: Optional[Path] = None) -> Config:
    """Load a Config from YAML at `path`.

    A missing file yields the defaults. A file that is not a YAML mapping
    raises ValueError. Unknown keys are ignored.
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        logger.debug("No config at %s; using defaults", cfg_path)
        return Config()
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"invalid config format in {cfg_path}: parse error") from e
    if not isinstance(data, dict):
        raise ValueError(f"invalid config format in {cfg_path}: expected mapping")

    known = {f.name for f in fields(Config)}
    for key in sorted(set(data) - known):
        logger.warning("Ignoring unknown config key %r in %s", key, cfg_path)
    values = {k: v for k, v in data.items() if k in known}
    if "redis_db" in values:
        try:
            values["redis_db"] = int(values["redis_db"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid config format in {cfg_path}: redis_db must be an integer") from e
    for key in known - {"redis_db"}:
        if key in values and values[key] is not None:
            values[key] = str(values[key])
    return replace(Config(), **{k: v for k, v in values.items() if v is not None})
