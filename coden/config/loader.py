"""Locate, read and validate ``coden.yaml``."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import CodenConfig

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


def config_search_paths(cli_path: str | None = None) -> list[Path]:
    """Candidate config files, highest precedence first."""
    paths = [Path(cli_path)] if cli_path else []
    paths.append(Path("coden.yaml"))
    paths.append(Path.home() / ".coden" / "config.yaml")
    return paths


def load_config(cli_path: str | None = None) -> CodenConfig:
    """First existing, non-empty file wins: CLI path, ./coden.yaml, ~/.coden/config.yaml.

    Falls back to defaults. Raises ValueError naming the file on bad YAML
    or on values the schema rejects.
    """
    for path in config_search_paths(cli_path):
        if not path.is_file():
            continue
        raw = _read_yaml(path)
        if raw is None:
            continue
        try:
            return CodenConfig.model_validate(_expand_env_vars(raw))
        except ValidationError as exc:
            raise ValueError(f"Invalid config in {path}: {exc}") from exc
    return CodenConfig()


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc


def _expand_env_vars(value: Any) -> Any:
    """Substitute ${VAR} in every string; unset variables become empty."""
    if isinstance(value, dict):
        return {key: _expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    return value


# Default YAML template for `coden config init`
DEFAULT_CONFIG_TEMPLATE = """\
# coden.yaml

# Fingerprinting
fingerprint:
  importance:
    class: 0.9
    function: 0.8
    variable: 0.6
    import: 0.5
  min_identifier_length: 3
  min_call_name_length: 3

# Existence evaluation
evaluator:
  structural_weight: 0.5
  identifier_weight: 0.3
  pattern_weight: 0.2
  base_threshold: 0.3
  single_line_threshold: 0.5
  large_block_threshold: 0.2

# Multi-method tracking
tracker:
  short_statement_chars: 30
  token_overlap_threshold: 0.6
  deletion_bar: 0.5
  import_deletion_bar: 0.7

# Region ledger
ledger:
  fast_delete_window_seconds: 10
  validation_interval_seconds: 30

# Persisted logs (relative to the workspace root)
storage:
  base_dir: ".coden"
  suggestion_log: "suggestions.json"
  modification_log: "modifications.json"

# Editor / watcher integration
integration:
  auto_detect: true
  recently_opened_seconds: 1.0
  debounce_seconds: 2.0
  # ignore_patterns: [.git, node_modules, __pycache__, .venv, build, dist, .coden]

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
