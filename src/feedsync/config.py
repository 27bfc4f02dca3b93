"""feedsync configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (FEEDSYNC_DB, FEEDSYNC_GENERATION_MODEL, FEEDSYNC_LOG_LEVEL)
  3. Per-project feedsync.yaml  (current working directory)
  4. Global ~/.feedsync/config.yaml  (defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from feedsync.errors import FeedSyncError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".feedsync"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "feedsync.yaml"

# Fields that suggest a credential are forbidden in global config.
# Does NOT match legitimate keys like max_tokens or visibility_timeout.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # access_token, session_token (suffix)
    r"|^token$"
    r"|_secret$"                 # client_secret, aws_secret (suffix)
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["store", "enrichment", "dead_letter", "redrive", "logging"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(FeedSyncError, ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StoreCfg:
    """Unified store location (feedsync.yaml: store:)."""

    path: str = ".feedsync.db"


@dataclass
class EnrichmentCfg:
    """Generation backend and retry budget (feedsync.yaml: enrichment:).

    Attributes:
        enabled: Run enrichment in the sync path at all.
        model: LiteLLM model string in 'provider/model' format.
        max_tokens: Output token limit per generation call.
        temperature: Sampling temperature.
        timeout: Per-call timeout in seconds.
        max_attempts: Generation calls per record before dead-lettering.
        parse_backoff: Linear step (seconds) after an unparseable response.
        backend_backoff: Exponential base (seconds) after a backend failure.
        backoff_cap: Upper bound for any single backoff delay.
    """

    enabled: bool = True
    model: str = "bedrock/anthropic.claude-3-haiku-20240307-v1:0"
    max_tokens: int = 300
    temperature: float = 0.0
    timeout: float = 30.0
    max_attempts: int = 3
    parse_backoff: float = 0.5
    backend_backoff: float = 1.0
    backoff_cap: float = 8.0


@dataclass
class DeadLetterCfg:
    """Dead-letter queue settings (feedsync.yaml: dead_letter:)."""

    queue: str = "enrichment-dlq"
    visibility_timeout: int = 60


@dataclass
class RedriveCfg:
    """Redrive job settings (feedsync.yaml: redrive:)."""

    batch_size: int = 10
    max_retry: int = 3


@dataclass
class LoggingCfg:
    """Log output settings (feedsync.yaml: logging:)."""

    level: str = "INFO"
    json: bool = True


@dataclass
class FeedSyncConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    store: StoreCfg = field(default_factory=StoreCfg)
    enrichment: EnrichmentCfg = field(default_factory=EnrichmentCfg)
    dead_letter: DeadLetterCfg = field(default_factory=DeadLetterCfg)
    redrive: RedriveCfg = field(default_factory=RedriveCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: FeedSyncConfig) -> None:
    e = cfg.enrichment
    if e.max_attempts < 1:
        raise ConfigError(
            f"enrichment.max_attempts must be >= 1, got {e.max_attempts}."
        )
    for name in ("parse_backoff", "backend_backoff", "backoff_cap", "timeout"):
        if getattr(e, name) < 0:
            raise ConfigError(f"enrichment.{name} must not be negative.")
    if not 1 <= cfg.redrive.batch_size <= 100:
        raise ConfigError(
            f"redrive.batch_size must be between 1 and 100, got {cfg.redrive.batch_size}."
        )
    if cfg.redrive.max_retry < 0:
        raise ConfigError("redrive.max_retry must not be negative.")
    if cfg.dead_letter.visibility_timeout < 0:
        raise ConfigError("dead_letter.visibility_timeout must not be negative.")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _cfg_from_dict(data: dict[str, Any]) -> FeedSyncConfig:
    """Build a *FeedSyncConfig* from a merged raw YAML dict."""
    cfg = FeedSyncConfig()

    if "store" in data:
        s = data["store"] or {}
        cfg.store = StoreCfg(path=str(s.get("path", cfg.store.path)))

    if "enrichment" in data:
        e = data["enrichment"] or {}
        d = cfg.enrichment
        cfg.enrichment = EnrichmentCfg(
            enabled=_as_bool(e.get("enabled", d.enabled)),
            model=str(e.get("model", d.model)),
            max_tokens=int(e.get("max_tokens", d.max_tokens)),
            temperature=float(e.get("temperature", d.temperature)),
            timeout=float(e.get("timeout", d.timeout)),
            max_attempts=int(e.get("max_attempts", d.max_attempts)),
            parse_backoff=float(e.get("parse_backoff", d.parse_backoff)),
            backend_backoff=float(e.get("backend_backoff", d.backend_backoff)),
            backoff_cap=float(e.get("backoff_cap", d.backoff_cap)),
        )

    if "dead_letter" in data:
        q = data["dead_letter"] or {}
        cfg.dead_letter = DeadLetterCfg(
            queue=str(q.get("queue", cfg.dead_letter.queue)),
            visibility_timeout=int(
                q.get("visibility_timeout", cfg.dead_letter.visibility_timeout)
            ),
        )

    if "redrive" in data:
        r = data["redrive"] or {}
        cfg.redrive = RedriveCfg(
            batch_size=int(r.get("batch_size", cfg.redrive.batch_size)),
            max_retry=int(r.get("max_retry", cfg.redrive.max_retry)),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)).upper(),
            json=_as_bool(lg.get("json", cfg.logging.json)),
        )

    return cfg


def _apply_env_overrides(cfg: FeedSyncConfig) -> FeedSyncConfig:
    """Apply FEEDSYNC_* environment variable overrides."""
    if db := os.environ.get("FEEDSYNC_DB"):
        cfg.store.path = db
    if model := os.environ.get("FEEDSYNC_GENERATION_MODEL"):
        cfg.enrichment.model = model
    if level := os.environ.get("FEEDSYNC_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FeedSyncConfig:
    """Load and return a merged *FeedSyncConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *feedsync.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields or a value
            is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.feedsync/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# feedsync global configuration — defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "#   export AWS_PROFILE=...   (bedrock models)\n"
            "\n"
            "enrichment:\n"
            "  model: bedrock/anthropic.claude-3-haiku-20240307-v1:0\n"
            "  max_attempts: 3\n"
            "\n"
            "redrive:\n"
            "  batch_size: 10\n"
            "  max_retry: 3\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
