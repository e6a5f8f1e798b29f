"""Load configuration from YAML with env var substitution."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _load_dotenv(path: str | Path = ".env") -> None:
    """Load a .env file into os.environ (without overwriting existing vars)."""
    env_path = Path(path)
    if not env_path.is_file():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip("'\"")
            if key and key not in os.environ:
                os.environ[key] = value


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} patterns in config values."""
    if isinstance(value, str):
        match = _ENV_PATTERN.search(value)
        if not match:
            return value
        # A value that is exactly one reference keeps the raw env value
        if match.group(0) == value:
            return os.environ.get(match.group(1), "")
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(path: str | Path = "config.yaml") -> dict[str, Any]:
    """Load config from YAML file and resolve environment variables."""
    _load_dotenv()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return _resolve_env_vars(raw)


def get_db_path(config: dict) -> str:
    """Get database path from config."""
    return config.get("database", {}).get("path", "data/curator.db")


def get_fetch_config(config: dict) -> dict:
    """Transport and limit settings for the article fetch job."""
    cfg = config.get("fetch", {})
    return {
        "default_max_articles": cfg.get("default_max_articles"),
        "timeout": cfg.get("timeout", 30),
        "max_retries": cfg.get("max_retries", 2),
        "user_agent": cfg.get(
            "user_agent", "Mozilla/5.0 (compatible; Article Fetcher Bot)",
        ),
    }


def get_html_site_overrides(config: dict) -> list[dict]:
    """Extra HTML scraping site entries declared in config."""
    return config.get("fetch", {}).get("html_sites", []) or []


def get_categorize_config(config: dict) -> dict:
    cfg = config.get("categorize", {})
    return {
        "article_count": cfg.get("article_count", 10),
        "temperature": cfg.get("temperature", 0.1),
        "max_tokens": cfg.get("max_tokens", 4000),
    }


def get_llm_task_config(config: dict, task: str) -> dict:
    """Get provider name and model for a given LLM task."""
    tasks = config.get("llm", {}).get("tasks", {})
    task_cfg = tasks.get(task, {})
    provider_name = task_cfg.get("provider", "openai")
    model_override = task_cfg.get("model")

    providers = config.get("llm", {}).get("providers", {})
    provider_cfg = providers.get(provider_name, {})

    return {
        "provider_name": provider_name,
        "provider_type": provider_cfg.get("type", "openai_compatible"),
        "api_key": provider_cfg.get("api_key", ""),
        "base_url": provider_cfg.get("base_url", "https://api.openai.com/v1"),
        "model": model_override or provider_cfg.get("default_model", "gpt-4o-mini"),
        "max_retries": provider_cfg.get("max_retries", 3),
        "timeout": provider_cfg.get("timeout", 120),
        "json_mode": bool(provider_cfg.get("json_mode", False)),
    }
