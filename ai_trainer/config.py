"""
Configuration loading for the AI trainer pipeline.
"""

import copy
import os

import yaml


DEFAULT_CONFIG = {
    "provider": "openai",
    "claude": {
        "model": "claude-sonnet-4-20250514",
        "api_key_env": "CLAUDE_API_KEY",
        "max_tokens": 4096,
        "selection_max_tokens": 512,
        "timeout": 60,
    },
    "openai": {
        "model": "gpt-4o-mini",
        "api_key_env": "OPENAI_API_KEY",
        "max_tokens": 4096,
        "selection_max_tokens": 512,
        "timeout": 60,
    },
    "quota": {
        "daily_limit": 10,
        "db_path": "data/ai_trainer_usage.db",
    },
    "generation": {
        "recent_workouts_limit": 5,
        "muscle_selection": True,
    },
}


def _merge(base, override):
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path="config.yaml"):
    """
    Load configuration from a YAML file, merged over the built-in defaults.

    A missing file is not an error: the defaults are returned so the pipeline
    can run in tests and from the CLI without a config file.
    """
    if not config_path or not os.path.exists(config_path):
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, "r") as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ValueError(f"{config_path} must contain a YAML mapping")

    return _merge(DEFAULT_CONFIG, loaded)


def provider_settings(config, provider=None):
    """Return the settings block for the active LM provider."""
    name = (provider or config.get("provider") or "openai").strip().lower()
    if name not in ("claude", "openai"):
        raise ValueError(f"Unknown LM provider: {name}")
    return name, config.get(name, {}) or {}
