"""Simple .env file manager for persisting edited settings."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from dotenv import dotenv_values, set_key


def env_file_path() -> Path:
    """The .env file Settings reads from (relative to the working directory)."""

    return Path.cwd() / ".env"


def read_env_file(path: Optional[Path] = None) -> MutableMapping[str, str]:
    """Return key/value pairs from the .env file (order preserved)."""

    target = path or env_file_path()
    if not target.exists():
        return {}
    return {k: v for k, v in dotenv_values(target).items() if v is not None}


def write_env_file(data: Mapping[str, str], path: Optional[Path] = None) -> Path:
    """Merge the given key/value pairs into the .env file, keeping unrelated keys."""

    target = path or env_file_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.touch(exist_ok=True)
    for key, value in data.items():
        if not key:
            continue
        set_key(target, key, value, quote_mode="always")
    return target
