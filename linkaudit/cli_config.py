"""Configuration loading helpers for CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

LOCAL_ENV_FILES = (".env.local", ".env")


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
) -> Optional[Path]:
    """Load .env configuration with fallback to user config directory.

    Search order:
    1. .env.local, then .env, in the working directory
    2. the user config file (e.g. ~/.config/linkaudit/.env)

    If none exists and .env.example ships next to the package, it is copied
    to the user config file first. Returns the file that was loaded, if any.
    """
    for name in LOCAL_ENV_FILES:
        local_env = cwd / name
        if local_env.is_file():
            load_env(local_env)
            return local_env

    if config_env_file.is_file():
        load_env(config_env_file)
        return config_env_file

    package_dir = Path(__file__).parent.parent
    example_file = package_dir / ".env.example"

    if example_file.is_file():
        try:
            config_dir.mkdir(parents=True, exist_ok=True)
            copy_file(example_file, config_env_file)
            logging.info(
                "Created config file at %s from .env.example. "
                "Please edit it with your MONGODB_URI.",
                config_env_file,
            )
            load_env(config_env_file)
            return config_env_file
        except OSError as exc:
            logging.debug("Could not create %s: %s", config_env_file, exc)
    return None
