"""
.env loading.

Loading order (later files override earlier):
1. ``.env`` (base configuration, never overrides the real environment)
2. ``.env.{STRIX_ENV}`` (environment-specific, overrides)

Files are read from the current working directory, once per process.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from ..constants import DEFAULT_ENV, ENV_VAR


logger = logging.getLogger("strix.config")

_env_loaded = False


def load_env_files(directory: Optional[Union[str, Path]] = None) -> None:
    """
    Load ``.env`` files into ``os.environ``.

    Called at the start of ``Strix.create`` and by config providers, so
    values are available before any provider is constructed. Later calls
    are no-ops until ``reset_env_loaded``.
    """
    global _env_loaded
    if _env_loaded:
        return

    base_dir = Path(directory) if directory is not None else Path.cwd()
    env = os.environ.get(ENV_VAR) or DEFAULT_ENV

    base_path = base_dir / ".env"
    if base_path.is_file():
        load_dotenv(base_path, override=False)
        logger.debug("Loaded %s", base_path)

    env_path = base_dir / f".env.{env}"
    if env_path.is_file():
        load_dotenv(env_path, override=True)
        logger.debug("Loaded %s", env_path)

    _env_loaded = True


def is_env_loaded() -> bool:
    return _env_loaded


def reset_env_loaded() -> None:
    """Allow the next ``load_env_files`` call to read the files again (tests)."""
    global _env_loaded
    _env_loaded = False
