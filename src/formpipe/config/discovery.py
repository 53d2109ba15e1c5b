"""Locate the form store and the config file that goes with it.

A store lives in the nearest directory, walking up from the working
directory the way git finds ``.git/``, that holds ``formpipe.toml`` or an
initialized ``.formpipe/`` store. ``FORMPIPE_CONFIG`` and ``--config`` name
the config file directly; ``--store`` pins the root.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel

from formpipe.infrastructure.database.engine import DB_DIRNAME, DB_FILENAME

CONFIG_FILENAME = "formpipe.toml"
CONFIG_ENV_VAR = "FORMPIPE_CONFIG"


class StoreLocation(BaseModel):
    """Where a form store lives and which config file applies to it."""

    model_config = {"frozen": True}

    root: Path
    config_path: Path | None = None

    @property
    def db_path(self) -> Path:
        return self.root / DB_DIRNAME / DB_FILENAME

    @property
    def initialized(self) -> bool:
        return self.db_path.is_file()


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for formpipe.toml.

    ``FORMPIPE_CONFIG`` is checked first; if it names a missing file the
    result is None.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    for directory in _ancestors(start):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def locate_store(
    *,
    store_root: Path | None = None,
    config_path: Path | None = None,
    cwd: Path | None = None,
) -> StoreLocation:
    """Resolve the store root and config file for one invocation.

    * *config_path* is used as given (None when the file is missing); the
      root is *store_root*, else the config's directory, else *cwd*.
    * *store_root* alone pins the root; its config is found by walk-up.
    * ``FORMPIPE_CONFIG`` places the root beside the file it names.
    * Otherwise the nearest ancestor of *cwd* holding ``formpipe.toml`` or
      ``.formpipe/`` is the root, and *cwd* itself when there is none.
    """
    if config_path is not None:
        toml = config_path if config_path.is_file() else None
        root = store_root or (toml.parent if toml else (cwd or Path.cwd()))
        return StoreLocation(root=root, config_path=toml)

    if store_root is not None:
        return StoreLocation(root=store_root, config_path=find_config(store_root))

    if os.environ.get(CONFIG_ENV_VAR):
        toml = find_config(cwd)
        return StoreLocation(root=toml.parent if toml else (cwd or Path.cwd()), config_path=toml)

    for directory in _ancestors(cwd):
        toml = directory / CONFIG_FILENAME
        if toml.is_file():
            return StoreLocation(root=directory, config_path=toml)
        if (directory / DB_DIRNAME).is_dir():
            return StoreLocation(root=directory)
    return StoreLocation(root=cwd or Path.cwd())


def _ancestors(start: Path | None) -> list[Path]:
    current = (start or Path.cwd()).resolve()
    return [current, *current.parents]
