"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``formpipe.toml`` only carries
overrides. An empty file is a valid configuration.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from formpipe.domain.dates import DATABASE_DATE_FORMAT, UI_DATE_FORMAT


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    root: str | None = None  # relative paths resolve against the config dir
    poll_interval: float | None = None  # seconds; None = notifications only

    def resolve_root(self, base: Path) -> Path:
        if self.root is None:
            return base
        path = Path(self.root).expanduser()
        return path if path.is_absolute() else base / path


class SchedulerConfig(BaseModel):
    """[schedulers] section."""

    model_config = {"frozen": True}

    trampoline: bool = False
    max_workers: int = Field(default=4, ge=1)


class DatesConfig(BaseModel):
    """[dates] section."""

    model_config = {"frozen": True}

    database_format: str = DATABASE_DATE_FORMAT
    ui_format: str = UI_DATE_FORMAT


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    sync_dispatch: bool = False


class PipelineConfig(BaseModel):
    """[pipeline] section."""

    model_config = {"frozen": True}

    report_errors: bool = True
    render_timeout: float = Field(default=10.0, gt=0)

