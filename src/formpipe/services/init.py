"""InitService: create a form store and its starter ``formpipe.toml``."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from formpipe.config.discovery import CONFIG_FILENAME
from formpipe.infrastructure.database.engine import DB_DIRNAME, DB_FILENAME, init_database
from formpipe.services.result import ServiceError, ServiceResult

logger = logging.getLogger(__name__)

_STARTER_CONFIG = """\
# formpipe configuration. Every key is optional; defaults are built in.

[store]
# poll_interval = 2.0

[schedulers]
# trampoline = false
# max_workers = 4

[dates]
# database_format = "%Y-%m-%d"
# ui_format = "%d/%m/%Y"

[plugins]
# enabled = true

[pipeline]
# report_errors = true
# render_timeout = 10.0
"""


class InitService:
    """Store initialization."""

    @staticmethod
    def init_store(path: Path, *, write_config: bool = True) -> ServiceResult:
        """Create ``.formpipe/forms.db`` under *path* (idempotent).

        Writes a commented ``formpipe.toml`` when none exists and
        *write_config* is set.
        """
        op = "init_store"
        files_created: list[str] = []
        try:
            path.mkdir(parents=True, exist_ok=True)
            db_path = path / DB_DIRNAME / DB_FILENAME
            existed = db_path.exists()
            engine = init_database(path)
            engine.dispose()
            if not existed:
                files_created.append(str(db_path))

            config_path = path / CONFIG_FILENAME
            if write_config and not config_path.exists():
                config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
                files_created.append(str(config_path))
        except (OSError, SQLAlchemyError) as exc:
            logger.debug("Store init failed", exc_info=True)
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(
                    code="INIT_FAILED", message=str(exc), detail={"path": str(path)}
                ),
            )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "store_root": str(path),
                "db_path": str(db_path),
                "config_path": str(config_path) if config_path.exists() else None,
                "files_created": files_created,
            },
        )
