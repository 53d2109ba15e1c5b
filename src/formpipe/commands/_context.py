"""AppContext: shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. Opens the store lazily and centralizes result
emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import click

from formpipe.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from formpipe.config.settings import FormpipeSettings
    from formpipe.infrastructure.store import FormStore
    from formpipe.plugins.event_bus import EventBus
    from formpipe.services.form import FormService
    from formpipe.services.result import ServiceResult

logger = logging.getLogger(__name__)


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The store is opened on first use, so ``--help`` and ``--version`` never
    touch the database.
    """

    def __init__(self, settings: FormpipeSettings) -> None:
        self.settings = settings
        self._store: FormStore | None = None
        self._event_bus: EventBus | None = None

        from formpipe.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> FormStore:
        """The form store (opened lazily on first access)."""
        if self._store is None:
            from formpipe.infrastructure.store import FormStore

            self._store = FormStore.from_settings(self.settings)
        return self._store

    @property
    def event_bus(self) -> EventBus | None:
        """Plugin event bus, or None when plugins are disabled."""
        if self._event_bus is None and self.settings.plugins.enabled:
            from formpipe.plugins.event_bus import EventBus
            from formpipe.plugins.manager import PluginManager

            pm = PluginManager()
            pm.discover()
            self._event_bus = EventBus(
                self.store.engine,
                pm,
                sync=self.settings.sync or self.settings.plugins.sync_dispatch,
            )
        return self._event_bus

    def form_service(self) -> FormService:
        from formpipe.services.form import FormService

        return FormService(self.store, settings=self.settings, event_bus=self.event_bus)

    def close(self) -> None:
        """Flush plugin dispatch and release the store."""
        if self._event_bus is not None:
            self._event_bus.shutdown()
            self._event_bus = None
        if self._store is not None:
            self._store.close()
            self._store = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: stdout; warnings go to stderr outside JSON mode.
        * Failure: stderr, exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
