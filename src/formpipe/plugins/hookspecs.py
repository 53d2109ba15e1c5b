"""Pluggy hook specifications for formpipe pipeline events.

Each hook receives the fields of one event from :mod:`formpipe.domain.events`.
``seq`` is the recheck signal the event belongs to.
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("formpipe")


class FormpipeHookSpec:
    """Hook specifications for the formpipe plugin system."""

    @hookspec
    def report_error(
        self,
        form_id: str | None,
        seq: int | None,
        error_type: str,
        message: str,
    ) -> None:
        """Called for every error on the pipeline's side error channel."""

    @hookspec
    def post_render(self, form_id: str, seq: int, section_uids: list[str]) -> None:
        """Called after a merged section list reached the sink."""

    @hookspec
    def post_recheck(self, form_id: str, seq: int, reason: str) -> None:
        """Called when a recheck signal restarts the merge."""
