"""Plugin registry for pipeline event hooks.

Plugins come from the ``formpipe.plugins`` entry point group or are
registered directly. An entry point names a module or a plugin instance.
"""

from __future__ import annotations

import logging

import pluggy

from formpipe.plugins.hookspecs import FormpipeHookSpec

PROJECT_NAME = "formpipe"
ENTRY_POINT_GROUP = "formpipe.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Holds the registered plugins and answers which of them implement a hook."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(FormpipeHookSpec)

    def discover(self) -> list[str]:
        """Load entry-point plugins. Returns the names of all registered plugins."""
        count = self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        logger.debug("Loaded %d entry-point plugin(s)", count)
        return self.names()

    def register(self, plugin: object, name: str | None = None) -> str:
        resolved = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved)
        logger.debug("Registered plugin: %s", resolved)
        return resolved

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def implementers(self, hook_name: str) -> list[str]:
        """Names of the plugins implementing *hook_name* (empty for unknown hooks)."""
        caller = getattr(self._pm.hook, hook_name, None)
        if caller is None:
            return []
        return [impl.plugin_name for impl in caller.get_hookimpls()]
