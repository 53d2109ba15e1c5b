"""Extension layer: plugin system via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints.
INVARIANT: Plugin failures are warnings, never errors.
"""

from formpipe.plugins.event_bus import EventBus
from formpipe.plugins.manager import PluginManager
from formpipe.plugins.reporter import PluginErrorReporter

__all__ = ["EventBus", "PluginErrorReporter", "PluginManager"]
