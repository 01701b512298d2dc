"""Report configuration files and loaders.

Constants such as default thresholds, period names and the status display
table are stored in JSON so they can be changed without code changes.
"""

from .defaults import load_config, get_budget_value

__all__ = ['load_config', 'get_budget_value']
