"""Utility modules for the facegen patcher."""

from facegen_patcher.utils.lists import ConfigurationLists, load_list, parse_parts

__all__ = [
    "ConfigurationLists",
    "load_list",
    "parse_parts",
]
