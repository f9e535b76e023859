"""
Persistent user preferences.

Preferences live in one JSON object keyed by feature area (``speech``,
``screenReader``, ``visual``, ``modules``).  On load each stored area is
merged shallowly over the defaults for that area, so a partial file never
drops a setting.
"""
from __future__ import annotations

import json
import os
from typing import Any, Dict, Mapping

from .utils.logging_system import setup_log_system

logger = setup_log_system("preferences")

Preferences = Dict[str, Dict[str, Any]]


def merge_preferences(defaults: Mapping[str, Mapping[str, Any]], stored: Mapping[str, Any]) -> Preferences:
    """Shallow-merge ``stored`` over ``defaults`` area by area."""
    merged: Preferences = {area: dict(values) for area, values in defaults.items()}
    for area, values in stored.items():
        if not isinstance(values, Mapping):
            logger.warning(f"Ignoring malformed preference area '{area}'.")
            continue
        merged.setdefault(area, {}).update(values)
    return merged


class PreferenceStore:
    """JSON-file backed preference store."""

    def __init__(self, path: str, defaults: Mapping[str, Mapping[str, Any]]) -> None:
        self.path = path
        self.defaults = {area: dict(values) for area, values in defaults.items()}

    def _read(self) -> Dict[str, Any]:
        if not os.path.isfile(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read preferences from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Preference file {self.path} does not hold a JSON object.")
            return {}
        return data

    def load(self) -> Preferences:
        return merge_preferences(self.defaults, self._read())

    def save(self, area: str, values: Mapping[str, Any]) -> Preferences:
        """Store ``values`` for ``area`` (shallow update) and return the merged result."""
        stored = self._read()
        current = stored.get(area) if isinstance(stored.get(area), dict) else {}
        current.update(values)
        stored[area] = current
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(stored, fh, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)
        logger.debug(f"Saved preferences for area '{area}'.")
        return merge_preferences(self.defaults, stored)
