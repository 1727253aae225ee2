# -*- coding: utf-8 -*-
"""
Manages loading and accessing film look presets from the film_presets.json file.
"""

import json
import os

from core.datatypes import FilmLookParams, InvalidParameterError

DEFAULT_PRESETS_PATH = os.path.join(os.path.dirname(__file__), 'film_presets.json')


class FilmPresetsManager:
    """
    A manager class that loads, validates, and provides access to the named
    film looks stored in the film_presets.json file.
    """

    def __init__(self, json_path=None):
        """
        Initializes the manager, loading and parsing the preset data.

        Args:
            json_path (str): preset file to read. Defaults to the bundled film_presets.json.
        """
        self.json_path = json_path or DEFAULT_PRESETS_PATH
        self.presets = {}
        self.descriptions = {}
        self._load_presets()

    def _load_presets(self):
        """
        Loads the preset file and validates every entry into FilmLookParams.

        The final structure is:
        self.presets['night_bloom'] = FilmLookParams(...)
        """
        with open(self.json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        # The JSON has a top-level "film_presets" key
        for entry in data.get("film_presets", []):
            name = entry.get("name")
            if not name:
                continue
            try:
                self.presets[name] = FilmLookParams.from_dict(entry.get("params", {}))
            except InvalidParameterError as e:
                raise InvalidParameterError(f"Preset '{name}' in {self.json_path}: {e}")
            self.descriptions[name] = entry.get("description", "")

    def names(self):
        """Preset names, in file order."""
        return list(self.presets)

    def get(self, name):
        """
        Retrieves the parameters of a preset.

        Args:
            name (str): preset name (e.g., "night_bloom").

        Returns:
            FilmLookParams: the preset's parameters.

        Raises:
            KeyError: if there is no preset with that name.
        """
        try:
            return self.presets[name]
        except KeyError:
            raise KeyError(f"Unknown preset '{name}'. Available presets are: {self.names()}")
