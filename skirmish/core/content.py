import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

from catchery import log_warning
from pydantic import BaseModel, Field

from .utils import cprint


class Encounter(BaseModel):
    """The raw records and story context of a combat encounter."""

    party: list[dict[str, Any]] = Field(default_factory=list)
    adversaries: list[dict[str, Any]] = Field(default_factory=list)
    story_context: str = ""


class ContentRepository:
    """
    By-name registry of the combatant records and scenes found in a data
    directory.
    """

    party: dict[str, dict[str, Any]]
    adversaries: dict[str, dict[str, Any]]
    scenes: dict[str, str]

    def __init__(self, data_dir: Path) -> None:
        """
        Initialize the ContentRepository.

        Args:
            data_dir (Path):
                The directory containing data files to load.

        """
        self.reload(data_dir)

    def reload(self, root: Path) -> None:
        """
        (Re)load all JSON assets from disk.

        Args:
            root (Path):
                The directory containing data files to load.
        """
        self.party = _load_json_file(
            root / "party.json",
            self._load_records,
            "party members",
        )
        self.adversaries = _load_json_file(
            root / "adversaries.json",
            self._load_records,
            "adversaries",
        )
        # Scenes are optional.
        scenes_file = root / "scenes.json"
        self.scenes = (
            _load_json_file(scenes_file, self._load_scenes, "scenes")
            if scenes_file.exists()
            else {}
        )

    def get_scene(self, name: str) -> Optional[str]:
        """Get the story context of a scene, or None if not found."""
        scene = self.scenes.get(name)
        if scene is None:
            log_warning(
                f"Scene '{name}' not found in ContentRepository.",
                {"scene": name, "available": list(self.scenes)},
            )
        return scene

    def build_encounter(
        self,
        scene: Optional[str] = None,
        party: Optional[list[str]] = None,
        adversaries: Optional[list[str]] = None,
    ) -> Encounter:
        """
        Assembles an encounter from the loaded records.

        Args:
            scene (Optional[str]): Name of the scene providing the story context.
            party (Optional[list[str]]): Names of the party members, all by default.
            adversaries (Optional[list[str]]): Names of the adversaries, all by default.

        Returns:
            Encounter: Copies of the selected records.

        """
        return Encounter(
            party=self._select(self.party, party, "party member"),
            adversaries=self._select(self.adversaries, adversaries, "adversary"),
            story_context=(self.get_scene(scene) or "") if scene else "",
        )

    @staticmethod
    def _select(
        collection: dict[str, dict[str, Any]],
        names: Optional[list[str]],
        description: str,
    ) -> list[dict[str, Any]]:
        if names is None:
            return [dict(record) for record in collection.values()]
        selected: list[dict[str, Any]] = []
        for name in names:
            record = collection.get(name)
            if record is None:
                log_warning(
                    f"Unknown {description} '{name}', skipping.",
                    {"name": name, "available": list(collection)},
                )
                continue
            selected.append(dict(record))
        return selected

    @staticmethod
    def _load_records(data: list[dict]) -> dict[str, dict[str, Any]]:
        """Load combatant records, keyed by name."""
        records: dict[str, dict[str, Any]] = {}
        for index, entry in enumerate(data):
            if not isinstance(entry, dict):
                log_warning(
                    f"Skipping record {index}: expected an object, got {type(entry).__name__}",
                    {"index": index},
                )
                continue
            name = str(entry.get("name") or f"record_{index}")
            records[name] = entry
        return records

    @staticmethod
    def _load_scenes(data: list[dict]) -> dict[str, str]:
        """Load scenes as a name to story context mapping."""
        scenes: dict[str, str] = {}
        for entry in data:
            if isinstance(entry, dict) and entry.get("name"):
                scenes[str(entry["name"])] = str(entry.get("story_context", ""))
        return scenes


def _load_json_file(
    filepath: Path,
    loader_func: Callable[[list[dict]], dict[str, Any]],
    description: str,
) -> dict[str, Any]:
    """Helper to load and validate JSON files"""
    try:
        cprint(
            f"  Loading {description} using {loader_func.__name__}...",
            style="bold green",
        )
        # Validate file path
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")
        if not filepath.is_file():
            raise ValueError(f"Not a file: {filepath}")
        # Load and validate JSON
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
        if not data:
            raise ValueError(f"Empty data list in {filepath}")
        if not isinstance(data, list):
            raise ValueError(f"Expected list in {filepath}, got {type(data).__name__}")
        return loader_func(data)
    except (json.JSONDecodeError, FileNotFoundError, ValueError) as e:
        raise ValueError(f"File {filepath} raised an error: {e}")
