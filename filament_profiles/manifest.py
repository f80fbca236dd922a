"""
AppManifest: read/modify/write access to Bambu Studio's system/BBL.json.

Only ``filament_list`` is ever touched.  Every other top-level key, every
unknown key inside list items, and the order of untouched entries survive
a load/save cycle unchanged.
"""

from __future__ import annotations

import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from .models import FILAMENT_LIST_KEY, ManifestEntry
from .paths import AppPaths

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup-"


class ManifestNotFoundError(FileNotFoundError):
    """Raised when the application manifest does not exist."""


class ManifestFormatError(ValueError):
    """Raised when the application manifest cannot be parsed."""


class AppManifest:
    def __init__(self, paths: AppPaths, data: dict[str, Any]):
        self.paths = paths
        self.data = data
        if not isinstance(self.data.setdefault(FILAMENT_LIST_KEY, []), list):
            raise ManifestFormatError(
                f"{paths.manifest_path}: '{FILAMENT_LIST_KEY}' is not a list"
            )

    @classmethod
    def load(cls, paths: AppPaths) -> AppManifest:
        path = paths.manifest_path
        if not path.exists():
            raise ManifestNotFoundError(
                f"Application manifest not found: {path} (has Bambu Studio been run?)"
            )
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ManifestFormatError(f"{path}: invalid JSON ({e})") from e
        if not isinstance(data, dict):
            raise ManifestFormatError(f"{path}: expected a JSON object")
        return cls(paths, data)

    @property
    def path(self) -> Path:
        return self.paths.manifest_path

    @property
    def _items(self) -> list[Any]:
        return self.data[FILAMENT_LIST_KEY]

    @property
    def entries(self) -> list[ManifestEntry]:
        """Valid ``filament_list`` records, in manifest order."""
        result = []
        for item in self._items:
            try:
                result.append(ManifestEntry.model_validate(item))
            except ValidationError:
                logger.debug("Ignoring malformed filament_list item: %r", item)
        return result

    def names(self) -> set[str]:
        return {e.name for e in self.entries}

    def resolve(self, entry: ManifestEntry) -> Path:
        return self.paths.profiles_dir / entry.sub_path

    def exists(self, entry: ManifestEntry) -> bool:
        return self.resolve(entry).is_file()

    # --- Mutation ---

    def append(self, entry: ManifestEntry) -> bool:
        """Append *entry* unless its name is already listed. Returns True if added."""
        if entry.name in self.names():
            return False
        self._items.append(entry.model_dump())
        return True

    def remove_names(self, names: Iterable[str]) -> list[str]:
        """Drop every entry whose name is in *names*. Returns the removed names."""
        targets = set(names)
        kept: list[Any] = []
        removed: list[str] = []
        for item in self._items:
            name = item.get("name") if isinstance(item, dict) else None
            if name in targets:
                removed.append(name)
            else:
                kept.append(item)
        self.data[FILAMENT_LIST_KEY] = kept
        return removed

    def save(self) -> None:
        self.path.write_text(
            json.dumps(self.data, indent=4, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

    def backup(self, now: datetime | None = None) -> Path:
        """Copy the manifest to a timestamped file next to it. Never overwrites."""
        stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        target = self.path.with_name(f"{self.path.name}{BACKUP_SUFFIX}{stamp}")
        n = 1
        while target.exists():
            target = self.path.with_name(f"{self.path.name}{BACKUP_SUFFIX}{stamp}-{n}")
            n += 1
        shutil.copy2(self.path, target)
        logger.info("Backed up %s to %s", self.path, target)
        return target
