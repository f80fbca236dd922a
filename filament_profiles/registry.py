"""
ProfileRegistry: the repository's declarative list of managed profiles.
"""

import json
import logging
from pathlib import Path, PurePosixPath

from pydantic import ValidationError

from .matching import derive_materials
from .models import (
    ENTRIES_FILENAME,
    ManifestEntry,
    RegenerationReport,
    RegistryDocument,
    VendorEntry,
)
from .scanner import EntriesFileError, VendorDir, discover_vendor_dirs, read_entries_file

logger = logging.getLogger(__name__)


class RegistryNotFoundError(FileNotFoundError):
    """Raised when the registry file does not exist."""


class RegistryFormatError(ValueError):
    """Raised when the registry file is not a valid registry document."""


class ProfileRegistry:
    """
    Load, query and rebuild the registry file.

    Usage:
        registry = ProfileRegistry("registry.json")
        doc = registry.load()

        for printer, vendor, entry in registry.all_entries(doc):
            print(printer, vendor, entry.count)

        # Rebuild from the profile tree and write back
        doc, report = registry.regenerate_from_disk(Path("profiles"), doc)
        registry.save(doc)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> RegistryDocument:
        if not self.path.exists():
            raise RegistryNotFoundError(f"Registry file not found: {self.path}")
        try:
            return RegistryDocument.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
        except ValidationError as e:
            raise RegistryFormatError(f"{self.path}: {e}") from e

    def load_or_empty(self) -> RegistryDocument:
        """Load the registry, treating a missing file as an empty one."""
        try:
            return self.load()
        except RegistryNotFoundError:
            logger.warning("Registry %s does not exist yet, starting empty", self.path)
            return RegistryDocument()

    def save(self, document: RegistryDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.dumps(document), encoding="utf-8")

    @staticmethod
    def dumps(document: RegistryDocument) -> str:
        data = document.model_dump(mode="json")
        # Only an unset ``materials`` is omitted; hand-edited nulls stay.
        for vendors in data.values():
            for entry in vendors.values():
                if entry.get("materials") is None:
                    entry.pop("materials", None)
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    # --- Queries ---

    @staticmethod
    def all_entries(document: RegistryDocument) -> list[tuple[str, str, VendorEntry]]:
        return list(document.iter_entries())

    @staticmethod
    def entries_for_printer(
        document: RegistryDocument, printer: str
    ) -> list[tuple[str, VendorEntry]]:
        vendors = document.root.get(printer)
        if vendors is None:
            logger.warning("Printer '%s' not found in registry", printer)
            return []
        return list(vendors.items())

    @staticmethod
    def entries_for_vendor(
        document: RegistryDocument, printer: str, vendor: str
    ) -> VendorEntry | None:
        entry = document.root.get(printer, {}).get(vendor)
        if entry is None:
            logger.warning("Vendor '%s' not found for printer '%s' in registry", vendor, printer)
        return entry

    # --- Regeneration ---

    def regenerate_from_disk(
        self,
        profiles_root: Path,
        document: RegistryDocument | None = None,
    ) -> tuple[RegistryDocument, RegenerationReport]:
        """
        Rebuild registry entries from every vendor's entries file.

        - New (printer, vendor) pairs get an entry with derived patterns.
        - Existing entries only have ``count`` and ``profiles`` refreshed;
          description, patterns and materials stay as they are.
        - Vendor directories without an entries file are skipped and their
          existing registry entries are left alone. Nothing is ever removed.
        """
        doc = document.model_copy(deep=True) if document is not None else RegistryDocument()
        report = RegenerationReport()

        for vendor_dir in discover_vendor_dirs(profiles_root):
            key = f"{vendor_dir.printer}/{vendor_dir.vendor}"
            if not vendor_dir.has_entries():
                logger.warning("No %s in %s, skipping", ENTRIES_FILENAME, vendor_dir.path)
                report.skipped.append(key)
                continue

            try:
                entries = read_entries_file(vendor_dir.entries_file)
            except EntriesFileError as e:
                logger.warning("%s", e)
                report.errors[key] = str(e)
                continue

            names = [e.name for e in entries]
            vendors = doc.root.setdefault(vendor_dir.printer, {})
            existing = vendors.get(vendor_dir.vendor)
            if existing is None:
                vendors[vendor_dir.vendor] = self._new_entry(profiles_root, vendor_dir, entries)
                report.created.append(key)
                logger.info("Added %s (%d profiles)", key, len(names))
            else:
                existing.profiles = names
                existing.count = len(names)
                report.updated.append(key)
                logger.info("Updated %s (%d profiles)", key, len(names))

        return doc, report

    @staticmethod
    def _new_entry(
        profiles_root: Path, vendor_dir: VendorDir, entries: list[ManifestEntry]
    ) -> VendorEntry:
        printer, vendor = vendor_dir.printer, vendor_dir.vendor
        names = [e.name for e in entries]

        destination = f"filament/{vendor}"
        if entries:
            parent = PurePosixPath(entries[0].sub_path.replace("\\", "/")).parent
            if str(parent) != ".":
                destination = parent.as_posix()

        return VendorEntry(
            description=f"{vendor} filament profiles for Bambu Lab {printer}",
            count=len(names),
            entries_file=PurePosixPath(
                profiles_root.name, printer, vendor, ENTRIES_FILENAME
            ).as_posix(),
            materials=derive_materials(names) or None,
            name_pattern=f"*@BBL {printer}*",
            setting_id_pattern=f"*_{printer}*",
            destination_path=destination,
            profiles=names,
        )
