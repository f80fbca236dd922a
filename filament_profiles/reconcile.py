"""
Cross-reference the registry with the application manifest and the files
under the application's profile directory.
"""

import logging
from pathlib import Path

from .manifest import AppManifest
from .matching import filename_glob, is_custom_profile, is_declared_member, matches_pattern
from .metadata import read_setting_id
from .models import (
    InstalledProfile,
    OrphanedFile,
    PatternMatch,
    RegistryDocument,
    VendorEntry,
)

logger = logging.getLogger(__name__)


def select_entries(
    document: RegistryDocument,
    printer: str | None = None,
    vendor: str | None = None,
) -> list[tuple[str, str, VendorEntry]]:
    """
    Registry entries narrowed by an optional printer and/or vendor.

    Unknown printers or vendors yield an empty list; callers report them.
    """
    if printer is not None and printer not in document.root:
        logger.debug("Printer '%s' not found in registry", printer)
        return []

    selected = [
        (p, v, entry)
        for p, v, entry in document.iter_entries()
        if (printer is None or p == printer) and (vendor is None or v == vendor)
    ]
    if vendor is not None and not selected:
        where = f" for printer '{printer}'" if printer else ""
        logger.debug("Vendor '%s' not found%s in registry", vendor, where)
    return selected


def installed(
    document: RegistryDocument,
    manifest: AppManifest,
    printer: str | None = None,
    vendor: str | None = None,
) -> list[InstalledProfile]:
    """
    Registry-declared profiles that are present in the manifest.

    Walks the manifest in order and emits one record per (printer, vendor)
    pair whose ``profiles`` list contains the entry's name.  A name declared
    by two vendors therefore appears twice.
    """
    selected = select_entries(document, printer, vendor)
    if not selected:
        return []

    results: list[InstalledProfile] = []
    for entry in manifest.entries:
        for p, v, vendor_entry in selected:
            if not is_declared_member(entry.name, vendor_entry):
                continue
            path = manifest.resolve(entry)
            results.append(InstalledProfile(
                printer=p,
                vendor=v,
                profile_name=entry.name,
                resolved_file_path=path,
                exists=path.is_file(),
            ))
    return results


def orphaned_entries(records: list[InstalledProfile]) -> list[InstalledProfile]:
    """Manifest entries whose file is missing."""
    return [r for r in records if not r.exists]


def orphaned_files(
    document: RegistryDocument,
    manifest: AppManifest,
    printer: str | None = None,
    vendor: str | None = None,
) -> list[OrphanedFile]:
    """
    Files in a vendor's destination directory that no manifest entry points at.

    Only files whose name matches the vendor's filename glob are considered,
    so unrelated files sharing the directory are ignored.
    """
    referenced = {manifest.resolve(e) for e in manifest.entries}
    orphans: list[OrphanedFile] = []

    for p, v, vendor_entry in select_entries(document, printer, vendor):
        dest = manifest.paths.profiles_dir / vendor_entry.destination_path
        if not dest.is_dir():
            continue
        glob = filename_glob(vendor_entry)
        for path in sorted(dest.iterdir()):
            if not path.is_file() or not matches_pattern(path.name, glob):
                continue
            if path not in referenced:
                orphans.append(OrphanedFile(printer=p, vendor=v, path=path))

    return orphans


def unclaimed_matches(
    document: RegistryDocument, manifest: AppManifest
) -> list[PatternMatch]:
    """
    Manifest entries no vendor declares, but whose name fits a vendor's patterns.

    The setting id is read from the installed file when there is one.
    Advisory only: these are never reported as installed.
    """
    entries = list(document.iter_entries())
    declared = {name for _, _, e in entries for name in e.profiles}

    matches: list[PatternMatch] = []
    for item in manifest.entries:
        if item.name in declared:
            continue
        setting_id = _installed_setting_id(manifest.resolve(item))
        for p, v, vendor_entry in entries:
            if is_custom_profile(item.name, vendor_entry, v, setting_id):
                matches.append(PatternMatch(printer=p, vendor=v, name=item.name))
    return matches


def _installed_setting_id(path: Path) -> str | None:
    if not path.is_file():
        return None
    try:
        return read_setting_id(path)
    except (OSError, ValueError) as e:
        logger.warning("Cannot read setting_id from %s: %s", path, e)
        return None
