"""
Profile classifiers.

Two ways of deciding whether a profile belongs to a registry vendor:

- ``is_declared_member``: exact membership in the vendor's ``profiles`` list.
  This is authoritative.
- ``matches_pattern`` / ``is_custom_profile``: case-insensitive wildcard
  matching against ``name_pattern`` and ``setting_id_pattern``.  Only a
  fallback for profiles that are not listed anywhere; it never turns an
  exact-list "not installed" into "installed".
"""

import fnmatch
import re
from pathlib import PurePosixPath

from .models import VendorEntry

# Longer names first so PETG wins over PET, PA6 over PA, and so on.
_KNOWN_MATERIALS = (
    "PETG", "PCTG", "PLA", "ABS", "ASA", "TPU", "TPE", "HIPS", "PVA", "PVB",
    "PET", "PA6", "PAHT", "PA", "PC", "PPS", "PP", "PE", "BVOH",
)
_MATERIAL_RE = re.compile(
    r"(?<![A-Za-z0-9])(" + "|".join(_KNOWN_MATERIALS) + r")(?![A-Za-z])",
    re.IGNORECASE,
)


def is_declared_member(name: str, entry: VendorEntry) -> bool:
    return name in entry.profiles


def matches_pattern(value: str | None, pattern: str | None) -> bool:
    """Glob-style match (``*`` and ``?``), ignoring case."""
    if not value or not pattern:
        return False
    return fnmatch.fnmatchcase(value.casefold(), pattern.casefold())


def is_custom_profile(
    name: str,
    entry: VendorEntry,
    vendor: str,
    setting_id: str | None = None,
) -> bool:
    """
    Fallback classifier for profiles missing from every ``profiles`` list.

    The vendor name has to appear in the profile name or its setting id,
    otherwise every bundled ``... @BBL <printer>`` profile would match the
    derived ``*@BBL <printer>*`` pattern.  Past that gate, either pattern
    is enough.
    """
    key = vendor.casefold()
    if key not in name.casefold() and key not in (setting_id or "").casefold():
        return False
    if matches_pattern(name, entry.name_pattern):
        return True
    return matches_pattern(setting_id, entry.setting_id_pattern)


def filename_glob(entry: VendorEntry) -> str:
    """File-name part of ``name_pattern``, used to find files in a destination dir."""
    return PurePosixPath(entry.name_pattern.replace("\\", "/")).name


def detect_material(name: str, candidates: list[str] | None = None) -> str | None:
    """
    Find the material a profile name refers to.

    With *candidates* (a vendor's ``materials`` list) the longest candidate
    that occurs as a word in the name wins; otherwise a built-in list of
    common materials is used.
    """
    if candidates:
        lowered = name.casefold()
        for material in sorted(candidates, key=len, reverse=True):
            pattern = r"(?<![\w])" + re.escape(material.casefold()) + r"(?![\w])"
            if re.search(pattern, lowered):
                return material
        return None
    match = _MATERIAL_RE.search(name.split("@", 1)[0])
    return match.group(1).upper() if match else None


def derive_materials(names: list[str]) -> list[str]:
    """Ordered, de-duplicated materials found across profile names."""
    materials: list[str] = []
    for name in names:
        material = detect_material(name)
        if material and material not in materials:
            materials.append(material)
    return materials
