"""
filament_profiles - Third-party filament profiles for Bambu Studio

Keeps a registry of the profiles this repository ships, installs and
removes them in a Bambu Studio data directory, and reconciles the registry
with the application's manifest and the files on disk.
"""

from .models import (
    VendorEntry,
    RegistryDocument,
    ManifestEntry,
    InstalledProfile,
    OrphanedFile,
    PatternMatch,
    ProfileMetadata,
    ScanReport,
    InstallReport,
    UninstallReport,
    RegenerationReport,
    ValidationReport,
)
from .paths import AppPaths, default_app_dir
from .registry import ProfileRegistry, RegistryNotFoundError, RegistryFormatError
from .manifest import AppManifest, ManifestNotFoundError, ManifestFormatError
from .matching import is_declared_member, matches_pattern, is_custom_profile
from .reconcile import installed, orphaned_entries, orphaned_files, unclaimed_matches
from .selection import group_by_material, menu_order, parse_selection
from .operations import (
    ProfileManager,
    PrerequisiteError,
    RegistryLookupError,
    SelectionError,
)
from .validate import validate_profiles

__all__ = [
    # Models
    "VendorEntry",
    "RegistryDocument",
    "ManifestEntry",
    "InstalledProfile",
    "OrphanedFile",
    "PatternMatch",
    "ProfileMetadata",
    "ScanReport",
    "InstallReport",
    "UninstallReport",
    "RegenerationReport",
    "ValidationReport",
    # Paths
    "AppPaths",
    "default_app_dir",
    # Registry & Manifest
    "ProfileRegistry",
    "AppManifest",
    # Matching & Reconciliation
    "is_declared_member",
    "matches_pattern",
    "is_custom_profile",
    "installed",
    "orphaned_entries",
    "orphaned_files",
    "unclaimed_matches",
    # Selection
    "group_by_material",
    "menu_order",
    "parse_selection",
    # Operations
    "ProfileManager",
    "validate_profiles",
    # Exceptions
    "RegistryNotFoundError",
    "RegistryFormatError",
    "ManifestNotFoundError",
    "ManifestFormatError",
    "PrerequisiteError",
    "RegistryLookupError",
    "SelectionError",
]
