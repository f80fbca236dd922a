"""
Reading the optional provenance block embedded in profile files.
"""

import json
from pathlib import Path
from typing import Any

from .models import ProfileMetadata

METADATA_KEY = "filament_profiles_metadata"


def read_metadata(path: Path) -> ProfileMetadata | None:
    """
    Return the profile's metadata block, or None when it carries none.

    Raises OSError / ValueError for unreadable files or a malformed block.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    block = data.get(METADATA_KEY)
    if block is None:
        return None
    return ProfileMetadata.model_validate(block)


def first_value(value: Any) -> Any:
    """Extract the first element if value is a list, otherwise return as-is."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def read_setting_id(path: Path) -> str | None:
    """
    Return the profile's ``setting_id``, or None when it has no usable one.

    Raises OSError / ValueError for unreadable files.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return None
    value = first_value(data.get("setting_id"))
    return value if isinstance(value, str) else None
