"""
Numbered menus and parsing of the user's answer to them.
"""

import logging
import re
from dataclasses import dataclass, field

from .matching import detect_material

logger = logging.getLogger(__name__)

OTHER_GROUP = "Other"

_SPLIT_RE = re.compile(r"[,\s]+")
_NUMBER_RE = re.compile(r"^\d+$", re.ASCII)
_RANGE_RE = re.compile(r"^(\d+)-(\d+)$", re.ASCII)


@dataclass
class SelectionResult:
    indices: list[int] = field(default_factory=list)  # zero-based, in menu order
    warnings: list[str] = field(default_factory=list)
    select_all: bool = False

    def pick(self, items: list[str]) -> list[str]:
        return [items[i] for i in self.indices]


def group_by_material(
    profiles: list[str], materials: list[str] | None = None
) -> list[tuple[str, list[str]]]:
    """
    Group profile names by material for display.

    Groups follow the order of *materials* (or first appearance when it is
    not given); profiles without a recognised material go last under
    "Other".  Numbering a menu 1..N over the flattened groups gives the
    indices that ``parse_selection`` expects.
    """
    groups: dict[str, list[str]] = {m: [] for m in materials or []}
    other: list[str] = []
    for name in profiles:
        material = detect_material(name, materials)
        if material is None:
            other.append(name)
        else:
            groups.setdefault(material, []).append(name)

    result = [(m, names) for m, names in groups.items() if names]
    if other:
        result.append((OTHER_GROUP, other))
    return result


def menu_order(groups: list[tuple[str, list[str]]]) -> list[str]:
    return [name for _, names in groups for name in names]


def parse_selection(text: str, count: int) -> SelectionResult:
    """
    Parse "all", or comma/space separated 1-based numbers and ranges.

    Invalid, non-numeric and out-of-range tokens are skipped with a warning.
    Duplicates collapse; order follows first mention.
    """
    result = SelectionResult()
    text = text.strip()
    if text.lower() == "all":
        result.select_all = True
        result.indices = list(range(count))
        return result

    seen: set[int] = set()

    def add(number: int, token: str) -> None:
        if not 1 <= number <= count:
            result.warnings.append(f"'{token}' is out of range (1-{count})")
            return
        if number - 1 not in seen:
            seen.add(number - 1)
            result.indices.append(number - 1)

    for token in _SPLIT_RE.split(text):
        if not token:
            continue
        if _NUMBER_RE.match(token):
            add(int(token), token)
            continue
        match = _RANGE_RE.match(token)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start > end:
                result.warnings.append(f"'{token}' is not a valid range")
                continue
            for number in range(start, end + 1):
                add(number, token)
            continue
        result.warnings.append(f"'{token}' is not a number")

    for warning in result.warnings:
        logger.warning("Ignoring selection %s", warning)
    return result
