from filament_profiles import group_by_material, menu_order, parse_selection
from filament_profiles.selection import OTHER_GROUP

from conftest import PETG, PLA

MATTE = "SUNLU PLA Matte @BBL H2D"
MARBLE = "SUNLU Marble @BBL H2D"


def test_parse_all() -> None:
    result = parse_selection(" ALL ", 3)
    assert result.select_all
    assert result.indices == [0, 1, 2]


def test_parse_commas_and_spaces() -> None:
    assert parse_selection("1, 3", 3).indices == [0, 2]
    assert parse_selection("3 1,,3", 3).indices == [2, 0]


def test_parse_skips_invalid_tokens() -> None:
    result = parse_selection("0 2 x 9", 3)
    assert result.indices == [1]
    assert len(result.warnings) == 3


def test_parse_skips_non_ascii_digits() -> None:
    result = parse_selection("1 ² ١-٢", 2)
    assert result.indices == [0]
    assert len(result.warnings) == 2


def test_parse_ranges() -> None:
    assert parse_selection("1-3", 4).indices == [0, 1, 2]
    result = parse_selection("3-1", 4)
    assert result.indices == []
    assert result.warnings


def test_parse_empty() -> None:
    result = parse_selection("", 3)
    assert result.indices == []
    assert not result.warnings


def test_pick_maps_indices_to_items() -> None:
    assert parse_selection("2", 2).pick([PLA, PETG]) == [PETG]


def test_group_by_material_follows_materials_order() -> None:
    groups = group_by_material([PETG, MARBLE, PLA, MATTE], ["PLA", "PETG"])
    assert groups == [
        ("PLA", [PLA, MATTE]),
        ("PETG", [PETG]),
        (OTHER_GROUP, [MARBLE]),
    ]
    assert menu_order(groups) == [PLA, MATTE, PETG, MARBLE]


def test_group_by_material_without_materials() -> None:
    groups = group_by_material([PETG, PLA])
    assert groups == [("PETG", [PETG]), ("PLA", [PLA])]


def test_group_by_material_drops_empty_groups() -> None:
    assert group_by_material([PLA], ["PLA", "ABS"]) == [("PLA", [PLA])]
