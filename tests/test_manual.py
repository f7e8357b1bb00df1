from friend_plates.manual import AllowList, ManualAddResult, ManualFriendList
from friend_plates.models import ManualEntry
from friend_plates.tables import LocationTable


def test_add_rejects_sentinels_and_duplicates(locations):
    manual = ManualFriendList()
    assert manual.add("Ora Quill", 0) is ManualAddResult.EMPTY_LOCATION
    assert manual.add("Ora Quill", 0xFFFF) is ManualAddResult.EMPTY_LOCATION
    assert manual.add("Ora Quill", 999, locations) is ManualAddResult.UNKNOWN_LOCATION
    assert manual.add(" Ora Quill ", 63, locations) is ManualAddResult.ADDED
    assert manual.add("ORA QUILL", 63, locations) is ManualAddResult.DUPLICATE
    assert manual.add("Ora Quill", 21, locations) is ManualAddResult.ADDED
    assert len(manual) == 2


def test_clean_waits_for_the_location_table():
    manual = ManualFriendList()
    manual.restore(
        [
            {"name": "Ora Quill", "location_id": 63},
            {"name": "Lost Soul", "location_id": 999},
            {"name": "Sentinel Row", "location_id": 0},
            "garbage",
        ]
    )
    assert manual.clean(LocationTable()) == 1
    assert len(manual) == 2
    assert manual.clean(LocationTable.from_mapping({63: "Gilgamesh"})) == 1
    assert manual.entries() == [ManualEntry(name="Ora Quill", location_id=63)]


def test_remove_matches_name_case_insensitively():
    manual = ManualFriendList()
    manual.add("Ora Quill", 63)
    assert manual.remove("ora quill", 21) is False
    assert manual.remove("ora quill", 63) is True
    assert len(manual) == 0


def test_allow_list_ignores_zero_and_bad_rows():
    allow_list = AllowList()
    assert allow_list.add(0) is False
    assert allow_list.add(12) is True
    assert allow_list.add(12) is False
    allow_list.restore([3, "4", None, "x", 0])
    assert allow_list.snapshot() == [3, 4]
    assert 12 not in allow_list
