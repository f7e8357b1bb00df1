import pytest

from friend_plates.tables import JobTable, LocationTable


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def locations():
    return LocationTable.from_mapping(
        {
            21: "Ravana",
            22: "Bismarck",
            63: "Gilgamesh",
            101: "Lich",
            102: "Odin",
        }
    )


@pytest.fixture
def jobs():
    return JobTable.from_mapping(
        {
            19: {"abbreviation": "PLD", "role": 1},
            24: {"abbreviation": "WHM", "role": 4},
            22: {"abbreviation": "DRG", "role": 2},
            50: {"abbreviation": "XYZ", "role": 4},
            60: {"abbreviation": "", "role": 0},
        }
    )
