MATCHI_COURT_IDS = {
    "BAY_1": "2068",
    "BAY_2": "2069",
    "BAY_3": "2074",
    "BAY_4": "2071",
    "BAY_5": "2072",
    "BAY_6": "2070",
    "BAY_7": "2076",
    "BAY_8": "2077",
}

BAY_TO_COURT: dict[str, str] = {
    name.removeprefix("BAY_"): court_id for name, court_id in MATCHI_COURT_IDS.items()
}

COURT_TO_BAY: dict[str, int] = {court_id: int(bay) for bay, court_id in BAY_TO_COURT.items()}

VALID_MATCHI_COURT_IDS = frozenset(BAY_TO_COURT.values())


def to_court_id(court: str) -> str:
    """Map a bay number to its MATCHi court id; unknown values pass through unchanged."""
    return BAY_TO_COURT.get(court, court)
