from typing import Iterable, List, Optional

from models import ServerRecord

ALL = "all"


def filter_servers(
    records: Iterable[ServerRecord],
    query: Optional[str] = "",
    region: Optional[str] = ALL,
    game: Optional[str] = ALL,
) -> List[ServerRecord]:
    """Servers matching a text query, a region and a game.

    The query is a case-insensitive substring of the name or map. A region
    or game of "all" matches everything.
    """
    needle = (query or "").lower()
    region = region or ALL
    game = game or ALL

    def matches(s: ServerRecord) -> bool:
        if needle and needle not in s.name.lower() and needle not in s.map.lower():
            return False
        if region != ALL and s.region != region:
            return False
        if game != ALL and s.game.value != game:
            return False
        return True

    return [s for s in records if matches(s)]
