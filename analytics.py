"""Aggregate statistics over a set of server records.

All functions are pure and never mutate the records they are given.
"""
import math
from typing import List, Optional, Sequence

from models import (
    GAME_ORDER, AnalyticsSummary, GameAverage, ServerRecord, ServerRow,
    ServerStatus, UptimeBar,
)

NO_DATA = "—"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _mean(values: Sequence[float]) -> float:
    return sum(values) / max(len(values), 1)


def online_servers(records: Sequence[ServerRecord]) -> List[ServerRecord]:
    return [s for s in records if s.status == ServerStatus.ONLINE]


def live_players(records: Sequence[ServerRecord]) -> int:
    """Players currently on online servers"""
    return sum(s.players for s in online_servers(records))


def fill_percent(record: ServerRecord) -> float:
    """How full one server is, capped at 100"""
    return min(100.0, record.players / (record.max_players or 1) * 100)


def status_label(status: ServerStatus) -> str:
    return "Maint" if status == ServerStatus.MAINTENANCE else status.value


def uptime_label(record: ServerRecord) -> str:
    return f"{record.region}-{record.id.split('-')[0]}"


def to_rows(records: Sequence[ServerRecord]) -> List[ServerRow]:
    return [
        ServerRow.model_validate({
            **s.to_wire(),
            "fillPercent": fill_percent(s),
            "statusLabel": status_label(s.status),
        })
        for s in records
    ]


def game_averages(records: Sequence[ServerRecord]) -> List[GameAverage]:
    """Mean 24h players per server for each game, in fixed game order"""
    averages = []
    for game in GAME_ORDER:
        subset = [s.avg_players_24h for s in records if s.game == game]
        averages.append(GameAverage(game=game, avg_players=_mean(subset) if subset else None))
    return averages


def format_game_averages(averages: Sequence[GameAverage]) -> str:
    parts = []
    for entry in averages:
        value = NO_DATA if entry.avg_players is None else str(round_half_up(entry.avg_players))
        parts.append(f"{entry.game.value}: {value}")
    return " · ".join(parts)


def summarize(records: Sequence[ServerRecord]) -> AnalyticsSummary:
    """Population fill, uptime, load and per-game breakdown for a server set.

    Population only counts online servers. Uptime, peak and load cover every
    record, whatever its status.
    """
    online = online_servers(records)
    total_players = sum(s.players for s in online)
    total_max = sum(s.max_players for s in online)
    fill = round_half_up(total_players / total_max * 100) if total_max else 0

    by_game = game_averages(records)

    return AnalyticsSummary(
        total_players=total_players,
        total_max=total_max,
        fill_percent=fill,
        avg_uptime=_mean([s.uptime_percent for s in records]),
        total_peak=sum(s.peak_players_24h for s in records),
        avg_load=round_half_up(_mean([s.avg_players_24h for s in records])),
        by_game=by_game,
        by_game_text=format_game_averages(by_game),
        uptime_bars=[
            UptimeBar(label=uptime_label(s), name=s.name, uptime_percent=s.uptime_percent)
            for s in records
        ],
    )


def featured(records: Sequence[ServerRecord], count: int = 3) -> dict:
    """The leading servers of the catalog and their headline numbers"""
    top = list(records[:count])
    avg_latency: Optional[int] = None
    if top:
        avg_latency = round_half_up(_mean([s.avg_latency_ms for s in top]))
    return {
        "servers": top,
        "server_count": len(records),
        "avg_latency_ms": avg_latency,
        "total_peak": sum(s.peak_players_24h for s in top),
    }
