"""
胜负判定
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from app.schemas.game_schemas import PlayerRole


@dataclass
class VictoryResult:
    game_over: bool
    winner: Optional[PlayerRole] = None


def decide_winner(alive_spies: int, alive_civilians: int) -> VictoryResult:
    """卧底全部出局平民获胜；存活卧底不少于存活平民时卧底获胜；否则继续"""
    if alive_spies == 0:
        return VictoryResult(game_over=True, winner=PlayerRole.CIVILIAN)
    if alive_spies >= alive_civilians:
        return VictoryResult(game_over=True, winner=PlayerRole.SPY)
    return VictoryResult(game_over=False)


def check_victory_condition(alive_players: Sequence, spy_ids: Iterable[str]) -> VictoryResult:
    """以对局状态中的卧底名单为准统计存活的双方人数"""
    spy_set = set(spy_ids)
    alive_spies = sum(1 for p in alive_players if p.id in spy_set)
    return decide_winner(alive_spies, len(alive_players) - alive_spies)
