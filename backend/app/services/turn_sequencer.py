"""
发言顺序

当前发言位置保存为一个整数，而不是玩家ID。每次使用时都先按join_order
过滤出存活玩家，再对存活人数取模，这样淘汰玩家后旧的序号也不会失效。
"""

from typing import List, Sequence


def alive_in_order(players: Sequence) -> List:
    """按join_order排列的存活玩家"""
    return sorted((p for p in players if p.is_alive), key=lambda p: p.join_order)


def current_turn_player(players: Sequence, turn_index: int):
    """当前应发言的玩家，无人存活时返回None"""
    alive = alive_in_order(players)
    if not alive:
        return None
    return alive[turn_index % len(alive)]


def is_player_turn(players: Sequence, turn_index: int, player_id: str) -> bool:
    current = current_turn_player(players, turn_index)
    return current is not None and current.id == player_id


def get_next_turn(players: Sequence, turn_index: int) -> int:
    """推进到下一个存活玩家"""
    alive_count = len(alive_in_order(players))
    if alive_count == 0:
        return 0
    return (turn_index + 1) % alive_count
