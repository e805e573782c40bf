"""
投票校验与计票
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from app.core.validation import CheckResult


@dataclass
class VoteTally:
    """计票结果"""
    vote_counts: Dict[str, int] = field(default_factory=dict)
    max_votes: int = 0
    eliminated_player_ids: List[str] = field(default_factory=list)

    @property
    def total_votes(self) -> int:
        return sum(self.vote_counts.values())


def validate_vote(
    voter_id: str,
    target_id: str,
    voter_alive: bool,
    target_alive: bool,
    already_voted: bool,
) -> CheckResult:
    """按优先级依次检查，返回第一条不通过的原因"""
    if not voter_alive:
        return CheckResult.fail("已淘汰的玩家不能投票")
    if voter_id == target_id:
        return CheckResult.fail("不能投票给自己")
    if not target_alive:
        return CheckResult.fail("不能投票给已淘汰的玩家")
    if already_voted:
        return CheckResult.fail("本轮已经投过票了")
    return CheckResult.ok()


def tally_votes(target_ids: Iterable[str]) -> VoteTally:
    """
    统计每个目标的得票数

    得票最多的玩家全部出局：平票时所有并列者一起淘汰；没有任何投票时无人出局。
    """
    counts = Counter(target_ids)
    max_votes = max(counts.values(), default=0)
    eliminated = [pid for pid, count in counts.items() if count == max_votes] if max_votes > 0 else []
    return VoteTally(vote_counts=dict(counts), max_votes=max_votes, eliminated_player_ids=eliminated)
