"""
身份与词语分配

开局时抽取一组词语，并把玩家随机划分为卧底和平民。
所有随机数都来自可注入的随机源，便于在测试中复现结果。
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session

from app.core.errors import ErrorCode, GameError
from app.core.validation import CheckResult
from app.models.word_pair import WordPair

logger = logging.getLogger(__name__)

MIN_PLAYERS_TO_START = 3


@dataclass
class RoleAssignment:
    """一局游戏的身份分配结果"""
    civilian_word: str
    spy_word: str
    spy_ids: List[str]
    civilian_ids: List[str]
    first_turn: int


def validate_game_start(player_count: int, spy_count: int) -> CheckResult:
    """
    校验开局条件

    - 至少3名玩家
    - 至少1名卧底
    - 卧底数量必须小于玩家总数减1（至少保留2名平民）
    """
    if player_count < MIN_PLAYERS_TO_START:
        return CheckResult.fail(f"至少需要{MIN_PLAYERS_TO_START}名玩家才能开始游戏")
    if spy_count < 1:
        return CheckResult.fail("至少需要1名卧底")
    if spy_count >= player_count - 1:
        return CheckResult.fail("卧底数量必须少于玩家总数减1（至少需要2名平民）")
    return CheckResult.ok()


def select_spies(player_ids: Sequence[str], spy_count: int, rng: Optional[random.Random] = None) -> List[str]:
    """对玩家列表做一次均匀随机排列，取前spy_count个作为卧底"""
    rng = rng or random
    shuffled = list(player_ids)
    rng.shuffle(shuffled)  # Fisher-Yates
    return shuffled[:spy_count]


def select_first_player(player_count: int, rng: Optional[random.Random] = None) -> int:
    """随机决定第一个发言的位置"""
    rng = rng or random
    return rng.randrange(player_count)


def draw_word_pair(db: Session, rng: Optional[random.Random] = None) -> WordPair:
    """从词库中均匀随机抽取一组词语"""
    rng = rng or random
    total = db.query(WordPair).count()
    if total == 0:
        raise GameError(ErrorCode.DATABASE_ERROR, "词库为空，无法开始游戏")
    return db.query(WordPair).order_by(WordPair.id).offset(rng.randrange(total)).first()


def assign_roles(
    db: Session,
    player_ids: Sequence[str],
    spy_count: int,
    rng: Optional[random.Random] = None,
) -> RoleAssignment:
    """抽词、选卧底、定首位发言者"""
    word_pair = draw_word_pair(db, rng)
    spy_ids = select_spies(player_ids, spy_count, rng)
    spy_set = set(spy_ids)
    civilian_ids = [pid for pid in player_ids if pid not in spy_set]

    assignment = RoleAssignment(
        civilian_word=word_pair.civilian_word,
        spy_word=word_pair.spy_word,
        spy_ids=spy_ids,
        civilian_ids=civilian_ids,
        first_turn=select_first_player(len(player_ids), rng),
    )
    logger.debug("已分配身份：%d 名卧底，%d 名平民", len(spy_ids), len(civilian_ids))
    return assignment
