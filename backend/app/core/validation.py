"""
输入校验函数
"""

import re
from dataclasses import dataclass
from typing import Optional
from app.core.config import settings

_ROOM_CODE_PATTERN = re.compile(r"^\d{6}$")


def validate_password(password) -> bool:
    """房间密码必须是4-8个字符"""
    if not isinstance(password, str):
        return False
    return settings.MIN_PASSWORD_LENGTH <= len(password) <= settings.MAX_PASSWORD_LENGTH


def validate_player_name(name) -> bool:
    """昵称必须是2-10个字符，且不能全是空白"""
    if not isinstance(name, str) or not name.strip():
        return False
    return settings.MIN_NAME_LENGTH <= len(name) <= settings.MAX_NAME_LENGTH


def validate_room_code(code) -> bool:
    """房间号必须是6位数字"""
    return isinstance(code, str) and bool(_ROOM_CODE_PATTERN.match(code))


def validate_description(text, player_word: Optional[str]) -> Optional[str]:
    """
    校验描述文本，返回第一条不通过的原因；通过时返回None

    - 长度必须在5-50个字符之间
    - 不能包含玩家自己的词语
    """
    if not isinstance(text, str):
        return "描述必须是文本"
    if len(text) < settings.MIN_DESCRIPTION_LENGTH:
        return f"描述至少需要{settings.MIN_DESCRIPTION_LENGTH}个字符"
    if len(text) > settings.MAX_DESCRIPTION_LENGTH:
        return f"描述不能超过{settings.MAX_DESCRIPTION_LENGTH}个字符"
    if player_word and player_word in text:
        return "描述不能包含你的词语"
    return None


@dataclass
class CheckResult:
    """规则校验结果"""
    valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "CheckResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "CheckResult":
        return cls(valid=False, error=error)
