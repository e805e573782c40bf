"""
房间凭证：密码哈希、房间号与玩家token生成
"""

import hashlib
import hmac
import secrets

# 易于口头分享的字符（去掉了0/O、1/I/l）
_PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def hash_password(password: str) -> str:
    """加盐SHA-256，格式为 salt:hash"""
    salt = secrets.token_hex(16)
    digest = hashlib.sha256((salt + password).encode("utf-8")).hexdigest()
    return f"{salt}:{digest}"


def verify_password(password: str, stored_hash: str) -> bool:
    parts = stored_hash.split(":")
    if len(parts) != 2:
        return False
    salt, expected = parts
    actual = hashlib.sha256((salt + password).encode("utf-8")).hexdigest()
    return hmac.compare_digest(actual, expected)


def generate_room_code() -> str:
    """6位数字房间号（100000-999999）"""
    return str(100000 + secrets.randbelow(900000))


def generate_room_password(length: int = 4) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def generate_player_token(prefix: str = "") -> str:
    return prefix + secrets.token_urlsafe(24)
