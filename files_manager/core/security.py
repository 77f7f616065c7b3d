"""安全模块：提供密码哈希与校验、Basic 认证头解析。"""

import base64
import binascii
from typing import Optional

import bcrypt


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """校验明文密码与已存储哈希值是否匹配（bcrypt 内部为常量时间比较）。"""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # 存储的哈希格式非法时视为不匹配
        return False


def get_password_hash(password: str) -> str:
    """对输入密码执行 bcrypt 哈希并返回可持久化的字符串。"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def parse_basic_credentials(authorization: Optional[str]) -> Optional[tuple[str, str]]:
    """解析 ``Authorization: Basic base64(email:password)``，格式不合法时返回 ``None``。"""
    if not authorization:
        return None
    scheme, _, encoded = authorization.partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    email, sep, password = decoded.partition(":")
    if not sep or not email:
        return None
    return email, password
