"""
会话状态

令牌是三段式 JWT，中间段为 base64url 编码的 JSON，其中可选的 exp 字段
（Unix 秒）表示过期时间。SessionState 是显式传递的派生状态：每次检查都
重新计算，不跨调用信任旧值。
"""

import base64
import json
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from exceptions import TokenDecodeError


def decode_token_payload(token: str) -> Dict[str, Any]:
    """
    解析令牌的 payload 段

    Args:
        token: 三段式令牌

    Returns:
        Dict[str, Any]: payload JSON

    Raises:
        TokenDecodeError: 结构或编码不正确
    """
    if not token:
        raise TokenDecodeError("令牌为空")
    parts = token.split(".")
    if len(parts) != 3:
        raise TokenDecodeError("令牌不是三段式结构", segment_count=len(parts))

    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (ValueError, UnicodeError) as e:
        raise TokenDecodeError(f"payload 无法解码: {e}") from e

    if not isinstance(payload, dict):
        raise TokenDecodeError("payload 不是 JSON 对象")
    return payload


def decode_token_expiry(token: str) -> Optional[Union[int, float]]:
    """
    读取令牌的 exp 字段

    Returns:
        int | float: 过期时间（Unix 秒，保留小数部分），没有 exp 时返回 None

    Raises:
        TokenDecodeError: 令牌无法解析或 exp 不是数字
    """
    exp = decode_token_payload(token).get("exp")
    if exp is None:
        return None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise TokenDecodeError(f"exp 字段不是数字: {exp!r}")
    return exp


def decode_token_user_id(token: str) -> Optional[str]:
    """读取令牌 sub.id（地图服务的用户ID），没有时返回 None"""
    sub = decode_token_payload(token).get("sub")
    if isinstance(sub, dict) and sub.get("id"):
        return str(sub["id"])
    return None


class SessionState:
    """登录状态缓存"""

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Args:
            clock: 返回当前 Unix 时间（秒）的函数，测试时可替换
        """
        self.clock = clock
        self._lock = threading.Lock()
        self._is_authenticated = False
        self._expires_at: Optional[Union[int, float]] = None
        self._checked_at: Optional[float] = None

    def evaluate(self, token: Optional[str]) -> bool:
        """
        根据令牌重新计算登录状态

        解析失败视为无效；没有 exp 视为永久有效；当前毫秒时间 >= exp*1000 视为过期

        Args:
            token: 令牌，None 表示未保存

        Returns:
            bool: 令牌是否有效
        """
        now = self.clock()
        expires_at = None
        if not token:
            valid = False
        else:
            try:
                expires_at = decode_token_expiry(token)
            except TokenDecodeError:
                valid = False
            else:
                valid = expires_at is None or now * 1000 < expires_at * 1000

        with self._lock:
            self._is_authenticated = valid
            self._expires_at = expires_at
            self._checked_at = now
        return valid

    def mark_unauthenticated(self):
        with self._lock:
            self._is_authenticated = False
            self._expires_at = None
            self._checked_at = self.clock()

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._is_authenticated

    @property
    def expires_at(self) -> Optional[Union[int, float]]:
        with self._lock:
            return self._expires_at

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            checked_at = (
                datetime.fromtimestamp(self._checked_at).isoformat()
                if self._checked_at is not None
                else None
            )
            return {
                "isAuthenticated": self._is_authenticated,
                "expiresAt": self._expires_at,
                "checkedAt": checked_at,
            }
