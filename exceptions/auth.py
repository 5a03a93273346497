"""
认证相关异常类

处理地图服务凭证、令牌解析等认证层异常。
"""

from typing import Optional

from .base import AuthenticationException


class CredentialMissingError(AuthenticationException):
    """
    凭证缺失异常

    当需要登录地图服务但数据库中没有保存令牌时抛出。
    """

    def __init__(self, operation: Optional[str] = None):
        """
        初始化凭证缺失异常

        Args:
            operation: 需要凭证的操作名称（可选）
        """
        context = {}
        if operation is not None:
            context["operation"] = operation

        super().__init__("未配置地图服务令牌，请先保存令牌", context=context)


class CredentialError(AuthenticationException):
    """
    凭证异常

    当提交的令牌为空或格式明显错误时抛出。
    """

    http_status = 400

    def __init__(self, reason: str):
        """
        初始化凭证异常

        Args:
            reason: 错误原因
        """
        super().__init__(f"凭证错误: {reason}", context={"reason": reason})


class TokenDecodeError(AuthenticationException):
    """
    令牌解析异常

    当令牌不是三段式结构或中间段不是合法的 base64url JSON 时抛出。
    """

    def __init__(self, reason: str, segment_count: Optional[int] = None):
        """
        初始化令牌解析异常

        Args:
            reason: 解析失败原因
            segment_count: 令牌分段数量（可选）
        """
        context = {"reason": reason}
        if segment_count is not None:
            context["segment_count"] = segment_count

        super().__init__(f"令牌解析失败: {reason}", context=context)
