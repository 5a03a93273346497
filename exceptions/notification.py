"""
通知相关异常类

处理 WhatsApp 网关发送、客户端状态等通知层异常。
"""

from typing import Optional

from .base import NotificationException


class DeliveryError(NotificationException):
    """
    截图投递失败异常

    当截图发送到某个群组失败时抛出。
    """

    def __init__(
        self,
        group_id: str,
        reason: str,
        status_code: Optional[int] = None,
    ):
        """
        初始化投递异常

        Args:
            group_id: 目标群组ID
            reason: 失败原因
            status_code: 网关返回的HTTP状态码（可选）
        """
        context = {"reason": reason}
        if status_code is not None:
            context["status_code"] = status_code

        message = f"发送失败 (群组: {group_id}): {reason}"
        super().__init__(message, recipient=group_id, context=context)


class MessengerNotReadyError(NotificationException):
    """
    WhatsApp 客户端未就绪异常

    当网关会话尚未扫码登录或已断开时抛出。
    """

    http_status = 503

    def __init__(self, status: Optional[str] = None):
        """
        初始化客户端未就绪异常

        Args:
            status: 网关返回的会话状态（可选）
        """
        context = {}
        if status is not None:
            context["status"] = status

        super().__init__("WhatsApp 客户端未就绪", context=context)


class NotificationConfigError(NotificationException):
    """
    通知配置异常

    当网关地址等配置不正确或缺失时抛出。
    """

    def __init__(self, config_key: str, reason: str):
        """
        初始化通知配置异常

        Args:
            config_key: 配置键名
            reason: 失败原因
        """
        context = {"config_key": config_key, "reason": reason}
        message = f"通知配置错误 - {config_key}: {reason}"
        super().__init__(message, context=context)
