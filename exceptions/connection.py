"""
连接相关异常类

处理浏览器会话、网络超时、页面加载等连接层异常。
"""

from typing import Optional

from .base import ConnectionException


class BrowserNotInitializedError(ConnectionException):
    """
    浏览器未初始化异常

    当截图、告警检查或登录操作需要页面，但浏览器会话不存在时抛出。
    """

    def __init__(self, operation: str):
        """
        初始化浏览器未初始化异常

        Args:
            operation: 需要页面的操作名称
        """
        super().__init__(f"浏览器未初始化，无法执行: {operation}", context={"operation": operation})


class BrowserConnectionError(ConnectionException):
    """
    浏览器启动失败异常

    当无法启动或连接 Chromium 时抛出。
    """

    def __init__(
        self,
        port: Optional[int] = None,
        message: str = "浏览器启动失败",
        reason: Optional[str] = None,
    ):
        """
        初始化浏览器连接异常

        Args:
            port: Chrome调试端口（自动分配时为 None）
            message: 错误消息
            reason: 底层错误信息
        """
        context = {}
        if reason is not None:
            context["reason"] = reason

        full_message = message if port is None else f"{message} (端口: {port})"
        super().__init__(full_message, port=port, context=context)


class NetworkTimeoutError(ConnectionException):
    """
    网络超时异常

    当等待页面状态的操作超时时抛出。
    """

    def __init__(
        self,
        operation: str,
        timeout: float,
        url: Optional[str] = None,
    ):
        """
        初始化网络超时异常

        Args:
            operation: 超时的操作描述
            timeout: 超时时间（秒）
            url: 相关的URL（如果有）
        """
        context = {"operation": operation, "timeout_seconds": timeout}
        if url is not None:
            context["url"] = url

        message = f"{operation} 超时 (超过 {timeout} 秒)"
        super().__init__(message, context=context)


class PageLoadError(ConnectionException):
    """
    页面加载失败异常

    当地图页面导航失败或超时时抛出。
    """

    def __init__(
        self,
        url: str,
        reason: str,
        load_time: Optional[float] = None,
    ):
        """
        初始化页面加载异常

        Args:
            url: 目标URL
            reason: 失败原因
            load_time: 加载耗时（秒）
        """
        context = {"url": url, "reason": reason}
        if load_time is not None:
            context["load_time_seconds"] = load_time

        message = f"页面加载失败: {reason} (URL: {url})"
        super().__init__(message, context=context)
