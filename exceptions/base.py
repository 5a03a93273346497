"""
基础异常类定义

根异常和五个分类。每个类带有 http_status，接口层直接据此返回状态码；
具体异常按需要覆盖（例如 ZoneNotFoundError 为 404）。
"""

from typing import Any, Dict, Optional


class DambaMonitorException(Exception):
    """
    地图截图监控系统基础异常类

    关键字参数中不为 None 的值并入 context，例如
    ConnectionException("连接失败", port=9222) 的 context 为 {"port": 9222}。
    """

    http_status = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, **fields: Any):
        """
        Args:
            message: 错误消息
            context: 上下文信息字典（如群组ID、区域ID、URL等）
            **fields: 追加到 context 的字段，值为 None 的忽略
        """
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})
        self.context.update({k: v for k, v in fields.items() if v is not None})

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """接口错误响应体"""
        return {
            "exception_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConnectionException(DambaMonitorException):
    """浏览器和地图页面不可用（未启动、启动失败、导航或等待超时）"""

    http_status = 502


class AuthenticationException(DambaMonitorException):
    """地图服务令牌缺失或无法使用"""

    http_status = 401


class DataException(DambaMonitorException):
    """告警数据、SQLite 存储、截图文件、区域和群组设置的错误，context 中的 source 指出来源"""


class NotificationException(DambaMonitorException):
    """WhatsApp 网关收发错误，context 中的 recipient 为群组或聊天ID"""


class ConfigurationException(DambaMonitorException):
    """config.ini / map_settings.yaml / 环境变量配置错误"""
