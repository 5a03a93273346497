# -*- coding: utf-8 -*-
"""
接口定义

定义系统中关键组件的接口契约，实现依赖注入和松耦合
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class ILogger(ABC):
    """
    日志记录器接口

    定义日志记录器必须实现的方法
    """

    @abstractmethod
    def __call__(self, message: str, level: str = "INFO"):
        """
        记录日志

        Args:
            message: 日志消息
            level: 日志级别 (DEBUG, INFO, WARNING, ERROR, SUCCESS)
        """
        pass


class IConfigLoader(ABC):
    """
    配置加载器接口

    定义配置加载器必须实现的方法
    """

    @abstractmethod
    def get_all_config(self) -> Dict[str, Any]:
        """
        获取所有配置

        Returns:
            Dict: 配置字典
        """
        pass

    @abstractmethod
    def get_config(self, section: str) -> Dict[str, Any]:
        """
        获取特定部分的配置

        Args:
            section: 配置部分名称

        Returns:
            Dict: 配置字典
        """
        pass


class IMessenger(ABC):
    """
    消息平台客户端接口

    定义 WhatsApp 网关客户端必须实现的方法，调度器、告警监控和
    消息路由只依赖这个接口
    """

    @abstractmethod
    def is_ready(self) -> bool:
        """
        检查客户端是否已连接并可以发送消息

        Returns:
            bool: 是否就绪
        """
        pass

    @abstractmethod
    def send_image(self, chat_id: str, image: bytes, filename: str, caption: Optional[str] = None):
        """
        发送图片到指定聊天

        Args:
            chat_id: 群组或私聊ID
            image: PNG图片内容
            filename: 文件名
            caption: 图片说明（可选）
        """
        pass

    @abstractmethod
    def send_text(self, chat_id: str, text: str):
        """
        发送文本消息

        Args:
            chat_id: 群组或私聊ID
            text: 消息内容
        """
        pass

    @abstractmethod
    def list_groups(self) -> List[Dict[str, str]]:
        """
        列出客户端加入的群组

        Returns:
            List[Dict]: [{'id': ..., 'name': ...}, ...]
        """
        pass


class IScheduler(ABC):
    """
    调度器接口

    定义按群组管理定时任务的调度器必须实现的方法
    """

    @abstractmethod
    def start_job(self, group_id: str):
        """
        启动（或重启）指定群组的定时任务

        Args:
            group_id: 群组ID
        """
        pass

    @abstractmethod
    def stop_job(self, group_id: str):
        """
        停止指定群组的定时任务，任务不存在时无操作

        Args:
            group_id: 群组ID
        """
        pass

    @abstractmethod
    def stop_all_jobs(self):
        """停止所有定时任务"""
        pass
