# -*- coding: utf-8 -*-
"""
浏览器处理模块
统一管理无头浏览器的启动、关闭和重启
"""
import os
from typing import Callable, Optional

from DrissionPage import ChromiumOptions, ChromiumPage

from exceptions import BrowserConnectionError, BrowserNotInitializedError
from interfaces import ILogger

from .logger import get_logger


class BrowserHandler:
    """浏览器处理器类"""

    def __init__(
        self,
        user_data_path: str = None,
        local_port: int = 0,
        headless: bool = True,
        window_size: tuple = (1920, 1080),
        logger: Optional[ILogger] = None,
        page_factory: Callable = ChromiumPage,
    ):
        """
        初始化浏览器处理器

        Args:
            user_data_path: 用户数据目录路径（为空时使用临时目录）
            local_port: Chrome调试端口（0 表示自动分配）
            headless: 是否无头模式
            window_size: 窗口尺寸 (宽, 高)
            logger: 日志记录器
            page_factory: 根据 ChromiumOptions 创建页面对象的工厂（测试时替换）
        """
        self.user_data_path = user_data_path
        self.local_port = local_port
        self.headless = headless
        self.window_size = window_size
        self.page_factory = page_factory
        self.page: Optional[ChromiumPage] = None
        self.log = logger or get_logger()

    def _build_options(self) -> ChromiumOptions:
        co = ChromiumOptions()
        co.headless(self.headless)
        co.set_argument("--no-sandbox")
        co.set_argument("--disable-setuid-sandbox")
        width, height = self.window_size
        co.set_argument(f"--window-size={width},{height}")

        if self.user_data_path and os.path.exists(self.user_data_path):
            co.set_user_data_path(self.user_data_path)

        if self.local_port:
            co.set_local_port(self.local_port)
        else:
            co.auto_port()
        return co

    def launch(self) -> ChromiumPage:
        """
        启动新的浏览器会话（已有会话时直接返回）

        Returns:
            ChromiumPage: 页面对象

        Raises:
            BrowserConnectionError: 浏览器启动失败
        """
        if self.page is not None:
            return self.page

        try:
            self.page = self.page_factory(self._build_options())
        except Exception as e:
            self.log(f"浏览器启动失败: {e}", "ERROR")
            raise BrowserConnectionError(
                port=self.local_port or None, reason=str(e)
            ) from e

        self.log("浏览器启动成功", "SUCCESS")
        return self.page

    def get_page(self) -> Optional[ChromiumPage]:
        """
        获取浏览器页面对象

        Returns:
            ChromiumPage: 页面对象，如果未启动则返回None
        """
        return self.page

    def require_page(self, operation: str) -> ChromiumPage:
        """
        获取页面对象，不存在时抛出异常

        Args:
            operation: 需要页面的操作名称

        Raises:
            BrowserNotInitializedError: 浏览器未启动
        """
        if self.page is None:
            raise BrowserNotInitializedError(operation)
        return self.page

    def is_connected(self) -> bool:
        """
        检查浏览器是否已启动

        Returns:
            bool: 是否已启动
        """
        return self.page is not None

    def close(self):
        """关闭浏览器"""
        page, self.page = self.page, None
        if page is None:
            return
        try:
            page.quit()
            self.log("浏览器已关闭")
        except Exception as e:
            # 进程可能已经退出，引用已清空即可
            self.log(f"关闭浏览器时出错: {e}", "WARNING")

    def restart(self) -> ChromiumPage:
        """关闭当前会话并启动新会话"""
        self.close()
        return self.launch()
