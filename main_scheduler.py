# -*- coding: utf-8 -*-
"""
地图截图监控系统 - 主程序
系统唯一入口，负责组装各组件、启动后台任务和 HTTP 接口

⚠️ 重要技术说明：
- 使用 DrissionPage 驱动无头 Chromium（ChromiumPage / ChromiumOptions）
- 所有页面操作（登录、截图、告警检查、令牌切换）都通过 PageTaskQueue 串行执行
- WhatsApp 收发通过 HTTP 网关（WAHA 兼容接口），入站消息由 /whatsapp/webhook 接收

功能：
- 按群组设置定时截图发送（整点对齐）
- 地图告警监控，按区域推送到群组
- 群聊关键词触发截图，私聊命令更新令牌
- 令牌、区域、群组设置、手动发送的 HTTP 接口
"""
import os
import sys
from datetime import datetime
from typing import Optional

# 添加项目根目录到路径
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)

from config.config_loader import load_config
from core.alert_diff_engine import AlertDiffEngine
from core.browser_handler import BrowserHandler
from core.capture_engine import CaptureEngine
from core.logger import get_logger
from core.page_task_queue import PageTaskQueue
from core.screenshot_store import ScreenshotStore
from core.session_authenticator import SessionAuthenticator
from core.session_state import SessionState
from interfaces import IConfigLoader, ILogger, IMessenger
from notifiers.screenshot_delivery import ScreenshotDelivery
from notifiers.whatsapp_notifier import WhatsAppNotifier
from processors.alert_monitor import AlertMonitor
from processors.message_reaction_router import MessageReactionRouter
from schedulers.delivery_scheduler import DeliveryScheduler
from schedulers.group_settings_service import GroupSettingsService
from storage import AppConfigStore, Database, GroupSettingsStore, ZoneStore


class DambaMonitorApplication:
    """组件组装与生命周期管理"""

    def __init__(
        self,
        config_loader: Optional[IConfigLoader] = None,
        logger: Optional[ILogger] = None,
        browser: Optional[BrowserHandler] = None,
        messenger: Optional[IMessenger] = None,
        database: Optional[Database] = None,
    ):
        """
        初始化所有组件（不启动浏览器和后台线程）

        Args:
            config_loader: 配置加载器
            logger: 日志记录器
            browser: 浏览器处理器（测试时替换）
            messenger: WhatsApp 客户端（测试时替换）
            database: 数据库（测试时可传内存数据库）
        """
        self.config_loader = config_loader or load_config()
        paths = self.config_loader.get_config("paths")
        browser_config = self.config_loader.get_config("browser")
        api_config = self.config_loader.get_config("api")
        monitor_config = self.config_loader.get_config("alert_monitor")
        whatsapp_config = self.config_loader.get_config("whatsapp")

        self.log = logger or get_logger(paths["log_dir"])
        self.api_config = api_config
        self.cors_origins = api_config["cors_origins"]
        self.monitor_enabled = monitor_config["enabled"]

        # 存储
        self.database = database or Database(paths["database_path"])
        self.config_store = AppConfigStore(self.database)
        self.zone_store = ZoneStore(self.database)
        self.settings_store = GroupSettingsStore(self.database)
        self.screenshot_store = ScreenshotStore(
            paths["screenshots_dir"], api_config["public_url"], logger=self.log
        )

        # 浏览器与页面任务
        self.task_queue = PageTaskQueue()
        self.browser = browser or BrowserHandler(
            user_data_path=browser_config["user_data_path"],
            local_port=browser_config["local_port"],
            headless=browser_config["headless"],
            window_size=(browser_config["window_width"], browser_config["window_height"]),
            logger=self.log,
        )
        self.session_state = SessionState()
        self.authenticator = SessionAuthenticator(
            self.browser,
            self.task_queue,
            self.config_store,
            session_state=self.session_state,
            config_loader=self.config_loader,
            logger=self.log,
        )
        self.capture_engine = CaptureEngine(
            self.browser, self.task_queue, self.screenshot_store, logger=self.log
        )
        self.diff_engine = AlertDiffEngine(
            self.browser, self.task_queue, self.config_store, logger=self.log
        )

        # 消息与投递
        self.messenger = messenger or WhatsAppNotifier(self.config_loader, logger=self.log)
        self.delivery = ScreenshotDelivery(
            self.capture_engine, self.messenger, self.screenshot_store, logger=self.log
        )

        # 调度、监控、消息路由
        self.scheduler = DeliveryScheduler(
            self.settings_store, self.authenticator, self.delivery, self.messenger, logger=self.log
        )
        self.settings_service = GroupSettingsService(
            self.settings_store, self.scheduler, logger=self.log
        )
        self.alert_monitor = AlertMonitor(
            self.authenticator,
            self.diff_engine,
            self.delivery,
            self.settings_store,
            self.zone_store,
            check_interval=monitor_config["check_interval_seconds"],
            logger=self.log,
        )
        self.reaction_router = MessageReactionRouter(
            self.authenticator,
            self.delivery,
            self.messenger,
            self.settings_store,
            admin_numbers=whatsapp_config["admin_numbers"],
            logger=self.log,
        )

        self._started = False
        self.log("系统初始化完成")

    def start(self):
        """启动浏览器会话、定时任务和告警监控"""
        if self._started:
            return
        self._started = True

        self.authenticator.start()
        self.scheduler.load_and_start_all_jobs()
        if self.monitor_enabled:
            self.alert_monitor.start()
        else:
            self.log("告警监控已在配置中关闭", "WARNING")
        self.log("系统已启动", "SUCCESS")

    def stop(self):
        """停止所有后台任务并关闭浏览器"""
        if not self._started:
            return
        self._started = False

        print("\n⚠️ 正在停止系统...")
        self.alert_monitor.stop()
        self.scheduler.shutdown()
        try:
            self.authenticator.stop()
        finally:
            self.task_queue.shutdown(wait=True)
            self.database.close()
        self.log("系统已停止")


def main():
    """主函数"""
    import uvicorn

    from api.app import create_app

    print("\n" + "=" * 60)
    print("🗺️  地图截图监控系统")
    print("=" * 60)
    print(f"启动时间: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)

    application = DambaMonitorApplication()
    app = create_app(application)

    try:
        application.start()
        # uvicorn 处理 SIGINT / SIGTERM 并在退出时返回
        uvicorn.run(
            app,
            host=application.api_config["host"],
            port=application.api_config["port"],
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\n\n⚠️ 收到中断信号，正在退出...")
    finally:
        application.stop()


if __name__ == "__main__":
    main()
