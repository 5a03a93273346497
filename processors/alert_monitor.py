# -*- coding: utf-8 -*-
"""
告警监控

固定周期（默认 5 秒）检查地图上的新告警：
1. 地图服务未登录 → 跳过
2. 没有开启告警推送的群组 → 跳过
3. 告警对比无变化 → 跳过
4. 选出区域与告警区域有交集的群组（群组区域需存在于区域表中）
5. 没有匹配的群组 → 跳过，不截图
6. 截图一次，依次发送给所有匹配的群组，单个群组失败不影响其他群组
"""
import threading
from typing import List, Optional

from core.alert_diff_engine import AlertDiffEngine
from core.logger import get_logger
from core.session_authenticator import SessionAuthenticator
from exceptions import DambaMonitorException
from interfaces import ILogger
from notifiers.screenshot_delivery import ScreenshotDelivery
from storage import GroupSetting, GroupSettingsStore, ZoneStore


class AlertMonitor:
    """告警监控后台线程"""

    def __init__(
        self,
        authenticator: SessionAuthenticator,
        diff_engine: AlertDiffEngine,
        delivery: ScreenshotDelivery,
        settings_store: GroupSettingsStore,
        zone_store: ZoneStore,
        check_interval: float = 5,
        logger: Optional[ILogger] = None,
    ):
        """
        初始化告警监控

        Args:
            authenticator: 会话认证器
            diff_engine: 告警对比引擎
            delivery: 截图投递
            settings_store: 群组设置存储
            zone_store: 区域存储（过滤不存在的区域引用）
            check_interval: 检查间隔（秒）
            logger: 日志记录器
        """
        self.authenticator = authenticator
        self.diff_engine = diff_engine
        self.delivery = delivery
        self.settings_store = settings_store
        self.zone_store = zone_store
        self.check_interval = check_interval
        self.log = logger or get_logger()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.stats = {
            "check_count": 0,
            "alert_count": 0,
            "delivery_count": 0,
            "failure_count": 0,
        }

    def select_groups(self, groups: List[GroupSetting], alert_zone_ids: List[str]) -> List[GroupSetting]:
        """
        选出需要推送的群组

        Args:
            groups: 开启告警推送的群组
            alert_zone_ids: 告警涉及的区域

        Returns:
            List[GroupSetting]: 区域有交集的群组；区域为空的群组从不匹配
        """
        alert_zones = set(alert_zone_ids)
        if not alert_zones:
            return []

        configured = {zone_id for group in groups for zone_id in group.zone_ids}
        existing = self.zone_store.existing_zone_ids(configured)

        matched = []
        for group in groups:
            effective = set(group.zone_ids) & existing
            if effective & alert_zones:
                matched.append(group)
        return matched

    def check_alerts(self) -> List[str]:
        """
        执行一次告警检查

        Returns:
            List[str]: 成功发送的群组ID
        """
        self.stats["check_count"] += 1

        if not self.authenticator.check_validity():
            self.log("地图服务未登录，跳过告警检查", "DEBUG")
            return []

        groups = self.settings_store.list_alerting()
        if not groups:
            return []

        result = self.diff_engine.should_alert()
        if not result.has_alert:
            return []

        self.stats["alert_count"] += 1
        matched = self.select_groups(groups, result.alert_zone_ids)
        if not matched:
            self.log(f"告警区域 {result.alert_zone_ids} 没有匹配的群组")
            return []

        print(f"🚨 检测到新告警，区域 {result.alert_zone_ids}，推送到 {len(matched)} 个群组")
        artifact = self.delivery.capture()
        results = self.delivery.fan_out([group.group_id for group in matched], artifact)

        delivered = [r.group_id for r in results if r.success]
        self.stats["delivery_count"] += len(delivered)
        self.stats["failure_count"] += len(results) - len(delivered)
        self.log(f"告警截图已发送: {len(delivered)}/{len(results)} 个群组", "SUCCESS" if delivered else "WARNING")
        return delivered

    def _safe_check(self):
        try:
            self.check_alerts()
        except DambaMonitorException as e:
            self.log(f"告警检查失败: {e}", "ERROR")
        except Exception as e:
            self.log(f"告警检查出现未知错误: {e}", "ERROR")

    def _run(self):
        self._safe_check()
        while not self._stop_event.wait(self.check_interval):
            self._safe_check()

    def start(self):
        """启动后台线程（立即检查一次，然后按间隔检查）"""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="alert-monitor", daemon=True)
        self._thread.start()
        self.log(f"告警监控已启动，间隔 {self.check_interval} 秒")

    def stop(self, timeout: Optional[float] = None):
        """停止后台线程"""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            self.log("告警监控已停止")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
