# -*- coding: utf-8 -*-
"""
告警对比引擎

读取地图页面 localStorage 中的告警列表，与上一次保存的快照对比：
- 没有快照（首次检查）: 保存当前状态，不告警
- 有快照: 保存当前状态（无论是否告警），比较"有区域的告警"数量
- 两次数量都大于 0 且不相等时告警，告警区域取当前列表中最后一条告警的区域

数量从 0 变为非 0（页面刚加载时可能短暂为空）和从非 0 变为 0（告警解除）
都不告警。快照的读取、对比和保存在同一个页面任务中完成。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.constants import ALERTS_STORAGE_KEY
from exceptions import AlertParseError
from interfaces import ILogger
from storage import AppConfigStore

from .browser_handler import BrowserHandler
from .logger import get_logger
from .page_task_queue import PageTaskQueue
from .session_authenticator import DUMP_LOCAL_STORAGE_JS


@dataclass(frozen=True)
class Alert:
    id: Optional[str]
    created_at: Optional[str]
    alert_type: Optional[str]
    zone_ids: List[str]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def qualifies(self) -> bool:
        """有区域的告警才参与对比"""
        return bool(self.zone_ids)


@dataclass(frozen=True)
class AlertCheckResult:
    has_alert: bool
    alert_zone_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"hasAlert": self.has_alert, "alertZoneIds": list(self.alert_zone_ids)}


def _parse_alert(raw: Any, source: str) -> Alert:
    if not isinstance(raw, dict):
        raise AlertParseError(source, f"告警条目不是对象: {type(raw).__name__}")
    zone_ids = raw.get("alertZoneIds")
    if zone_ids is None:
        zone_ids = raw.get("zoneIds")
    if zone_ids is None:
        zone_ids = []
    if not isinstance(zone_ids, list):
        raise AlertParseError(source, f"告警区域不是列表: {zone_ids!r}")
    metadata = raw.get("metadata")
    return Alert(
        id=str(raw["id"]) if raw.get("id") is not None else None,
        created_at=raw.get("createdAt"),
        alert_type=raw.get("alertType"),
        zone_ids=[str(z) for z in zone_ids if z is not None and str(z) != ""],
        metadata=metadata if isinstance(metadata, dict) else {},
    )


def parse_alerts(blob: Optional[str], source: str = "page") -> List[Alert]:
    """
    从 localStorage 导出内容中解析告警列表

    Args:
        blob: JSON 字符串 {key: 字符串值}，其中 alerts 键的值本身是 JSON 字符串
        source: 数据来源（用于错误信息）

    Returns:
        List[Alert]: 告警列表，没有 alerts 键时为空

    Raises:
        AlertParseError: JSON 结构不正确
    """
    if blob is None:
        raise AlertParseError(source, "存储内容为空")
    try:
        storage = json.loads(blob)
    except ValueError as e:
        raise AlertParseError(source, f"存储内容不是JSON: {e}", raw_data=blob) from e
    if not isinstance(storage, dict):
        raise AlertParseError(source, "存储内容不是对象", raw_data=blob)

    raw_alerts = storage.get(ALERTS_STORAGE_KEY)
    if raw_alerts is None or raw_alerts == "":
        return []
    if isinstance(raw_alerts, str):
        try:
            raw_alerts = json.loads(raw_alerts)
        except ValueError as e:
            raise AlertParseError(source, f"alerts 不是JSON: {e}", raw_data=raw_alerts) from e

    if isinstance(raw_alerts, dict):
        raw_alerts = raw_alerts.get("alerts") or []
    if not isinstance(raw_alerts, list):
        raise AlertParseError(source, f"alerts 列表格式错误: {type(raw_alerts).__name__}")

    return [_parse_alert(item, source) for item in raw_alerts]


def qualifying_alerts(alerts: List[Alert]) -> List[Alert]:
    return [alert for alert in alerts if alert.qualifies]


def compare_alert_counts(previous_count: int, current_alerts: List[Alert]) -> AlertCheckResult:
    """
    对比告警数量

    Args:
        previous_count: 上次快照中有区域的告警数量
        current_alerts: 当前有区域的告警列表

    Returns:
        AlertCheckResult: 告警时附带最后一条告警的区域
    """
    current_count = len(current_alerts)
    has_alert = current_count > 0 and previous_count > 0 and current_count != previous_count
    if not has_alert:
        return AlertCheckResult(has_alert=False)
    return AlertCheckResult(has_alert=True, alert_zone_ids=list(current_alerts[-1].zone_ids))


class AlertDiffEngine:
    """告警对比引擎"""

    def __init__(
        self,
        browser: BrowserHandler,
        task_queue: PageTaskQueue,
        config_store: AppConfigStore,
        logger: Optional[ILogger] = None,
    ):
        self.browser = browser
        self.task_queue = task_queue
        self.config_store = config_store
        self.log = logger or get_logger()

    def should_alert(self) -> AlertCheckResult:
        """
        检查是否有新告警（页面任务）

        Raises:
            BrowserNotInitializedError: 浏览器未启动
            AlertParseError: 页面或快照中的告警无法解析
            StorageError: 快照读写失败
        """
        return self.task_queue.run(self._check_on_page)

    def _check_on_page(self) -> AlertCheckResult:
        page = self.browser.require_page("alert check")
        current_blob = page.run_js(DUMP_LOCAL_STORAGE_JS)
        current = qualifying_alerts(parse_alerts(current_blob, source="page"))

        previous_blob = self.config_store.get_alert_snapshot()
        if not previous_blob:
            self.config_store.save_alert_snapshot(current_blob)
            self.log(f"首次告警检查，已保存基线 ({len(current)} 条有区域的告警)")
            return AlertCheckResult(has_alert=False)

        try:
            previous = qualifying_alerts(parse_alerts(previous_blob, source="snapshot"))
        finally:
            # 快照损坏时也保存当前状态，下一次检查即可恢复
            self.config_store.save_alert_snapshot(current_blob)

        result = compare_alert_counts(len(previous), current)
        if result.has_alert:
            self.log(
                f"检测到新告警: {len(previous)} -> {len(current)} 条，区域 {result.alert_zone_ids}",
                "WARNING",
            )
        else:
            self.log(f"告警无变化: {len(previous)} -> {len(current)} 条", "DEBUG")
        return result
