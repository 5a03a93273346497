"""
群组设置存储
"""

import json
from datetime import datetime
from typing import List, Optional

from config.constants import ALLOWED_INTERVAL_MINUTES
from exceptions import InvalidGroupSettingsError

from .database import Database
from .models import GroupSetting

TABLE = "group_settings"

_COLUMNS = (
    "group_id, group_name, interval_minutes, enabled, react_on_message, "
    "should_alert, zone_ids_json, created_at, updated_at"
)


def validate_group_setting(setting: GroupSetting):
    """
    校验群组设置

    Raises:
        InvalidGroupSettingsError: 字段不合法
    """
    if not setting.group_id or not str(setting.group_id).strip():
        raise InvalidGroupSettingsError("group_id", setting.group_id, "不能为空")
    if setting.interval_minutes not in ALLOWED_INTERVAL_MINUTES:
        raise InvalidGroupSettingsError(
            "interval_minutes",
            setting.interval_minutes,
            f"必须是 {list(ALLOWED_INTERVAL_MINUTES)} 之一",
        )
    if not isinstance(setting.zone_ids, list):
        raise InvalidGroupSettingsError("zone_ids", setting.zone_ids, "必须是列表")


class GroupSettingsStore:
    """群组设置增删改查"""

    def __init__(self, database: Database):
        self.db = database

    @staticmethod
    def _to_setting(row) -> GroupSetting:
        try:
            zone_ids = json.loads(row["zone_ids_json"] or "[]")
        except ValueError:
            zone_ids = []
        keyword = row["react_on_message"]
        return GroupSetting(
            group_id=str(row["group_id"]),
            group_name=str(row["group_name"] or ""),
            interval_minutes=int(row["interval_minutes"]),
            enabled=bool(int(row["enabled"])),
            react_on_message=keyword if keyword else None,
            should_alert=bool(int(row["should_alert"])),
            zone_ids=[str(z) for z in zone_ids if z],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get(self, group_id: str) -> Optional[GroupSetting]:
        row = self.db.fetch_one(
            TABLE, f"SELECT {_COLUMNS} FROM group_settings WHERE group_id = ?", (group_id,)
        )
        return self._to_setting(row) if row else None

    def list_all(self) -> List[GroupSetting]:
        rows = self.db.fetch_all(TABLE, f"SELECT {_COLUMNS} FROM group_settings ORDER BY group_id")
        return [self._to_setting(row) for row in rows]

    def list_enabled(self) -> List[GroupSetting]:
        rows = self.db.fetch_all(
            TABLE, f"SELECT {_COLUMNS} FROM group_settings WHERE enabled = 1 ORDER BY group_id"
        )
        return [self._to_setting(row) for row in rows]

    def list_alerting(self) -> List[GroupSetting]:
        """所有开启告警推送的群组"""
        rows = self.db.fetch_all(
            TABLE,
            f"SELECT {_COLUMNS} FROM group_settings WHERE should_alert = 1 ORDER BY group_id",
        )
        return [self._to_setting(row) for row in rows]

    def upsert(self, setting: GroupSetting) -> GroupSetting:
        """
        新建或整体更新群组设置

        Raises:
            InvalidGroupSettingsError: 字段不合法
        """
        validate_group_setting(setting)
        now = datetime.now().isoformat()
        keyword = (setting.react_on_message or "").strip() or None
        zone_ids = [str(z).strip() for z in setting.zone_ids if str(z).strip()]

        with self.db.transaction(TABLE) as conn:
            conn.execute(
                """
                INSERT INTO group_settings (
                    group_id, group_name, interval_minutes, enabled, react_on_message,
                    should_alert, zone_ids_json, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(group_id) DO UPDATE SET
                    group_name=excluded.group_name,
                    interval_minutes=excluded.interval_minutes,
                    enabled=excluded.enabled,
                    react_on_message=excluded.react_on_message,
                    should_alert=excluded.should_alert,
                    zone_ids_json=excluded.zone_ids_json,
                    updated_at=excluded.updated_at
                """,
                (
                    setting.group_id,
                    setting.group_name or "",
                    int(setting.interval_minutes),
                    1 if setting.enabled else 0,
                    keyword,
                    1 if setting.should_alert else 0,
                    json.dumps(zone_ids),
                    now,
                    now,
                ),
            )
        return self.get(setting.group_id)

    def delete(self, group_id: str) -> bool:
        """
        删除群组设置

        Returns:
            bool: 是否删除了记录
        """
        with self.db.transaction(TABLE) as conn:
            cursor = conn.execute("DELETE FROM group_settings WHERE group_id = ?", (group_id,))
            deleted = cursor.rowcount > 0
        return deleted
