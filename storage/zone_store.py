"""
区域存储

区域用外部ID（zone_id，与地图服务告警里的 alertZoneIds 对应）标识，
群组设置按 zone_id 引用区域。
"""

import sqlite3
from typing import Iterable, List, Set

from exceptions import ZoneAlreadyExistsError, ZoneNotFoundError

from .database import Database
from .models import Zone

TABLE = "zones"


class ZoneStore:
    """区域增删改查"""

    def __init__(self, database: Database):
        self.db = database

    @staticmethod
    def _to_zone(row) -> Zone:
        return Zone(id=int(row["id"]), zone_id=str(row["zone_id"]), name=str(row["name"]))

    def list_zones(self) -> List[Zone]:
        """按名称排序返回所有区域"""
        rows = self.db.fetch_all(TABLE, "SELECT id, zone_id, name FROM zones ORDER BY name")
        return [self._to_zone(row) for row in rows]

    def get_zone(self, zone_pk: int) -> Zone:
        """
        按内部ID读取区域

        Raises:
            ZoneNotFoundError: 区域不存在
        """
        row = self.db.fetch_one(
            TABLE, "SELECT id, zone_id, name FROM zones WHERE id = ?", (zone_pk,)
        )
        if row is None:
            raise ZoneNotFoundError(zone_pk)
        return self._to_zone(row)

    def create_zone(self, zone_id: str, name: str) -> Zone:
        """
        新建区域

        Raises:
            ZoneAlreadyExistsError: zone_id 已存在
        """
        try:
            with self.db.transaction(TABLE) as conn:
                cursor = conn.execute(
                    "INSERT INTO zones (zone_id, name) VALUES (?, ?)", (zone_id, name)
                )
                new_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise ZoneAlreadyExistsError(zone_id) from e
        return Zone(id=int(new_id), zone_id=zone_id, name=name)

    def update_zone(self, zone_pk: int, name: str) -> Zone:
        """重命名区域（zone_id 不可修改）"""
        zone = self.get_zone(zone_pk)
        with self.db.transaction(TABLE) as conn:
            conn.execute("UPDATE zones SET name = ? WHERE id = ?", (name, zone_pk))
        return Zone(id=zone.id, zone_id=zone.zone_id, name=name)

    def delete_zone(self, zone_pk: int) -> Zone:
        """删除区域，引用它的群组设置保持不变"""
        zone = self.get_zone(zone_pk)
        with self.db.transaction(TABLE) as conn:
            conn.execute("DELETE FROM zones WHERE id = ?", (zone_pk,))
        return zone

    def existing_zone_ids(self, zone_ids: Iterable[str]) -> Set[str]:
        """
        过滤出实际存在的 zone_id

        Args:
            zone_ids: 待检查的外部区域ID

        Returns:
            Set[str]: 存在于区域表中的ID
        """
        wanted = {str(z) for z in zone_ids if z}
        if not wanted:
            return set()
        placeholders = ", ".join("?" for _ in wanted)
        rows = self.db.fetch_all(
            TABLE,
            f"SELECT zone_id FROM zones WHERE zone_id IN ({placeholders})",
            tuple(wanted),
        )
        return {str(row["zone_id"]) for row in rows}
