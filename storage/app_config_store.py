"""
应用配置存储

app_config 表只有一行（id=1），保存地图服务令牌、告警快照和地图中心。
"""

import json
from datetime import datetime
from typing import List, Optional

from exceptions import StorageError

from .database import Database
from .models import Credential

TABLE = "app_config"


class AppConfigStore:
    """单例配置行的读写"""

    def __init__(self, database: Database):
        self.db = database

    def _ensure_row(self, conn):
        conn.execute(
            "INSERT OR IGNORE INTO app_config (id, updated_at) VALUES (1, ?)",
            (datetime.now().isoformat(),),
        )

    def _update(self, column_values: dict):
        assignments = ", ".join(f"{column}=?" for column in column_values)
        params = list(column_values.values()) + [datetime.now().isoformat()]
        with self.db.transaction(TABLE) as conn:
            self._ensure_row(conn)
            conn.execute(
                f"UPDATE app_config SET {assignments}, updated_at=? WHERE id = 1",
                params,
            )

    def _read_column(self, column: str):
        row = self.db.fetch_one(TABLE, f"SELECT {column} FROM app_config WHERE id = 1")
        if row is None:
            return None
        return row[column]

    def get_credential(self) -> Optional[Credential]:
        """
        读取令牌

        Returns:
            Credential: 令牌，未保存时返回 None
        """
        row = self.db.fetch_one(
            TABLE, "SELECT damba_token, token_expires_at FROM app_config WHERE id = 1"
        )
        if row is None or not row["damba_token"]:
            return None
        return Credential(
            token=row["damba_token"],
            expires_at=row["token_expires_at"],
        )

    def save_credential(self, credential: Credential):
        """整体覆盖令牌"""
        self._update(
            {"damba_token": credential.token, "token_expires_at": credential.expires_at}
        )

    def get_alert_snapshot(self) -> Optional[str]:
        return self._read_column("alert_snapshot")

    def save_alert_snapshot(self, snapshot: str):
        self._update({"alert_snapshot": snapshot})

    def get_map_center(self) -> Optional[List[float]]:
        """
        读取地图中心

        Returns:
            List[float]: [纬度, 经度]，未设置时返回 None
        """
        raw = self._read_column("map_center")
        if not raw:
            return None
        try:
            lat, lng = json.loads(raw)
            return [float(lat), float(lng)]
        except (ValueError, TypeError) as e:
            raise StorageError(TABLE, "read", f"地图中心格式错误: {raw}") from e

    def save_map_center(self, latitude: float, longitude: float):
        self._update({"map_center": json.dumps([float(latitude), float(longitude)])})
