"""
SQLite 数据库连接

所有存储类共用一个连接；连接在多个线程间共享（定时任务线程、告警监控线程、
HTTP 工作线程），每次访问都在锁内完成。
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from exceptions import StorageError

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS app_config (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        damba_token TEXT,
        token_expires_at INTEGER,
        alert_snapshot TEXT,
        map_center TEXT,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS zones (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        zone_id TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS group_settings (
        group_id TEXT PRIMARY KEY,
        group_name TEXT NOT NULL DEFAULT '',
        interval_minutes INTEGER NOT NULL,
        enabled INTEGER NOT NULL DEFAULT 1,
        react_on_message TEXT,
        should_alert INTEGER NOT NULL DEFAULT 0,
        zone_ids_json TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_group_settings_enabled ON group_settings(enabled)",
)


class Database:
    """SQLite 连接封装"""

    def __init__(self, path: str):
        """
        打开（必要时创建）数据库文件并初始化表结构

        Args:
            path: 数据库文件路径，":memory:" 表示内存数据库
        """
        self.path = path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self.conn: Optional[sqlite3.Connection] = sqlite3.connect(
            path, check_same_thread=False
        )
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        with self.transaction("schema") as conn:
            for statement in SCHEMA:
                conn.execute(statement)

    @contextmanager
    def transaction(self, table: str) -> Iterator[sqlite3.Connection]:
        """
        在锁内执行一组写操作，成功提交，失败回滚

        Args:
            table: 相关表名（用于错误信息）

        Raises:
            StorageError: SQLite 操作失败
        """
        with self._lock:
            if self.conn is None:
                raise StorageError(table, "write", "数据库已关闭")
            try:
                yield self.conn
                self.conn.commit()
            except sqlite3.IntegrityError:
                self.conn.rollback()
                raise
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StorageError(table, "write", str(e)) from e

    def fetch_one(self, table: str, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            if self.conn is None:
                raise StorageError(table, "read", "数据库已关闭")
            try:
                return self.conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise StorageError(table, "read", str(e)) from e

    def fetch_all(self, table: str, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            if self.conn is None:
                raise StorageError(table, "read", "数据库已关闭")
            try:
                return self.conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(table, "read", str(e)) from e

    def close(self):
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
