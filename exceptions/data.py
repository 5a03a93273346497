"""
数据相关异常类

处理告警解析、数据库读写、文件操作、配置校验等数据层异常。
"""

from typing import Any, Optional

from .base import DataException


class AlertParseError(DataException):
    """
    告警数据解析失败异常

    当页面存储或告警快照不是预期的 JSON 结构时抛出。
    """

    def __init__(
        self,
        source: str,
        reason: str,
        raw_data: Optional[str] = None,
    ):
        """
        初始化告警解析异常

        Args:
            source: 数据源（page / snapshot）
            reason: 解析失败原因
            raw_data: 原始数据片段（可选）
        """
        context = {"reason": reason}
        if raw_data is not None:
            context["raw_data_preview"] = raw_data[:100]  # 限制长度

        message = f"告警数据解析失败 - {source}: {reason}"
        super().__init__(message, source=source, context=context)


class StorageError(DataException):
    """
    数据库操作异常

    当 SQLite 读写失败时抛出。
    """

    def __init__(self, table: str, operation: str, reason: str):
        """
        初始化数据库异常

        Args:
            table: 表名
            operation: 操作类型（read/write/delete等）
            reason: 失败原因
        """
        context = {"operation": operation, "reason": reason}
        message = f"数据库{operation}失败 - {table}: {reason}"
        super().__init__(message, source=table, context=context)


class DataFileError(DataException):
    """
    数据文件操作异常

    当截图文件读写、删除等操作失败时抛出。
    """

    def __init__(self, file_path: str, operation: str, reason: str):
        """
        初始化数据文件异常

        Args:
            file_path: 文件路径
            operation: 操作类型（read/write/delete等）
            reason: 失败原因
        """
        context = {"operation": operation, "reason": reason}
        message = f"文件{operation}失败 - {file_path}: {reason}"
        super().__init__(message, source=file_path, context=context)


class ZoneNotFoundError(DataException):
    """区域不存在"""

    http_status = 404

    def __init__(self, zone_pk: int):
        super().__init__(f"区域不存在: ID {zone_pk}", source="zones", context={"id": zone_pk})


class ZoneAlreadyExistsError(DataException):
    """区域外部ID重复"""

    http_status = 409

    def __init__(self, zone_id: str):
        super().__init__(
            f"区域已存在: {zone_id}", source="zones", context={"zone_id": zone_id}
        )


class GroupSettingsNotFoundError(DataException):
    """群组设置不存在"""

    http_status = 404

    def __init__(self, group_id: str):
        super().__init__(
            f"群组设置不存在: {group_id}",
            source="group_settings",
            context={"group_id": group_id},
        )


class InvalidGroupSettingsError(DataException):
    """
    群组设置校验失败异常

    当间隔分钟数不在允许范围或字段类型错误时抛出。
    """

    http_status = 400

    def __init__(self, field: str, value: Any, reason: str):
        """
        初始化群组设置校验异常

        Args:
            field: 校验失败的字段名
            value: 实际值
            reason: 校验失败原因
        """
        context = {"field": field, "value": str(value), "reason": reason}
        message = f"群组设置校验失败 - {field}: {value} ({reason})"
        super().__init__(message, source="group_settings", context=context)
