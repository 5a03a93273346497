"""
持久化数据模型

to_dict() 输出与前端约定的 camelCase 字段名。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Credential:
    """地图服务令牌（单例）"""

    token: str
    expires_at: Optional[float] = None  # Unix 秒（原样保留小数），令牌不含 exp 时为 None


@dataclass(frozen=True)
class Zone:
    id: int
    zone_id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "zoneId": self.zone_id, "name": self.name}


@dataclass
class GroupSetting:
    """
    群组发送设置

    zone_ids 引用 Zone.zone_id（外部区域ID），不做外键约束，
    引用不存在的区域视为不匹配。
    """

    group_id: str
    interval_minutes: int
    group_name: str = ""
    enabled: bool = True
    react_on_message: Optional[str] = None
    should_alert: bool = False
    zone_ids: List[str] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groupId": self.group_id,
            "groupName": self.group_name,
            "intervalMinutes": self.interval_minutes,
            "enabled": bool(self.enabled),
            "reactOnMessage": self.react_on_message,
            "shouldAlert": bool(self.should_alert),
            "zoneIds": list(self.zone_ids),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
