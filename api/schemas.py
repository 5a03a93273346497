"""
HTTP 请求体模型

字段名与前端约定一致（camelCase）。
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from config.constants import ALLOWED_INTERVAL_MINUTES


def _check_interval(value: Optional[int]) -> Optional[int]:
    if value is not None and value not in ALLOWED_INTERVAL_MINUTES:
        raise ValueError(f"intervalMinutes must be one of {list(ALLOWED_INTERVAL_MINUTES)}")
    return value


class TokenRequest(BaseModel):
    token: str = Field(min_length=1)


class MapCenterRequest(BaseModel):
    coordinates: List[float] = Field(min_length=2, max_length=2)

    @field_validator("coordinates")
    @classmethod
    def check_range(cls, value: List[float]) -> List[float]:
        lat, lng = value
        if not -90 <= lat <= 90:
            raise ValueError("latitude must be between -90 and 90")
        if not -180 <= lng <= 180:
            raise ValueError("longitude must be between -180 and 180")
        return value


class ZoneCreateRequest(BaseModel):
    zoneId: str = Field(min_length=1)
    name: str = Field(min_length=1)


class ZoneUpdateRequest(BaseModel):
    name: str = Field(min_length=1)


class GroupSettingsRequest(BaseModel):
    groupId: str = Field(min_length=1)
    groupName: str = ""
    intervalMinutes: int
    enabled: bool = True
    reactOnMessage: Optional[str] = None
    shouldAlert: bool = False
    zoneIds: List[str] = Field(default_factory=list)

    @field_validator("intervalMinutes")
    @classmethod
    def check_interval(cls, value):
        return _check_interval(value)


class GroupSettingsUpdateRequest(BaseModel):
    groupName: Optional[str] = None
    intervalMinutes: Optional[int] = None
    enabled: Optional[bool] = None
    reactOnMessage: Optional[str] = None
    shouldAlert: Optional[bool] = None
    zoneIds: Optional[List[str]] = None

    @field_validator("intervalMinutes")
    @classmethod
    def check_interval(cls, value):
        return _check_interval(value)

    def to_changes(self) -> Dict[str, Any]:
        """请求中出现的字段（显式 null 也包含在内），键为 GroupSetting 字段名"""
        return {
            UPDATE_FIELD_NAMES[name]: value
            for name, value in self.model_dump(exclude_unset=True).items()
        }


UPDATE_FIELD_NAMES = {
    "groupName": "group_name",
    "intervalMinutes": "interval_minutes",
    "enabled": "enabled",
    "reactOnMessage": "react_on_message",
    "shouldAlert": "should_alert",
    "zoneIds": "zone_ids",
}


class SendMessageRequest(BaseModel):
    groupIds: List[str] = Field(min_length=1)
    message: Optional[str] = None
