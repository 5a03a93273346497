"""
群组设置服务

群组设置的增删改查，每次修改后同步调度器：
先保存设置，再按是否启用启动（替换）或停止任务；删除时先停止任务再删除。
"""

from typing import List, Optional

from core.logger import get_logger
from exceptions import GroupSettingsNotFoundError
from interfaces import ILogger, IScheduler
from storage import GroupSetting, GroupSettingsStore, validate_group_setting

CLEARABLE_FIELDS = ("react_on_message",)


class GroupSettingsService:
    """群组设置与定时任务同步"""

    def __init__(
        self,
        settings_store: GroupSettingsStore,
        scheduler: IScheduler,
        logger: Optional[ILogger] = None,
    ):
        self.settings_store = settings_store
        self.scheduler = scheduler
        self.log = logger or get_logger()

    def list_settings(self) -> List[GroupSetting]:
        return self.settings_store.list_all()

    def get_settings(self, group_id: str) -> GroupSetting:
        """
        Raises:
            GroupSettingsNotFoundError: 设置不存在
        """
        setting = self.settings_store.get(group_id)
        if setting is None:
            raise GroupSettingsNotFoundError(group_id)
        return setting

    def save_settings(self, setting: GroupSetting) -> GroupSetting:
        """
        新建或更新设置并同步定时任务

        Raises:
            InvalidGroupSettingsError: 字段不合法（任务保持不变）
        """
        validate_group_setting(setting)

        # 保存失败时旧任务保持不变；start_job 会替换同一群组的旧任务
        saved = self.settings_store.upsert(setting)
        if saved.enabled:
            self.scheduler.start_job(saved.group_id)
        else:
            self.scheduler.stop_job(saved.group_id)

        self.log(
            f"群组设置已保存: {saved.group_name or saved.group_id} "
            f"(间隔 {saved.interval_minutes} 分钟, 启用={saved.enabled}, 告警={saved.should_alert})"
        )
        return saved

    def update_settings(self, group_id: str, **changes) -> GroupSetting:
        """
        部分更新已有设置

        Args:
            group_id: 群组ID
            **changes: 要修改的字段（GroupSetting 字段名）。react_on_message 为 None 时清除关键词，
                其他字段为 None 时保持不变
        """
        current = self.get_settings(group_id)
        for name, value in changes.items():
            if name == "group_id" or not hasattr(current, name):
                continue
            if value is None and name not in CLEARABLE_FIELDS:
                continue
            setattr(current, name, value)
        return self.save_settings(current)

    def delete_settings(self, group_id: str) -> bool:
        """
        停止任务并删除设置

        Raises:
            GroupSettingsNotFoundError: 设置不存在
        """
        self.scheduler.stop_job(group_id)
        if not self.settings_store.delete(group_id):
            raise GroupSettingsNotFoundError(group_id)
        self.log(f"群组设置已删除: {group_id}")
        return True
