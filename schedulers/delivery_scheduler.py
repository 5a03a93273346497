"""
群组定时发送调度器

每个启用的群组在 APScheduler 中有一个 cron 任务（任务ID = 群组ID），触发时间对齐到
整点分钟边界：间隔 10 分钟的群组在 :00/:10/:20... 发送，12:03 创建的任务第一次在
12:10 触发。下一次触发时间由 CronTrigger 计算，不累积漂移。

触发时：
- WhatsApp 未就绪: 跳过本次，任务保留
- 群组设置被删除或禁用: 停止任务
- 地图服务未登录: 跳过本次，任务保留
- 否则截图并发送；任何异常只记录日志，任务继续
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from core.logger import get_logger
from core.session_authenticator import SessionAuthenticator
from interfaces import ILogger, IMessenger, IScheduler
from notifiers.screenshot_delivery import ScreenshotDelivery
from storage import GroupSettingsStore

TICK_DELIVERED = "delivered"
TICK_MESSENGER_NOT_READY = "messenger_not_ready"
TICK_STOPPED = "stopped"
TICK_UNAUTHENTICATED = "unauthenticated"
TICK_FAILED = "failed"

# 触发延迟在此秒数内仍执行；积压的多次触发合并为一次
MISFIRE_GRACE_SECONDS = 30


def build_trigger(interval_minutes: int, timezone=None) -> CronTrigger:
    """
    按间隔生成对齐到分钟边界的 cron 触发器

    Args:
        interval_minutes: 间隔分钟数（整除 60）
        timezone: 时区，默认本地时区

    Returns:
        CronTrigger: 60 分钟为每小时整点，其余为 */interval
    """
    minute = "0" if interval_minutes >= 60 else f"*/{interval_minutes}"
    return CronTrigger(minute=minute, second=0, timezone=timezone)


@dataclass(eq=False)
class ScheduledJob:
    """一个群组的定时任务"""

    group_id: str
    interval_minutes: int
    fire_count: int = 0
    stats: Dict[str, int] = field(
        default_factory=lambda: {"delivered": 0, "skipped": 0, "failed": 0}
    )


class JobRegistry:
    """
    群组ID -> 定时任务

    登记和 APScheduler 任务的增删在同一把锁内完成，
    每个群组最多只有一个活动任务。
    """

    def __init__(self, scheduler: BackgroundScheduler):
        self._lock = threading.Lock()
        self._jobs: Dict[str, ScheduledJob] = {}
        self.scheduler = scheduler

    def set_job(self, job: ScheduledJob, trigger: CronTrigger, func) -> Optional[ScheduledJob]:
        """登记任务并替换同ID的 APScheduler 任务，返回被替换的旧任务"""
        with self._lock:
            previous = self._jobs.pop(job.group_id, None)
            self._jobs[job.group_id] = job
            self.scheduler.add_job(
                func,
                trigger,
                args=[job],
                id=job.group_id,
                name=f"deliver:{job.group_id}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=MISFIRE_GRACE_SECONDS,
            )
        return previous

    def clear_job(self, group_id: str) -> Optional[ScheduledJob]:
        """移除任务，任务不存在时返回 None"""
        with self._lock:
            job = self._jobs.pop(group_id, None)
            try:
                self.scheduler.remove_job(group_id)
            except JobLookupError:
                # 任务未登记
                pass
        return job

    def clear_all(self) -> List[ScheduledJob]:
        with self._lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
            self.scheduler.remove_all_jobs()
        return jobs

    def is_current(self, job: ScheduledJob) -> bool:
        with self._lock:
            return self._jobs.get(job.group_id) is job

    def get(self, group_id: str) -> Optional[ScheduledJob]:
        with self._lock:
            return self._jobs.get(group_id)

    def group_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._jobs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class DeliveryScheduler(IScheduler):
    """群组定时发送调度器"""

    def __init__(
        self,
        settings_store: GroupSettingsStore,
        authenticator: SessionAuthenticator,
        delivery: ScreenshotDelivery,
        messenger: IMessenger,
        logger: Optional[ILogger] = None,
        scheduler: Optional[BackgroundScheduler] = None,
        timezone=None,
    ):
        """
        初始化调度器

        Args:
            settings_store: 群组设置存储
            authenticator: 会话认证器（触发时检查登录状态）
            delivery: 截图投递
            messenger: WhatsApp 客户端
            logger: 日志记录器
            scheduler: APScheduler 调度器，默认新建 BackgroundScheduler
            timezone: 触发器时区，默认本地时区
        """
        self.settings_store = settings_store
        self.authenticator = authenticator
        self.delivery = delivery
        self.messenger = messenger
        self.log = logger or get_logger()
        self.timezone = timezone
        if scheduler is None:
            scheduler = BackgroundScheduler(timezone=timezone) if timezone else BackgroundScheduler()
        self.scheduler = scheduler
        self.registry = JobRegistry(self.scheduler)

    def _ensure_running(self):
        if not self.scheduler.running:
            self.scheduler.start()
            self.log("定时发送调度器已启动")

    def start_job(self, group_id: str) -> Optional[ScheduledJob]:
        """
        启动（或重启）群组任务

        Returns:
            ScheduledJob: 设置不存在或未启用时返回 None
        """
        setting = self.settings_store.get(group_id)
        if setting is None or not setting.enabled:
            self.stop_job(group_id)
            self.log(f"群组 {group_id} 设置不存在或未启用，不创建任务", "WARNING")
            return None

        self._ensure_running()
        job = ScheduledJob(group_id=group_id, interval_minutes=setting.interval_minutes)
        self.registry.set_job(
            job, build_trigger(setting.interval_minutes, self.timezone), self._on_fire
        )

        self.log(
            f"已启动群组任务 {setting.group_name or group_id} - 间隔 {setting.interval_minutes} 分钟，"
            f"下次发送 {self.get_next_run(group_id)}"
        )
        return job

    def _on_fire(self, job: ScheduledJob) -> Optional[str]:
        # 已移除或被替换的任务不再发送
        if not self.registry.is_current(job):
            return None

        job.fire_count += 1
        try:
            outcome = self.run_tick(job.group_id)
        except Exception as e:
            self.log(f"群组 {job.group_id} 定时发送失败: {e}", "ERROR")
            outcome = TICK_FAILED

        if outcome == TICK_DELIVERED:
            job.stats["delivered"] += 1
        elif outcome == TICK_FAILED:
            job.stats["failed"] += 1
        else:
            job.stats["skipped"] += 1
        return outcome

    def run_tick(self, group_id: str) -> str:
        """
        执行一次定时发送

        Returns:
            str: 本次结果（delivered / messenger_not_ready / stopped / unauthenticated）
        """
        if not self.messenger.is_ready():
            self.log(f"WhatsApp 未就绪，跳过群组 {group_id} 本次发送", "WARNING")
            return TICK_MESSENGER_NOT_READY

        setting = self.settings_store.get(group_id)
        if setting is None or not setting.enabled:
            self.log(f"群组 {group_id} 设置已删除或禁用，停止任务", "WARNING")
            self.stop_job(group_id)
            return TICK_STOPPED

        if not self.authenticator.check_validity():
            self.log(f"地图服务未登录，跳过群组 {group_id} 本次发送", "WARNING")
            return TICK_UNAUTHENTICATED

        self.delivery.capture_and_deliver(group_id)
        self.log(f"定时截图已发送到群组 {setting.group_name or group_id}", "SUCCESS")
        return TICK_DELIVERED

    def stop_job(self, group_id: str):
        job = self.registry.clear_job(group_id)
        if job is not None:
            self.log(f"已停止群组任务 {group_id}")

    def stop_all_jobs(self):
        jobs = self.registry.clear_all()
        if jobs:
            self.log(f"已停止 {len(jobs)} 个定时发送任务")

    def shutdown(self, wait: bool = True):
        """停止所有任务并关闭调度线程"""
        self.stop_all_jobs()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            self.log("定时发送调度器已关闭")

    def load_and_start_all_jobs(self) -> int:
        """
        启动所有已启用群组的任务

        Returns:
            int: 启动的任务数量
        """
        started = 0
        for setting in self.settings_store.list_enabled():
            if self.start_job(setting.group_id) is not None:
                started += 1
        self.log(f"已加载并启动 {started} 个定时发送任务")
        return started

    def active_job_ids(self) -> List[str]:
        return self.registry.group_ids()

    def get_next_run(self, group_id: str) -> Optional[datetime]:
        if self.registry.get(group_id) is None:
            return None
        aps_job = self.scheduler.get_job(group_id)
        return getattr(aps_job, "next_run_time", None) if aps_job else None
