"""
Schedulers Module - 调度器模块

Per-group periodic screenshot delivery.

## DeliveryScheduler
One APScheduler cron job per enabled group (job id = group id), run by a
BackgroundScheduler. Ticks are aligned to wall-clock boundaries of the
group's interval (e.g. every 10 minutes fires at :00, :10, :20 ...).

Each tick:
```
messenger ready?          no → skip
setting still enabled?    no → stop job
map session valid?        no → skip
  ↓
capture_and_deliver(group)
```

A failed tick is logged and the job keeps running. A job that was stopped
or replaced never delivers, even when its run was already dispatched.

## GroupSettingsService
Saves, updates and deletes group settings and keeps the scheduler in sync
(persist → start or stop; a failed save leaves the running job untouched).

Usage:
```python
from schedulers import DeliveryScheduler

scheduler = DeliveryScheduler(settings_store, authenticator, delivery, messenger)
scheduler.load_and_start_all_jobs()
...
scheduler.shutdown()
```
"""

__all__ = [
    "DeliveryScheduler",
    "ScheduledJob",
    "build_trigger",
    "GroupSettingsService",
]


def __getattr__(name):
    """延迟导入，只在需要时加载模块"""
    if name in ("DeliveryScheduler", "ScheduledJob", "build_trigger"):
        from . import delivery_scheduler

        return getattr(delivery_scheduler, name)
    elif name == "GroupSettingsService":
        from .group_settings_service import GroupSettingsService

        return GroupSettingsService
    raise AttributeError(f"module {__name__} has no attribute {name}")
