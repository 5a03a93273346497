"""
Processors Module - 处理器模块

Event-driven processing on top of the capture and delivery components.

## AlertMonitor
Background thread polling the map alert list every few seconds (5-60s).
When the alert count grows, the zones of the newest alert are matched
against each alerting group's configured zones; matching groups receive a
fresh screenshot.

Zone matching:
- only zones that still exist in the zone table count
- a group with no zones never matches

Usage:
```python
from processors import AlertMonitor

monitor = AlertMonitor(authenticator, diff_engine, delivery, settings_store, zone_store)
monitor.start()
...
monitor.stop()
```

## MessageReactionRouter
Handles inbound WhatsApp messages:
- group message containing the group's keyword → screenshot to that group
- direct "/token <value>" or "token: <value>" → update the map token
"""

__all__ = [
    "AlertMonitor",
    "MessageReactionRouter",
    "parse_token_command",
]


def __getattr__(name):
    """延迟导入，只在需要时加载模块"""
    if name == "AlertMonitor":
        from .alert_monitor import AlertMonitor

        return AlertMonitor
    elif name in ("MessageReactionRouter", "parse_token_command"):
        from . import message_reaction_router

        return getattr(message_reaction_router, name)
    raise AttributeError(f"module {__name__} has no attribute {name}")
