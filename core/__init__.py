"""
Core System Module - 核心系统模块

This module provides the browser-side foundation of the map screenshot
monitor: the headless browser, the serialized page task queue, session
handling, screenshot capture and alert snapshot comparison.

## Browser Management（浏览器管理）

### BrowserHandler
Owns the single ChromiumPage instance (headless, fixed window size,
persistent profile). Launch, close and restart.

### PageTaskQueue
Single-worker executor. Every operation touching the page runs through it,
one at a time. Nested calls from inside a task run inline.

## Session（会话）

### SessionState
Decodes the map service token (JWT payload, no signature check) and tracks
whether the session is authenticated and when it expires.

### SessionAuthenticator
Injects the token, expiry, feature flags and map centre into the page's
localStorage, then opens the map view. Persists credentials and restarts
the browser when the token changes.

## Capture（截图）

### CaptureEngine
Waits for the page to settle (load state, network idle, settle delay) and
writes one full-page PNG. Only the newest screenshot is kept on disk.

### ScreenshotStore
Screenshot directory, file naming and public URLs.

## Alerts（告警）

### AlertDiffEngine
Reads the alert list from localStorage, compares the count with the last
snapshot and reports the zones of the newest alert when the count grew.

## Logging（日志系统）

### get_logger()
Callable logger: console plus a daily file under logs/.

## Usage Example

```python
from core import BrowserHandler, PageTaskQueue, CaptureEngine, ScreenshotStore

browser = BrowserHandler(user_data_path="data/browser_profile")
queue = PageTaskQueue()
queue.run(browser.launch)

engine = CaptureEngine(browser, queue, ScreenshotStore("screenshots"))
artifact = engine.capture()
```
"""

# 延迟导入，避免依赖问题
__all__ = [
    "BrowserHandler",
    "PageTaskQueue",
    "SessionState",
    "SessionAuthenticator",
    "CaptureEngine",
    "ScreenshotStore",
    "ScreenshotArtifact",
    "AlertDiffEngine",
    "AlertCheckResult",
    "get_logger",
]


def __getattr__(name):
    """延迟导入，只在需要时加载模块"""
    if name == "BrowserHandler":
        from .browser_handler import BrowserHandler

        return BrowserHandler
    elif name == "PageTaskQueue":
        from .page_task_queue import PageTaskQueue

        return PageTaskQueue
    elif name == "SessionState":
        from .session_state import SessionState

        return SessionState
    elif name == "SessionAuthenticator":
        from .session_authenticator import SessionAuthenticator

        return SessionAuthenticator
    elif name == "CaptureEngine":
        from .capture_engine import CaptureEngine

        return CaptureEngine
    elif name in ("ScreenshotStore", "ScreenshotArtifact"):
        from . import screenshot_store

        return getattr(screenshot_store, name)
    elif name in ("AlertDiffEngine", "AlertCheckResult"):
        from . import alert_diff_engine

        return getattr(alert_diff_engine, name)
    elif name == "get_logger":
        from .logger import get_logger

        return get_logger
    raise AttributeError(f"module {__name__} has no attribute {name}")
