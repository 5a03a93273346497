"""
截图引擎

等待地图页面稳定后截图：
1. document.readyState == "complete"（最多 10 秒）
2. 网络空闲：资源加载数量在 0.5 秒内不再变化（每 100 毫秒检查，最多 3 秒）
3. 固定等待 1.5 秒让地图瓦片和动画完成

等待超时只记录警告，照常截图。截图前删除所有旧截图，截图失败不恢复旧图。
"""

import time
from typing import Callable, Optional

from DrissionPage import ChromiumPage

from config.constants import (
    NETWORK_IDLE_TIMEOUT_SECONDS,
    NETWORK_IDLE_WINDOW_SECONDS,
    PAGE_LOAD_TIMEOUT_SECONDS,
    SETTLE_DELAY_SECONDS,
    STABILITY_POLL_INTERVAL,
)
from exceptions import DataFileError
from interfaces import ILogger

from .browser_handler import BrowserHandler
from .logger import get_logger
from .page_task_queue import PageTaskQueue
from .screenshot_store import ScreenshotArtifact, ScreenshotStore

READY_STATE_JS = "return document.readyState;"
RESOURCE_COUNT_JS = "return window.performance.getEntriesByType('resource').length;"


class CaptureEngine:
    """地图截图引擎"""

    def __init__(
        self,
        browser: BrowserHandler,
        task_queue: PageTaskQueue,
        store: ScreenshotStore,
        logger: Optional[ILogger] = None,
        page_load_timeout: float = PAGE_LOAD_TIMEOUT_SECONDS,
        network_idle_timeout: float = NETWORK_IDLE_TIMEOUT_SECONDS,
        network_idle_window: float = NETWORK_IDLE_WINDOW_SECONDS,
        poll_interval: float = STABILITY_POLL_INTERVAL,
        settle_delay: float = SETTLE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.browser = browser
        self.task_queue = task_queue
        self.store = store
        self.log = logger or get_logger()
        self.page_load_timeout = page_load_timeout
        self.network_idle_timeout = network_idle_timeout
        self.network_idle_window = network_idle_window
        self.poll_interval = poll_interval
        self.settle_delay = settle_delay
        self.sleep = sleep
        self.clock = clock

    def capture(self) -> ScreenshotArtifact:
        """
        截取当前地图（页面任务）

        Returns:
            ScreenshotArtifact: 新截图

        Raises:
            BrowserNotInitializedError: 浏览器未启动
            DataFileError: 截图文件写入或旧截图删除失败
        """
        return self.task_queue.run(self._capture_on_page)

    def _capture_on_page(self) -> ScreenshotArtifact:
        page = self.browser.require_page("capture")

        self.wait_for_stable(page)

        self.store.ensure_dir()
        self.store.delete_all()

        filename = self.store.new_filename()
        try:
            page.get_screenshot(path=self.store.directory, name=filename, full_page=True)
        except Exception as e:
            raise DataFileError(self.store.path_for(filename), "write", str(e)) from e

        # 仍在页面任务中读取，其他截图无法在此之前删除该文件
        artifact = self.store.artifact_for(filename)
        self.log(f"截图已保存: {artifact.filepath} ({len(artifact.image)} 字节)", "SUCCESS")
        return artifact

    def wait_for_stable(self, page: ChromiumPage) -> bool:
        """
        等待页面稳定

        Returns:
            bool: 所有条件都在超时前满足
        """
        loaded = self._wait_for_ready_state(page)
        if not loaded:
            self.log(f"页面 {self.page_load_timeout} 秒内未加载完成，继续截图", "WARNING")

        idle = self._wait_for_network_idle(page)
        if not idle:
            self.log(f"网络 {self.network_idle_timeout} 秒内未空闲，继续截图", "WARNING")

        self.sleep(self.settle_delay)
        return loaded and idle

    def _wait_for_ready_state(self, page: ChromiumPage) -> bool:
        deadline = self.clock() + self.page_load_timeout
        while True:
            if page.run_js(READY_STATE_JS) == "complete":
                return True
            if self.clock() >= deadline:
                return False
            self.sleep(self.poll_interval)

    def _wait_for_network_idle(self, page: ChromiumPage) -> bool:
        deadline = self.clock() + self.network_idle_timeout
        last_count = page.run_js(RESOURCE_COUNT_JS)
        stable_since = self.clock()
        while True:
            self.sleep(self.poll_interval)
            now = self.clock()
            count = page.run_js(RESOURCE_COUNT_JS)
            if count != last_count:
                last_count = count
                stable_since = now
            elif now - stable_since >= self.network_idle_window:
                return True
            if now >= deadline:
                return False
