"""
截图引擎单元测试

使用假时钟和 Mock 页面，不启动真实浏览器
"""

import os
import shutil
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from unittest.mock import Mock

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from mocks import MockLogger

from core.capture_engine import READY_STATE_JS, RESOURCE_COUNT_JS, CaptureEngine
from core.page_task_queue import PageTaskQueue
from core.screenshot_store import ScreenshotStore
from exceptions import BrowserNotInitializedError, DataFileError


class FakeClock:
    """sleep 推进时间的假时钟"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_page(ready_state="complete", resource_counts=None):
    """创建 Mock 页面，get_screenshot 写入一个假 PNG"""
    counts = iter(resource_counts) if resource_counts is not None else None
    page = Mock()

    def run_js(script, *args):
        if script == READY_STATE_JS:
            return ready_state
        if script == RESOURCE_COUNT_JS:
            return next(counts) if counts is not None else 12
        return None

    def get_screenshot(path=None, name=None, full_page=False):
        filepath = os.path.join(path, name)
        with open(filepath, "wb") as f:
            f.write(b"\x89PNG fake")
        return filepath

    page.run_js.side_effect = run_js
    page.get_screenshot.side_effect = get_screenshot
    return page


class StubBrowser:
    def __init__(self, page):
        self.page = page

    def require_page(self, operation):
        if self.page is None:
            raise BrowserNotInitializedError(operation)
        return self.page


class TestScreenshotStore(unittest.TestCase):
    """测试截图目录管理"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.store = ScreenshotStore(self.test_dir, "http://api.test/", logger=MockLogger())

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_filename_format(self):
        now = datetime(2026, 1, 30, 12, 10, 0, 123456, tzinfo=timezone.utc)
        filename = ScreenshotStore.new_filename(now)
        self.assertTrue(filename.startswith("screenshot-2026-01-30T12-10-00-123456Z-"))
        self.assertTrue(filename.endswith(".png"))

    def test_filenames_unique_within_same_instant(self):
        now = datetime(2026, 1, 30, 12, 10, tzinfo=timezone.utc)
        names = {ScreenshotStore.new_filename(now) for _ in range(50)}
        self.assertEqual(len(names), 50)

    def test_url_for(self):
        self.assertEqual(
            self.store.url_for("screenshot-a.png"), "http://api.test/screenshots/screenshot-a.png"
        )

    def test_latest_and_delete_all(self):
        for name in ("screenshot-1.png", "screenshot-2.png", "notes.txt"):
            with open(os.path.join(self.test_dir, name), "w") as f:
                f.write("x")

        self.assertEqual(self.store.latest().filename, "screenshot-2.png")
        self.assertEqual(self.store.delete_all(), 2)
        self.assertIsNone(self.store.latest())
        # 非截图文件保留
        self.assertTrue(os.path.exists(os.path.join(self.test_dir, "notes.txt")))

    def test_latest_on_missing_directory(self):
        store = ScreenshotStore(os.path.join(self.test_dir, "missing"), logger=MockLogger())
        self.assertIsNone(store.latest())

    def test_artifact_for_missing_file(self):
        with self.assertRaises(DataFileError):
            self.store.artifact_for("screenshot-missing.png")


class TestCaptureEngine(unittest.TestCase):
    """测试截图流程"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.logger = MockLogger()
        self.store = ScreenshotStore(os.path.join(self.test_dir, "shots"), logger=self.logger)
        self.queue = PageTaskQueue(default_timeout=5)
        self.clock = FakeClock()

    def tearDown(self):
        self.queue.shutdown()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def make_engine(self, page):
        return CaptureEngine(
            StubBrowser(page),
            self.queue,
            self.store,
            logger=self.logger,
            sleep=self.clock.sleep,
            clock=self.clock,
        )

    def test_capture_writes_single_file(self):
        engine = self.make_engine(make_page())

        artifact = engine.capture()

        self.assertTrue(os.path.exists(artifact.filepath))
        self.assertEqual(self.store.list_filenames(), [artifact.filename])
        self.assertEqual(artifact.image, b"\x89PNG fake")

    def test_consecutive_captures_keep_only_newest(self):
        """连续截图文件名不同，目录中只保留最新一张"""
        engine = self.make_engine(make_page())

        first = engine.capture()
        second = engine.capture()

        self.assertNotEqual(first.filename, second.filename)
        self.assertEqual(self.store.list_filenames(), [second.filename])
        self.assertFalse(os.path.exists(first.filepath))

    def test_settle_delay_applied(self):
        engine = self.make_engine(make_page())
        engine.capture()
        self.assertIn(1.5, self.clock.sleeps)

    def test_screenshot_is_full_page(self):
        page = make_page()
        self.make_engine(page).capture()
        self.assertTrue(page.get_screenshot.call_args.kwargs["full_page"])

    def test_page_never_loads_still_captures(self):
        """页面加载超时只记录警告"""
        engine = self.make_engine(make_page(ready_state="loading"))

        artifact = engine.capture()

        self.assertTrue(os.path.exists(artifact.filepath))
        self.assertTrue(self.logger.has("WARNING", "未加载完成"))

    def test_network_never_idle_still_captures(self):
        busy_counts = range(1000)
        engine = self.make_engine(make_page(resource_counts=busy_counts))

        engine.capture()

        self.assertTrue(self.logger.has("WARNING", "未空闲"))

    def test_browser_not_initialized(self):
        engine = self.make_engine(None)
        with self.assertRaises(BrowserNotInitializedError):
            engine.capture()

    def test_screenshot_failure_raises_data_file_error(self):
        """截图失败时旧截图已被删除，不恢复"""
        engine = self.make_engine(make_page())
        first = engine.capture()

        failing = make_page()
        failing.get_screenshot.side_effect = RuntimeError("renderer crashed")
        engine.browser = StubBrowser(failing)

        with self.assertRaises(DataFileError):
            engine.capture()
        self.assertFalse(os.path.exists(first.filepath))
        self.assertIsNone(self.store.latest())


if __name__ == "__main__":
    unittest.main()
