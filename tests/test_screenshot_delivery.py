"""
截图投递单元测试
"""

import os
import shutil
import sys
import tempfile
import threading
import unittest
from datetime import datetime, timezone
from unittest.mock import Mock

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from mocks import MockLogger, MockMessenger

from core.capture_engine import CaptureEngine
from core.page_task_queue import PageTaskQueue
from core.screenshot_store import ScreenshotArtifact, ScreenshotStore
from exceptions import BrowserNotInitializedError, MessengerNotReadyError
from notifiers.screenshot_delivery import DeliveryResult, ScreenshotDelivery


def artifact(name="screenshot-1.png", image=b"\x89PNG"):
    return ScreenshotArtifact(name, f"/tmp/{name}", datetime.now(timezone.utc), image)


class TestScreenshotDelivery(unittest.TestCase):
    """测试截图投递"""

    def setUp(self):
        self.capture_engine = Mock()
        self.capture_engine.capture.return_value = artifact("screenshot-new.png")
        self.store = Mock()
        self.store.latest.return_value = None
        self.messenger = MockMessenger()
        self.delivery = ScreenshotDelivery(
            self.capture_engine, self.messenger, self.store, logger=MockLogger()
        )

    def test_capture_and_deliver(self):
        self.delivery.capture_and_deliver("a@g.us", caption="now")
        self.assertEqual(self.messenger.sent_images, [("a@g.us", "screenshot-new.png", "now")])
        self.assertEqual(self.messenger.sent_payloads, [b"\x89PNG"])

    def test_fan_out_isolates_failures(self):
        self.messenger.failing_groups = {"b@g.us"}

        results = self.delivery.fan_out(["a@g.us", "b@g.us", "c@g.us"], artifact())

        self.assertEqual([r.success for r in results], [True, False, True])
        self.assertIn("模拟发送失败", results[1].error)

    def test_send_current_uses_latest(self):
        self.store.latest.return_value = artifact("screenshot-old.png")

        results = self.delivery.send_current_to_groups(["a@g.us"], "hello")

        self.capture_engine.capture.assert_not_called()
        self.assertEqual(results, [DeliveryResult("a@g.us", True)])
        self.assertEqual(self.messenger.sent_images[0][1], "screenshot-old.png")

    def test_send_current_captures_when_empty(self):
        self.delivery.send_current_to_groups(["a@g.us"])
        self.capture_engine.capture.assert_called_once()

    def test_send_current_capture_failure(self):
        """截图失败时每个群组都返回失败结果"""
        self.capture_engine.capture.side_effect = BrowserNotInitializedError("capture")

        results = self.delivery.send_current_to_groups(["a@g.us", "b@g.us"])

        self.assertEqual([r.success for r in results], [False, False])
        self.assertEqual(self.messenger.sent_images, [])

    def test_send_current_not_ready(self):
        self.messenger.ready = False
        with self.assertRaises(MessengerNotReadyError):
            self.delivery.send_current_to_groups(["a@g.us"])

    def test_result_to_dict(self):
        self.assertEqual(DeliveryResult("a", True).to_dict(), {"groupId": "a", "success": True})
        self.assertEqual(
            DeliveryResult("a", False, "x").to_dict(),
            {"groupId": "a", "success": False, "error": "x"},
        )


class CountingPage:
    """每次截图写入不同内容的假页面"""

    def __init__(self):
        self.shots = 0
        self.lock = threading.Lock()

    def run_js(self, script, *args):
        if "readyState" in script:
            return "complete"
        return 1

    def get_screenshot(self, path=None, name=None, full_page=False):
        with self.lock:
            self.shots += 1
            content = f"\x89PNG shot-{self.shots}".encode("latin-1")
        with open(os.path.join(path, name), "wb") as f:
            f.write(content)


class StubBrowser:
    def __init__(self, page):
        self.page = page

    def require_page(self, operation):
        return self.page


class TestOverlappingDeliveries(unittest.TestCase):
    """同一时刻多次截图和发送（多个群组同一间隔、告警与定时任务重叠）"""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.logger = MockLogger()
        self.store = ScreenshotStore(self.test_dir, logger=self.logger)
        self.queue = PageTaskQueue(default_timeout=10)
        self.engine = CaptureEngine(
            StubBrowser(CountingPage()),
            self.queue,
            self.store,
            logger=self.logger,
            sleep=lambda seconds: None,
            network_idle_window=0,
        )
        self.messenger = MockMessenger()
        self.delivery = ScreenshotDelivery(
            self.engine, self.messenger, self.store, logger=self.logger
        )

    def tearDown(self):
        self.queue.shutdown()
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_older_artifact_delivered_after_newer_capture(self):
        """后一次截图删除了文件，前一次截图仍能发送"""
        first = self.delivery.capture()
        second = self.delivery.capture()

        self.assertFalse(os.path.exists(first.filepath))
        results = self.delivery.fan_out(["a@g.us", "b@g.us"], first)

        self.assertEqual([r.success for r in results], [True, True])
        self.assertEqual(self.messenger.sent_payloads, [b"\x89PNG shot-1", b"\x89PNG shot-1"])
        self.assertEqual(self.store.list_filenames(), [second.filename])

    def test_concurrent_capture_and_deliver(self):
        """多个线程同时截图并发送，全部成功"""
        groups = [f"{i}@g.us" for i in range(6)]
        errors = []

        def worker(group_id):
            try:
                self.delivery.capture_and_deliver(group_id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(g,)) for g in groups]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertEqual(errors, [])
        self.assertEqual(sorted(g for g, _, _ in self.messenger.sent_images), sorted(groups))
        self.assertTrue(all(payload.startswith(b"\x89PNG") for payload in self.messenger.sent_payloads))
        self.assertEqual(len(self.store.list_filenames()), 1)


if __name__ == "__main__":
    unittest.main()
