"""
群组定时发送调度器单元测试

任务注册在暂停状态的 BackgroundScheduler 中，手动调用触发回调；
TestDeliverySchedulerThreads 使用真实调度线程
"""

import os
import sys
import threading
import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

from apscheduler.schedulers.background import BackgroundScheduler

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from mocks import MockLogger, MockMessenger

from exceptions import (
    DeliveryError,
    GroupSettingsNotFoundError,
    InvalidGroupSettingsError,
    StorageError,
)
from schedulers.delivery_scheduler import (
    TICK_DELIVERED,
    TICK_MESSENGER_NOT_READY,
    TICK_STOPPED,
    TICK_UNAUTHENTICATED,
    DeliveryScheduler,
    build_trigger,
)
from schedulers.group_settings_service import GroupSettingsService
from storage import Database, GroupSetting, GroupSettingsStore

UTC = timezone.utc


def at(hour, minute, second=0, microsecond=0, day=30):
    return datetime(2026, 1, day, hour, minute, second, microsecond, tzinfo=UTC)


class TestBuildTrigger(unittest.TestCase):
    """测试整点对齐"""

    def next_fire(self, interval, now, previous=None):
        return build_trigger(interval, "UTC").get_next_fire_time(previous, now)

    def test_ten_minute_interval(self):
        """12:03 启动的 10 分钟任务在 12:10 触发"""
        self.assertEqual(self.next_fire(10, at(12, 3, 27)), at(12, 10))

    def test_after_boundary_goes_to_next(self):
        self.assertEqual(self.next_fire(10, at(12, 10, 0, 1), previous=at(12, 10)), at(12, 20))

    def test_hourly_rolls_over(self):
        self.assertEqual(self.next_fire(60, at(23, 45)), at(0, 0, day=31))

    def test_every_minute(self):
        self.assertEqual(self.next_fire(1, at(12, 3, 59, 999)), at(12, 4))

    def test_late_fire_does_not_drift(self):
        """上一次触发晚了几秒，下一次仍对齐到边界"""
        self.assertEqual(self.next_fire(5, at(12, 5, 4), previous=at(12, 5)), at(12, 10))


class TestDeliveryScheduler(unittest.TestCase):
    """测试任务生命周期和触发逻辑"""

    def setUp(self):
        self.db = Database(":memory:")
        self.store = GroupSettingsStore(self.db)
        self.authenticator = Mock()
        self.authenticator.check_validity.return_value = True
        self.delivery = Mock()
        self.messenger = MockMessenger()
        self.logger = MockLogger()
        self.aps = BackgroundScheduler(timezone="UTC")
        self.aps.start(paused=True)
        self.scheduler = DeliveryScheduler(
            self.store,
            self.authenticator,
            self.delivery,
            self.messenger,
            logger=self.logger,
            scheduler=self.aps,
            timezone="UTC",
        )

    def tearDown(self):
        self.scheduler.shutdown()
        self.db.close()

    def add_group(self, group_id="g1@g.us", interval=10, enabled=True):
        return self.store.upsert(
            GroupSetting(group_id=group_id, interval_minutes=interval, enabled=enabled)
        )

    def test_start_job_registers_aligned_cron_job(self):
        self.add_group()
        before = datetime.now(UTC)

        job = self.scheduler.start_job("g1@g.us")

        aps_job = self.aps.get_job("g1@g.us")
        self.assertIn("minute='*/10'", str(aps_job.trigger))
        self.assertEqual(aps_job.args, (job,))
        next_run = self.scheduler.get_next_run("g1@g.us")
        self.assertEqual(next_run.minute % 10, 0)
        self.assertEqual(next_run.second, 0)
        self.assertLessEqual(next_run - before, timedelta(minutes=10))

    def test_hourly_job_fires_on_the_hour(self):
        self.add_group(interval=60)
        self.scheduler.start_job("g1@g.us")
        self.assertIn("minute='0'", str(self.aps.get_job("g1@g.us").trigger))

    def test_start_then_stop_leaves_no_jobs(self):
        self.add_group()
        self.scheduler.start_job("g1@g.us")
        self.scheduler.stop_job("g1@g.us")

        self.assertEqual(self.aps.get_jobs(), [])
        self.assertEqual(self.scheduler.active_job_ids(), [])
        self.assertIsNone(self.scheduler.get_next_run("g1@g.us"))

    def test_stop_missing_job_is_noop(self):
        self.scheduler.stop_job("unknown@g.us")
        self.assertEqual(self.aps.get_jobs(), [])

    def test_restart_replaces_job(self):
        """重复启动只保留一个任务"""
        self.add_group()
        first = self.scheduler.start_job("g1@g.us")
        second = self.scheduler.start_job("g1@g.us")

        self.assertEqual(len(self.aps.get_jobs()), 1)
        self.assertIs(self.scheduler.registry.get("g1@g.us"), second)
        self.assertIsNot(first, second)

    def test_disabled_group_has_no_job(self):
        self.add_group(enabled=False)
        self.assertIsNone(self.scheduler.start_job("g1@g.us"))
        self.assertEqual(self.aps.get_jobs(), [])

    def test_start_job_on_disabled_group_removes_old_job(self):
        self.add_group()
        self.scheduler.start_job("g1@g.us")
        self.add_group(enabled=False)

        self.assertIsNone(self.scheduler.start_job("g1@g.us"))
        self.assertEqual(self.aps.get_jobs(), [])

    def test_missing_group_has_no_job(self):
        self.assertIsNone(self.scheduler.start_job("unknown@g.us"))

    def test_fire_delivers_and_keeps_job(self):
        self.add_group()
        job = self.scheduler.start_job("g1@g.us")

        self.assertEqual(self.scheduler._on_fire(job), TICK_DELIVERED)

        self.delivery.capture_and_deliver.assert_called_once_with("g1@g.us")
        self.assertEqual(job.stats["delivered"], 1)
        self.assertEqual(job.fire_count, 1)
        self.assertIsNotNone(self.aps.get_job("g1@g.us"))

    def test_failure_keeps_job(self):
        self.add_group()
        self.delivery.capture_and_deliver.side_effect = DeliveryError("g1@g.us", "gateway down")
        job = self.scheduler.start_job("g1@g.us")

        self.scheduler._on_fire(job)

        self.assertIs(self.scheduler.registry.get("g1@g.us"), job)
        self.assertEqual(job.stats["failed"], 1)
        self.assertIsNotNone(self.aps.get_job("g1@g.us"))
        self.assertTrue(self.logger.has("ERROR", "定时发送失败"))

    def test_disabled_after_start_stops_job(self):
        self.add_group()
        job = self.scheduler.start_job("g1@g.us")
        self.add_group(enabled=False)

        self.assertEqual(self.scheduler._on_fire(job), TICK_STOPPED)

        self.assertIsNone(self.scheduler.registry.get("g1@g.us"))
        self.assertEqual(self.aps.get_jobs(), [])
        self.delivery.capture_and_deliver.assert_not_called()

    def test_stopped_job_does_not_deliver(self):
        """停止前已派发的回调不会发送"""
        self.add_group()
        job = self.scheduler.start_job("g1@g.us")
        self.scheduler.stop_job("g1@g.us")

        self.assertIsNone(self.scheduler._on_fire(job))
        self.delivery.capture_and_deliver.assert_not_called()

    def test_replaced_job_does_not_deliver(self):
        self.add_group()
        old = self.scheduler.start_job("g1@g.us")
        self.scheduler.start_job("g1@g.us")

        self.assertIsNone(self.scheduler._on_fire(old))
        self.delivery.capture_and_deliver.assert_not_called()

    def test_run_tick_skips_when_messenger_not_ready(self):
        self.add_group()
        self.messenger.ready = False
        self.assertEqual(self.scheduler.run_tick("g1@g.us"), TICK_MESSENGER_NOT_READY)

    def test_run_tick_skips_when_unauthenticated(self):
        self.add_group()
        self.authenticator.check_validity.return_value = False
        self.assertEqual(self.scheduler.run_tick("g1@g.us"), TICK_UNAUTHENTICATED)
        self.delivery.capture_and_deliver.assert_not_called()

    def test_run_tick_stops_deleted_group(self):
        self.assertEqual(self.scheduler.run_tick("gone@g.us"), TICK_STOPPED)

    def test_run_tick_delivers(self):
        self.add_group()
        self.assertEqual(self.scheduler.run_tick("g1@g.us"), TICK_DELIVERED)

    def test_load_and_start_all_jobs(self):
        self.add_group("a@g.us", 5)
        self.add_group("b@g.us", 15)
        self.add_group("c@g.us", 30, enabled=False)

        self.assertEqual(self.scheduler.load_and_start_all_jobs(), 2)
        self.assertEqual(self.scheduler.active_job_ids(), ["a@g.us", "b@g.us"])
        self.assertEqual(sorted(j.id for j in self.aps.get_jobs()), ["a@g.us", "b@g.us"])

        self.scheduler.stop_all_jobs()
        self.assertEqual(self.aps.get_jobs(), [])
        self.assertEqual(self.scheduler.active_job_ids(), [])


class TestDeliverySchedulerThreads(unittest.TestCase):
    """真实调度线程：任务触发发送，关闭后不留下线程"""

    def setUp(self):
        self.threads_before = set(threading.enumerate())
        self.db = Database(":memory:")
        self.store = GroupSettingsStore(self.db)
        self.store.upsert(GroupSetting(group_id="g1@g.us", interval_minutes=10))
        self.authenticator = Mock()
        self.authenticator.check_validity.return_value = True
        self.fired = threading.Event()
        self.delivery = Mock()
        self.delivery.capture_and_deliver.side_effect = lambda group_id: self.fired.set()
        self.scheduler = DeliveryScheduler(
            self.store,
            self.authenticator,
            self.delivery,
            MockMessenger(),
            logger=MockLogger(),
            timezone="UTC",
        )

    def tearDown(self):
        self.scheduler.shutdown()
        self.db.close()

    def new_live_threads(self):
        return [t for t in threading.enumerate() if t not in self.threads_before and t.is_alive()]

    def test_due_job_fires_on_scheduler_thread(self):
        self.scheduler.start_job("g1@g.us")

        self.scheduler.scheduler.modify_job("g1@g.us", next_run_time=datetime.now(UTC))

        self.assertTrue(self.fired.wait(timeout=5))
        self.delivery.capture_and_deliver.assert_called_with("g1@g.us")

    def test_shutdown_leaves_no_live_threads(self):
        self.scheduler.start_job("g1@g.us")
        self.scheduler.scheduler.modify_job("g1@g.us", next_run_time=datetime.now(UTC))
        self.assertTrue(self.fired.wait(timeout=5))
        self.assertNotEqual(self.new_live_threads(), [])

        self.scheduler.stop_all_jobs()
        self.assertEqual(self.scheduler.scheduler.get_jobs(), [])

        self.scheduler.shutdown()
        self.assertFalse(self.scheduler.scheduler.running)
        self.assertEqual(self.new_live_threads(), [])


class TestGroupSettingsService(unittest.TestCase):
    """测试设置修改与任务同步"""

    def setUp(self):
        self.db = Database(":memory:")
        self.store = GroupSettingsStore(self.db)
        self.scheduler = Mock()
        self.service = GroupSettingsService(self.store, self.scheduler, logger=MockLogger())

    def tearDown(self):
        self.db.close()

    def test_save_enabled_starts_job(self):
        self.service.save_settings(GroupSetting(group_id="g@g.us", interval_minutes=5))
        self.scheduler.start_job.assert_called_once_with("g@g.us")
        self.scheduler.stop_job.assert_not_called()

    def test_save_disabled_only_stops(self):
        self.service.save_settings(
            GroupSetting(group_id="g@g.us", interval_minutes=5, enabled=False)
        )
        self.scheduler.stop_job.assert_called_once_with("g@g.us")
        self.scheduler.start_job.assert_not_called()

    def test_invalid_interval_leaves_job_alone(self):
        with self.assertRaises(InvalidGroupSettingsError):
            self.service.save_settings(GroupSetting(group_id="g@g.us", interval_minutes=7))
        self.scheduler.stop_job.assert_not_called()
        self.assertIsNone(self.store.get("g@g.us"))

    def test_storage_failure_keeps_running_job(self):
        """保存失败时已启用群组的任务保持运行"""
        self.service.save_settings(GroupSetting(group_id="g@g.us", interval_minutes=10))
        self.scheduler.reset_mock()

        with patch.object(self.store, "upsert", side_effect=StorageError("group_settings", "upsert", "disk full")):
            with self.assertRaises(StorageError):
                self.service.save_settings(GroupSetting(group_id="g@g.us", interval_minutes=5))

        self.scheduler.stop_job.assert_not_called()
        self.scheduler.start_job.assert_not_called()
        self.assertEqual(self.store.get("g@g.us").interval_minutes, 10)

    def test_update_keeps_unspecified_fields(self):
        self.service.save_settings(
            GroupSetting(group_id="g@g.us", interval_minutes=5, react_on_message="sky")
        )
        updated = self.service.update_settings("g@g.us", interval_minutes=30, enabled=None)
        self.assertEqual(updated.interval_minutes, 30)
        self.assertTrue(updated.enabled)
        self.assertEqual(updated.react_on_message, "sky")

    def test_update_clears_keyword(self):
        self.service.save_settings(
            GroupSetting(group_id="g@g.us", interval_minutes=5, react_on_message="sky")
        )
        updated = self.service.update_settings("g@g.us", react_on_message=None)
        self.assertIsNone(updated.react_on_message)
        self.assertIsNone(self.store.get("g@g.us").react_on_message)

    def test_update_missing(self):
        with self.assertRaises(GroupSettingsNotFoundError):
            self.service.update_settings("nope@g.us", interval_minutes=5)

    def test_delete_stops_job_first(self):
        self.service.save_settings(GroupSetting(group_id="g@g.us", interval_minutes=5))
        self.scheduler.reset_mock()

        self.assertTrue(self.service.delete_settings("g@g.us"))
        self.scheduler.stop_job.assert_called_once_with("g@g.us")
        self.assertIsNone(self.store.get("g@g.us"))

    def test_delete_missing(self):
        with self.assertRaises(GroupSettingsNotFoundError):
            self.service.delete_settings("nope@g.us")


class TestSettingsServiceWithScheduler(unittest.TestCase):
    """设置服务驱动真实任务注册：每个启用的群组恰好一个任务"""

    def setUp(self):
        self.db = Database(":memory:")
        self.store = GroupSettingsStore(self.db)
        authenticator = Mock()
        authenticator.check_validity.return_value = True
        self.aps = BackgroundScheduler(timezone="UTC")
        self.aps.start(paused=True)
        self.scheduler = DeliveryScheduler(
            self.store, authenticator, Mock(), MockMessenger(),
            logger=MockLogger(), scheduler=self.aps, timezone="UTC",
        )
        self.service = GroupSettingsService(self.store, self.scheduler, logger=MockLogger())

    def tearDown(self):
        self.scheduler.shutdown()
        self.db.close()

    def test_storage_failure_keeps_one_job(self):
        self.service.save_settings(GroupSetting(group_id="g1@g.us", interval_minutes=10))

        with patch.object(self.store, "upsert", side_effect=StorageError("group_settings", "upsert", "disk full")):
            with self.assertRaises(StorageError):
                self.service.save_settings(GroupSetting(group_id="g1@g.us", interval_minutes=5))

        self.assertTrue(self.store.get("g1@g.us").enabled)
        self.assertEqual(self.scheduler.active_job_ids(), ["g1@g.us"])
        self.assertEqual([j.id for j in self.aps.get_jobs()], ["g1@g.us"])

    def test_interval_change_replaces_job(self):
        self.service.save_settings(GroupSetting(group_id="g1@g.us", interval_minutes=10))
        self.service.update_settings("g1@g.us", interval_minutes=5)

        jobs = self.aps.get_jobs()
        self.assertEqual(len(jobs), 1)
        self.assertIn("minute='*/5'", str(jobs[0].trigger))

    def test_disable_removes_job(self):
        self.service.save_settings(GroupSetting(group_id="g1@g.us", interval_minutes=10))
        self.service.update_settings("g1@g.us", enabled=False)
        self.assertEqual(self.aps.get_jobs(), [])


if __name__ == "__main__":
    unittest.main()
