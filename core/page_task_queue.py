"""
页面任务队列

浏览器页面只有一个，登录、截图、告警检查、令牌切换都会操作它。
所有页面操作提交到单线程执行器中串行执行；已经在队列线程上运行的任务
再调用其他页面操作时直接内联执行，避免自己等待自己。
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from config.constants import PAGE_TASK_TIMEOUT_SECONDS
from exceptions import NetworkTimeoutError


class PageTaskQueue:
    """串行页面任务队列"""

    def __init__(self, name: str = "page-worker", default_timeout: Optional[float] = PAGE_TASK_TIMEOUT_SECONDS):
        """
        初始化任务队列

        Args:
            name: 工作线程名前缀
            default_timeout: run() 等待结果的默认超时（秒），None 表示一直等待
        """
        self.default_timeout = default_timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._local = threading.local()

    def in_worker(self) -> bool:
        """当前线程是否正在执行队列任务"""
        return getattr(self._local, "active", False)

    def _wrap(self, func: Callable, args, kwargs):
        def task():
            self._local.active = True
            try:
                return func(*args, **kwargs)
            finally:
                self._local.active = False

        return task

    def submit(self, func: Callable, *args, **kwargs) -> Future:
        """
        提交任务，立即返回 Future

        在队列线程内调用时直接执行，返回已完成的 Future
        """
        if self.in_worker():
            future: Future = Future()
            try:
                future.set_result(func(*args, **kwargs))
            except BaseException as e:
                future.set_exception(e)
            return future
        return self._executor.submit(self._wrap(func, args, kwargs))

    def run(self, func: Callable, *args, timeout: Optional[float] = None, **kwargs) -> Any:
        """
        提交任务并等待结果，任务中的异常原样抛出

        Args:
            func: 页面操作
            timeout: 等待超时（秒），默认使用 default_timeout

        Raises:
            NetworkTimeoutError: 等待超时（任务仍会在队列中执行完）
        """
        if self.in_worker():
            return func(*args, **kwargs)
        wait = self.default_timeout if timeout is None else timeout
        future = self.submit(func, *args, **kwargs)
        try:
            return future.result(timeout=wait)
        except FutureTimeoutError as e:
            if future.done():
                # 任务自身抛出的 TimeoutError
                raise
            name = getattr(func, "__name__", repr(func))
            raise NetworkTimeoutError(f"页面任务 {name}", wait) from e

    def shutdown(self, wait: bool = True):
        """停止接收新任务"""
        self._executor.shutdown(wait=wait)
