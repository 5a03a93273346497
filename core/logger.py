# -*- coding: utf-8 -*-
"""
日志记录模块
提供统一的日志记录功能，自动清理过期日志
"""
import os
import threading
from datetime import datetime, timedelta
from typing import Callable

# 多个线程（定时任务、告警监控、HTTP请求）共用同一个日志文件
_write_lock = threading.Lock()


def get_logger(log_dir: str = "logs", hours: int = 24) -> Callable:
    """
    获取一个日志记录器函数

    Args:
        log_dir: 日志文件存储目录
        hours: 日志保留时间（小时）

    Returns:
        Callable: 日志记录函数

    Example:
        >>> log = get_logger()
        >>> log("这是一条信息")
        >>> log("这是一条警告", "WARNING")
        >>> log("截图已发送", "SUCCESS")
    """
    os.makedirs(log_dir, exist_ok=True)

    # 清理过期日志
    cleanup_old_logs(log_dir, hours)

    def logger(message: str, level: str = "INFO"):
        """
        记录日志消息

        Args:
            message: 日志消息
            level: 日志级别 (DEBUG, INFO, WARNING, ERROR, SUCCESS)
        """
        now = datetime.now()
        log_line = f"[{now.strftime('%Y-%m-%d %H:%M:%S')}] [{level}] {message}"

        # 输出到控制台
        print(log_line)

        # 按天写入日志文件，进程跨天运行时自动切换文件
        log_path = os.path.join(log_dir, now.strftime("%Y-%m-%d.log"))
        try:
            with _write_lock:
                with open(log_path, "a", encoding="utf-8") as f:
                    f.write(log_line + "\n")
        except OSError as e:
            print(f"❌ 写入日志失败: {e}")

    return logger


def cleanup_old_logs(log_dir: str, hours: int = 24):
    """
    清理超过指定时间的旧日志文件

    Args:
        log_dir: 日志文件目录
        hours: 保留时间（小时）
    """
    if not os.path.exists(log_dir):
        return

    cutoff_time = datetime.now() - timedelta(hours=hours)

    for filename in os.listdir(log_dir):
        if not filename.endswith(".log"):
            continue

        filepath = os.path.join(log_dir, filename)

        try:
            file_mtime = datetime.fromtimestamp(os.path.getmtime(filepath))

            if file_mtime < cutoff_time:
                os.remove(filepath)
                print(f"[CLEANUP] 已删除过期日志: {filename}")
        except OSError as e:
            print(f"[ERROR] 删除日志文件失败 {filename}: {e}")
