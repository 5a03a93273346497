"""
截图存储

截图目录中最多保留一张图片；每次截图前删除所有旧截图。
文件名包含 UTC 时间（微秒）和随机后缀，连续截图不会重名。
"""

import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config.constants import SCREENSHOT_PREFIX, SCREENSHOT_SUFFIX
from exceptions import DataFileError
from interfaces import ILogger

from .logger import get_logger


@dataclass(frozen=True)
class ScreenshotArtifact:
    filename: str
    filepath: str
    created_at: datetime
    # 截图时读入内存，发送不依赖磁盘文件（下一次截图会删除它）
    image: bytes = field(default=b"", repr=False, compare=False)

    def to_dict(self, url: str, is_authenticated: bool) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "url": url,
            "createdAt": self.created_at.isoformat(),
            "isAuthenticated": is_authenticated,
        }


class ScreenshotStore:
    """截图目录管理"""

    def __init__(self, directory: str, public_url: str = "", logger: Optional[ILogger] = None):
        """
        初始化截图存储

        Args:
            directory: 截图目录
            public_url: 对外访问的接口地址，用于生成截图链接
            logger: 日志记录器
        """
        self.directory = os.path.abspath(directory)
        self.public_url = public_url.rstrip("/")
        self.log = logger or get_logger()

    def ensure_dir(self):
        os.makedirs(self.directory, exist_ok=True)

    @staticmethod
    def is_screenshot(filename: str) -> bool:
        return filename.startswith(SCREENSHOT_PREFIX) and filename.endswith(SCREENSHOT_SUFFIX)

    @staticmethod
    def new_filename(now: Optional[datetime] = None) -> str:
        """
        生成唯一文件名

        Returns:
            str: 例如 screenshot-2026-01-30T12-10-00-123456Z-a1b2c3.png
        """
        now = now or datetime.now(timezone.utc)
        timestamp = now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        return f"{SCREENSHOT_PREFIX}{timestamp}-{uuid.uuid4().hex[:6]}{SCREENSHOT_SUFFIX}"

    def path_for(self, filename: str) -> str:
        return os.path.join(self.directory, filename)

    def url_for(self, filename: str) -> str:
        return f"{self.public_url}/screenshots/{filename}"

    def list_filenames(self) -> List[str]:
        """按文件名排序（即按时间）返回所有截图"""
        if not os.path.isdir(self.directory):
            return []
        return sorted(f for f in os.listdir(self.directory) if self.is_screenshot(f))

    def delete_all(self) -> int:
        """
        删除所有截图

        Returns:
            int: 删除的文件数量

        Raises:
            DataFileError: 删除失败
        """
        deleted = 0
        for filename in self.list_filenames():
            filepath = self.path_for(filename)
            try:
                os.remove(filepath)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise DataFileError(filepath, "delete", str(e)) from e
            deleted += 1
            self.log(f"已删除旧截图: {filename}", "DEBUG")
        return deleted

    def artifact_for(self, filename: str) -> ScreenshotArtifact:
        """
        读取截图文件（信息和图片内容）

        Raises:
            DataFileError: 文件不存在
        """
        filepath = self.path_for(filename)
        try:
            mtime = os.path.getmtime(filepath)
            with open(filepath, "rb") as f:
                image = f.read()
        except OSError as e:
            raise DataFileError(filepath, "read", str(e)) from e
        return ScreenshotArtifact(
            filename=filename,
            filepath=filepath,
            created_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
            image=image,
        )

    def latest(self) -> Optional[ScreenshotArtifact]:
        """
        最新的截图

        Returns:
            ScreenshotArtifact: 没有截图时返回 None
        """
        filenames = self.list_filenames()
        if not filenames:
            return None
        try:
            return self.artifact_for(filenames[-1])
        except DataFileError:
            # 读取时刚好被新截图删除
            return None
