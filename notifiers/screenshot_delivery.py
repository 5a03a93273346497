"""
截图投递

定时任务、告警监控、关键词触发和手动发送共用的"截图 + 发送"流程。
批量发送时每个群组独立处理，一个群组失败不影响其他群组。
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from core.capture_engine import CaptureEngine
from core.logger import get_logger
from core.screenshot_store import ScreenshotArtifact, ScreenshotStore
from exceptions import DambaMonitorException, MessengerNotReadyError
from interfaces import ILogger, IMessenger


@dataclass(frozen=True)
class DeliveryResult:
    group_id: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"groupId": self.group_id, "success": self.success}
        if self.error is not None:
            result["error"] = self.error
        return result


class ScreenshotDelivery:
    """截图投递"""

    def __init__(
        self,
        capture_engine: CaptureEngine,
        messenger: IMessenger,
        store: ScreenshotStore,
        logger: Optional[ILogger] = None,
    ):
        self.capture_engine = capture_engine
        self.messenger = messenger
        self.store = store
        self.log = logger or get_logger()

    def capture(self) -> ScreenshotArtifact:
        return self.capture_engine.capture()

    def deliver(self, group_id: str, artifact: ScreenshotArtifact, caption: Optional[str] = None):
        """
        发送截图到一个群组

        使用截图时读入的图片内容，之后的截图删除文件也不影响发送

        Raises:
            DeliveryError: 发送失败
        """
        self.messenger.send_image(group_id, artifact.image, artifact.filename, caption)

    def capture_and_deliver(self, group_id: str, caption: Optional[str] = None) -> ScreenshotArtifact:
        """截图并发送到一个群组"""
        artifact = self.capture()
        self.deliver(group_id, artifact, caption)
        return artifact

    def fan_out(
        self,
        group_ids: Iterable[str],
        artifact: ScreenshotArtifact,
        caption: Optional[str] = None,
    ) -> List[DeliveryResult]:
        """
        把同一张截图发送到多个群组

        Returns:
            List[DeliveryResult]: 每个群组的结果
        """
        results = []
        for group_id in group_ids:
            try:
                self.deliver(group_id, artifact, caption)
                results.append(DeliveryResult(group_id=group_id, success=True))
            except DambaMonitorException as e:
                self.log(f"发送到 {group_id} 失败: {e}", "ERROR")
                results.append(DeliveryResult(group_id=group_id, success=False, error=e.message))
        return results

    def send_current_to_groups(
        self, group_ids: Iterable[str], message: Optional[str] = None
    ) -> List[DeliveryResult]:
        """
        手动发送当前截图（没有截图时先截一张）

        Raises:
            MessengerNotReadyError: WhatsApp 客户端未就绪
        """
        group_ids = list(group_ids)
        if not self.messenger.is_ready():
            raise MessengerNotReadyError()

        artifact = self.store.latest()
        if artifact is None:
            try:
                artifact = self.capture()
            except DambaMonitorException as e:
                self.log(f"手动发送前截图失败: {e}", "ERROR")
                return [
                    DeliveryResult(group_id=group_id, success=False, error=e.message)
                    for group_id in group_ids
                ]

        return self.fan_out(group_ids, artifact, message)
