# -*- coding: utf-8 -*-
"""
WhatsApp 网关客户端

通过 WAHA 兼容的 HTTP 网关收发 WhatsApp 消息：
- GET  /api/sessions/{session}           会话状态（WORKING 表示已就绪）
- GET  /api/{session}/auth/qr            配对二维码
- GET  /api/{session}/groups             已加入的群组
- POST /api/sendImage / /api/sendText    发送图片 / 文本
- 入站消息由网关以 webhook 推送，见 parse_webhook()
"""
import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from config import load_config
from core.logger import get_logger
from exceptions import DeliveryError, MessengerNotReadyError, NotificationConfigError
from interfaces import IConfigLoader, ILogger, IMessenger

READY_STATUS = "WORKING"
GROUP_SUFFIX = "@g.us"


@dataclass(frozen=True)
class InboundMessage:
    """网关推送的一条消息"""

    chat_id: str
    sender: str
    body: str
    is_group: bool
    from_me: bool = False


def parse_webhook(payload: Dict[str, Any]) -> Optional[InboundMessage]:
    """
    解析网关 webhook 事件

    Args:
        payload: {"event": "message", "payload": {"from": ..., "body": ..., ...}}

    Returns:
        InboundMessage: 非消息事件或缺少字段时返回 None
    """
    if not isinstance(payload, dict) or payload.get("event") not in ("message", "message.any"):
        return None
    message = payload.get("payload")
    if not isinstance(message, dict):
        return None

    chat_id = message.get("from") or ""
    if message.get("fromMe") and message.get("to"):
        chat_id = message["to"]
    if not chat_id:
        return None

    is_group = chat_id.endswith(GROUP_SUFFIX)
    sender = message.get("participant") or message.get("author") or chat_id
    return InboundMessage(
        chat_id=chat_id,
        sender=str(sender),
        body=str(message.get("body") or ""),
        is_group=is_group,
        from_me=bool(message.get("fromMe")),
    )


class WhatsAppNotifier(IMessenger):
    """WhatsApp 网关客户端"""

    def __init__(
        self,
        config_loader: Optional[IConfigLoader] = None,
        logger: Optional[ILogger] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        """
        初始化网关客户端

        Args:
            config_loader: 配置加载器（读取 [whatsapp] 配置）
            logger: 日志记录器
            session: requests 会话（测试时替换）
            timeout: 单次请求超时（秒）
        """
        config = (config_loader or load_config()).get_config("whatsapp")
        self.api_url = config["api_url"].rstrip("/")
        self.session_name = config["session"]
        self.timeout = timeout
        self.log = logger or get_logger()

        if not self.api_url:
            raise NotificationConfigError("whatsapp.api_url", "网关地址未配置")

        self.http = session or requests.Session()
        self.http.headers.update({"Accept": "application/json"})
        if config.get("api_key"):
            self.http.headers.update({"X-Api-Key": config["api_key"]})

    def _url(self, path: str) -> str:
        return f"{self.api_url}{path}"

    def get_status(self) -> Dict[str, Any]:
        """
        查询网关会话状态

        Returns:
            Dict: {"status": ..., "isReady": bool}，网关不可达时 status 为 UNREACHABLE
        """
        try:
            response = self.http.get(
                self._url(f"/api/sessions/{self.session_name}"), timeout=self.timeout
            )
            response.raise_for_status()
            status = (response.json() or {}).get("status", "UNKNOWN")
        except (requests.exceptions.RequestException, ValueError) as e:
            self.log(f"查询 WhatsApp 会话状态失败: {e}", "WARNING")
            status = "UNREACHABLE"
        return {"status": status, "isReady": status == READY_STATUS}

    def is_ready(self) -> bool:
        return self.get_status()["isReady"]

    def get_qr_code(self) -> Optional[str]:
        """
        获取配对二维码内容

        Returns:
            str: 二维码原始字符串，已配对或网关不可达时返回 None
        """
        try:
            response = self.http.get(
                self._url(f"/api/{self.session_name}/auth/qr"),
                params={"format": "raw"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return (response.json() or {}).get("value")
        except (requests.exceptions.RequestException, ValueError) as e:
            self.log(f"获取配对二维码失败: {e}", "WARNING")
            return None

    def list_groups(self) -> List[Dict[str, str]]:
        """
        列出已加入的群组

        Raises:
            MessengerNotReadyError: 网关不可达或会话未就绪
        """
        try:
            response = self.http.get(
                self._url(f"/api/{self.session_name}/groups"), timeout=self.timeout
            )
            response.raise_for_status()
            raw_groups = response.json() or []
        except (requests.exceptions.RequestException, ValueError) as e:
            raise MessengerNotReadyError(status=str(e)) from e

        if isinstance(raw_groups, dict):
            raw_groups = list(raw_groups.values())

        groups = []
        for group in raw_groups:
            group_id = group.get("id")
            if isinstance(group_id, dict):
                group_id = group_id.get("_serialized") or group_id.get("user")
            if not group_id:
                continue
            name = group.get("subject") or group.get("name") or ""
            groups.append({"id": str(group_id), "name": str(name)})
        return groups

    def _post(self, path: str, chat_id: str, payload: Dict[str, Any]):
        try:
            response = self.http.post(self._url(path), json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DeliveryError(chat_id, str(e)) from e
        if response.status_code >= 400:
            raise DeliveryError(chat_id, response.text[:200], status_code=response.status_code)

    def send_image(self, chat_id: str, image: bytes, filename: str, caption: Optional[str] = None):
        """
        发送 PNG 图片

        Raises:
            DeliveryError: 图片为空或发送失败
        """
        if not image:
            raise DeliveryError(chat_id, f"截图内容为空: {filename}")

        payload = {
            "session": self.session_name,
            "chatId": chat_id,
            "file": {
                "mimetype": "image/png",
                "filename": filename,
                "data": base64.b64encode(image).decode("ascii"),
            },
        }
        if caption:
            payload["caption"] = caption
        self._post("/api/sendImage", chat_id, payload)
        self.log(f"截图已发送到 {chat_id}", "SUCCESS")

    def send_text(self, chat_id: str, text: str):
        """
        发送文本消息

        Raises:
            DeliveryError: 发送失败
        """
        self._post(
            "/api/sendText",
            chat_id,
            {"session": self.session_name, "chatId": chat_id, "text": text},
        )
