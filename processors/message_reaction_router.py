"""
消息触发路由

处理 WhatsApp 入站消息：
- 私聊 "/token <令牌>" 或 "token: <令牌>" → 更新地图服务令牌并回复结果
- 群聊消息包含该群设置的关键词（不区分大小写）→ 立即截图发送到该群
"""

import re
from typing import Iterable, Optional

from core.logger import get_logger
from core.session_authenticator import SessionAuthenticator
from exceptions import DambaMonitorException
from interfaces import ILogger, IMessenger
from notifiers.screenshot_delivery import ScreenshotDelivery
from notifiers.whatsapp_notifier import InboundMessage
from storage import GroupSettingsStore

TOKEN_COMMAND = re.compile(r"^\s*(?:/token\s+|token\s*:\s*)(\S+)\s*$", re.IGNORECASE)

ACTION_IGNORED = "ignored"
ACTION_TOKEN_UPDATED = "token_updated"
ACTION_TOKEN_FAILED = "token_failed"
ACTION_DELIVERED = "delivered"
ACTION_SKIPPED = "skipped"


def parse_token_command(text: str) -> Optional[str]:
    """
    提取令牌更新命令中的令牌

    Returns:
        str: 令牌，不是命令时返回 None
    """
    match = TOKEN_COMMAND.match(text or "")
    return match.group(1) if match else None


def _normalize_number(value: str) -> str:
    return re.sub(r"\D", "", value.split("@", 1)[0])


class MessageReactionRouter:
    """入站消息处理"""

    def __init__(
        self,
        authenticator: SessionAuthenticator,
        delivery: ScreenshotDelivery,
        messenger: IMessenger,
        settings_store: GroupSettingsStore,
        admin_numbers: Iterable[str] = (),
        logger: Optional[ILogger] = None,
    ):
        """
        Args:
            admin_numbers: 允许私聊更新令牌的号码，为空时不限制
        """
        self.authenticator = authenticator
        self.delivery = delivery
        self.messenger = messenger
        self.settings_store = settings_store
        self.admin_numbers = {_normalize_number(n) for n in admin_numbers if n}
        self.log = logger or get_logger()

    def handle(self, message: InboundMessage) -> str:
        """
        处理一条消息

        Returns:
            str: 处理结果（ignored / token_updated / token_failed / delivered / skipped）
        """
        if message.from_me:
            return ACTION_IGNORED
        if message.is_group:
            return self._handle_group_message(message)
        return self._handle_direct_message(message)

    def _handle_direct_message(self, message: InboundMessage) -> str:
        token = parse_token_command(message.body)
        if token is None:
            return ACTION_IGNORED

        if self.admin_numbers and _normalize_number(message.sender) not in self.admin_numbers:
            self.log(f"忽略非管理员的令牌更新请求: {message.sender}", "WARNING")
            return ACTION_IGNORED

        try:
            self.authenticator.save_credential(token)
        except DambaMonitorException as e:
            self.log(f"通过私聊更新令牌失败: {e}", "ERROR")
            self._reply(message.chat_id, f"❌ 令牌更新失败: {e.message}")
            return ACTION_TOKEN_FAILED

        self.log(f"令牌已通过私聊更新 ({message.sender})", "SUCCESS")
        self._reply(message.chat_id, "✅ 令牌已更新，地图会话已重新登录")
        return ACTION_TOKEN_UPDATED

    def _reply(self, chat_id: str, text: str):
        try:
            self.messenger.send_text(chat_id, text)
        except DambaMonitorException as e:
            self.log(f"回复 {chat_id} 失败: {e}", "ERROR")

    def _handle_group_message(self, message: InboundMessage) -> str:
        setting = self.settings_store.get(message.chat_id)
        if setting is None or not setting.react_on_message:
            return ACTION_IGNORED
        if setting.react_on_message.lower() not in message.body.lower():
            return ACTION_IGNORED

        if not self.authenticator.check_validity():
            self.log(f"地图服务未登录，忽略群组 {message.chat_id} 的关键词触发", "WARNING")
            return ACTION_SKIPPED

        self.log(f"群组 {setting.group_name or message.chat_id} 触发关键词 '{setting.react_on_message}'")
        try:
            self.delivery.capture_and_deliver(message.chat_id)
        except DambaMonitorException as e:
            self.log(f"关键词触发发送失败: {e}", "ERROR")
            return ACTION_SKIPPED
        return ACTION_DELIVERED
