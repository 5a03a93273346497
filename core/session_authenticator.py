"""
会话认证器

负责地图服务的登录状态：
- 读取/保存令牌并判断是否过期
- 把令牌写入页面 sessionStorage，合并功能开关到 localStorage，跳转到地图页
- 登录完成后保存页面 localStorage 作为告警快照的基线
- 更换令牌时整体重启浏览器
"""

import json
import time
from typing import List, Optional

from DrissionPage import ChromiumPage

from config import load_config
from config.constants import (
    LOCAL_SETTINGS_KEY,
    MAP_CENTER_KEY_SUFFIX,
    SESSION_TOKEN_EXPIRES_KEY,
    SESSION_TOKEN_KEY,
)
from exceptions import (
    CredentialError,
    CredentialMissingError,
    DambaMonitorException,
    PageLoadError,
    TokenDecodeError,
)
from interfaces import IConfigLoader, ILogger
from storage import AppConfigStore, Credential

from .browser_handler import BrowserHandler
from .logger import get_logger
from .page_task_queue import PageTaskQueue
from .session_state import SessionState, decode_token_expiry, decode_token_user_id

# arguments: token, expires, flags_json, center_key, center_value
INJECT_SESSION_JS = """
const [token, expires, flagsJson, centerKey, centerValue] = arguments;
window.sessionStorage.setItem('%s', token);
if (expires !== null) {
    window.sessionStorage.setItem('%s', expires);
}
const current = JSON.parse(window.localStorage.getItem('%s') || '{}');
const merged = Object.assign({}, current, JSON.parse(flagsJson));
window.localStorage.setItem('%s', JSON.stringify(merged));
if (centerKey) {
    window.localStorage.setItem(centerKey, centerValue);
}
return true;
""" % (SESSION_TOKEN_KEY, SESSION_TOKEN_EXPIRES_KEY, LOCAL_SETTINGS_KEY, LOCAL_SETTINGS_KEY)

DUMP_LOCAL_STORAGE_JS = "return JSON.stringify(Object.assign({}, window.localStorage));"

SET_LOCAL_ITEM_JS = "window.localStorage.setItem(arguments[0], arguments[1]); return true;"


class SessionAuthenticator:
    """地图服务会话认证器"""

    def __init__(
        self,
        browser: BrowserHandler,
        task_queue: PageTaskQueue,
        config_store: AppConfigStore,
        session_state: Optional[SessionState] = None,
        config_loader: Optional[IConfigLoader] = None,
        logger: Optional[ILogger] = None,
    ):
        """
        初始化会话认证器

        Args:
            browser: 浏览器处理器
            task_queue: 页面任务队列
            config_store: 令牌、快照、地图中心的存储
            session_state: 登录状态缓存（与调度器、监控共享）
            config_loader: 配置加载器
            logger: 日志记录器
        """
        self.browser = browser
        self.task_queue = task_queue
        self.config_store = config_store
        self.session_state = session_state or SessionState()
        self.log = logger or get_logger()

        config = config_loader or load_config()
        map_service = config.get_config("map_service")
        self.base_url = map_service["base_url"].rstrip("/")
        self.map_path = map_service["map_path"]
        self.navigation_timeout = map_service["navigation_timeout"]
        self.feature_flags = config.get_config("map_settings").get("local_user_settings", {})

    @property
    def is_authenticated(self) -> bool:
        """最近一次检查的结果"""
        return self.session_state.is_authenticated

    def get_credential(self) -> Optional[Credential]:
        """
        读取令牌

        Returns:
            Credential: 令牌，未保存时返回 None 并标记为未登录
        """
        credential = self.config_store.get_credential()
        if credential is None:
            self.session_state.mark_unauthenticated()
        return credential

    def check_validity(self, credential: Optional[Credential] = None) -> bool:
        """
        重新判断令牌是否有效，结果写入 SessionState

        Args:
            credential: 要检查的令牌，默认读取已保存的令牌

        Returns:
            bool: 令牌有效
        """
        if credential is None:
            credential = self.get_credential()
        return self.session_state.evaluate(credential.token if credential else None)

    def authenticate(self) -> bool:
        """
        在页面上登录地图服务（页面任务）

        Raises:
            BrowserNotInitializedError: 浏览器未启动
            CredentialMissingError: 没有保存令牌
            PageLoadError: 页面导航失败
        """
        return self.task_queue.run(self._authenticate_on_page)

    def _authenticate_on_page(self) -> bool:
        page = self.browser.require_page("authenticate")
        credential = self.get_credential()
        if credential is None:
            raise CredentialMissingError("authenticate")

        print("🔐 正在登录地图服务...")
        self._navigate(page, f"{self.base_url}/")

        center_key, center_value = self._map_center_entry(credential.token)
        expires = str(credential.expires_at) if credential.expires_at is not None else None
        page.run_js(
            INJECT_SESSION_JS,
            credential.token,
            expires,
            json.dumps(self.feature_flags),
            center_key,
            center_value,
        )

        self._navigate(page, f"{self.base_url}{self.map_path}")

        snapshot = page.run_js(DUMP_LOCAL_STORAGE_JS)
        self.config_store.save_alert_snapshot(snapshot or "{}")

        self.check_validity(credential)
        self.log("地图服务登录完成，已保存告警基线", "SUCCESS")
        return True

    def _navigate(self, page: ChromiumPage, url: str):
        start = time.time()
        try:
            loaded = page.get(url, timeout=self.navigation_timeout)
        except Exception as e:
            raise PageLoadError(url, str(e), time.time() - start) from e
        if loaded is False:
            raise PageLoadError(url, "导航未在超时内完成", time.time() - start)

    def _map_center_entry(self, token: str):
        """返回 (localStorage键, 值)，未设置地图中心或令牌没有用户ID时返回 (None, None)"""
        center = self.config_store.get_map_center()
        if center is None:
            return None, None
        try:
            user_id = decode_token_user_id(token)
        except TokenDecodeError:
            user_id = None
        if not user_id:
            self.log("令牌中没有用户ID，跳过地图中心设置", "WARNING")
            return None, None
        return f"{user_id}{MAP_CENTER_KEY_SUFFIX}", json.dumps(center, separators=(",", ":"))

    def save_credential(self, token: str) -> bool:
        """
        保存新令牌并重启浏览器会话

        浏览器重启和重新登录在同一个页面任务中完成

        Args:
            token: 新令牌

        Raises:
            CredentialError: 令牌为空
            PageLoadError / BrowserConnectionError: 会话重建失败
        """
        token = (token or "").strip()
        if not token:
            raise CredentialError("令牌不能为空")

        try:
            expires_at = decode_token_expiry(token)
        except TokenDecodeError as e:
            self.log(f"无法解析令牌过期时间: {e}", "WARNING")
            expires_at = None

        credential = Credential(token=token, expires_at=expires_at)
        self.config_store.save_credential(credential)
        self.check_validity(credential)
        self.log("地图服务令牌已更新，正在重启浏览器会话")

        return self.task_queue.run(self._reset_session)

    def _reset_session(self) -> bool:
        self.browser.restart()
        return self._authenticate_on_page()

    def save_map_center(self, latitude: float, longitude: float) -> bool:
        """
        保存地图中心，会话已建立时立即应用到页面

        Returns:
            bool: 是否已应用到页面
        """
        self.config_store.save_map_center(latitude, longitude)
        self.log(f"地图中心已保存: [{latitude}, {longitude}]")

        if not self.browser.is_connected() or not self.check_validity():
            return False
        return self.task_queue.run(self._apply_map_center_on_page)

    def _apply_map_center_on_page(self) -> bool:
        page = self.browser.require_page("apply map center")
        credential = self.get_credential()
        if credential is None:
            return False
        key, value = self._map_center_entry(credential.token)
        if key is None:
            return False
        page.run_js(SET_LOCAL_ITEM_JS, key, value)
        page.refresh()
        return True

    def get_map_center(self) -> Optional[List[float]]:
        return self.config_store.get_map_center()

    def start(self) -> bool:
        """
        启动浏览器，令牌有效时登录

        登录失败只记录日志，等待下一次更换令牌时重试

        Returns:
            bool: 是否已登录
        """
        try:
            self.task_queue.run(self.browser.launch)
        except DambaMonitorException as e:
            self.log(f"浏览器启动失败: {e}", "ERROR")
            return False

        if not self.check_validity():
            self.log("没有有效的地图服务令牌，等待配置", "WARNING")
            return False

        try:
            return self.authenticate()
        except DambaMonitorException as e:
            self.log(f"启动时登录失败: {e}", "ERROR")
            return False

    def stop(self):
        """关闭浏览器"""
        self.task_queue.run(self.browser.close)
