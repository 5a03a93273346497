"""
异常处理测试

测试自定义异常类的基本功能和上下文信息。
"""

import os
import sys

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

import pytest

from exceptions.auth import CredentialError, CredentialMissingError, TokenDecodeError
from exceptions.base import (
    AuthenticationException,
    ConfigurationException,
    ConnectionException,
    DambaMonitorException,
    DataException,
    NotificationException,
)
from exceptions.connection import (
    BrowserConnectionError,
    BrowserNotInitializedError,
    NetworkTimeoutError,
    PageLoadError,
)
from exceptions.data import (
    AlertParseError,
    DataFileError,
    GroupSettingsNotFoundError,
    InvalidGroupSettingsError,
    StorageError,
    ZoneAlreadyExistsError,
    ZoneNotFoundError,
)
from exceptions.notification import (
    DeliveryError,
    MessengerNotReadyError,
    NotificationConfigError,
)


class TestBaseExceptions:
    """测试基础异常类"""

    def test_base_exception_basic(self):
        exc = DambaMonitorException("测试错误")
        assert str(exc) == "测试错误"
        assert exc.message == "测试错误"
        assert exc.context == {}

    def test_base_exception_with_context(self):
        exc = DambaMonitorException("测试错误", context={"group_id": "g@g.us"})
        assert "group_id=g@g.us" in str(exc)

    def test_to_dict(self):
        exc = ZoneNotFoundError(3)
        data = exc.to_dict()
        assert data["exception_type"] == "ZoneNotFoundError"
        assert data["context"]["id"] == 3

    def test_connection_exception(self):
        exc = ConnectionException("连接失败", port=9222)
        assert exc.context["port"] == 9222

    def test_configuration_exception(self):
        exc = ConfigurationException("配置错误", config_section="api", config_key="port")
        assert exc.context == {"config_section": "api", "config_key": "port"}


class TestHierarchy:
    """测试异常分类，HTTP 接口按分类映射状态码"""

    @pytest.mark.parametrize(
        "exc, parent",
        [
            (CredentialMissingError("authenticate"), AuthenticationException),
            (CredentialError("空"), AuthenticationException),
            (TokenDecodeError("坏"), AuthenticationException),
            (BrowserNotInitializedError("capture"), ConnectionException),
            (BrowserConnectionError(reason="no chrome"), ConnectionException),
            (NetworkTimeoutError("等待网络空闲", 3), ConnectionException),
            (PageLoadError("https://x", "timeout"), ConnectionException),
            (AlertParseError("page", "bad"), DataException),
            (StorageError("zones", "read", "locked"), DataException),
            (DataFileError("/tmp/x.png", "write", "disk full"), DataException),
            (ZoneAlreadyExistsError("z1"), DataException),
            (GroupSettingsNotFoundError("g"), DataException),
            (InvalidGroupSettingsError("interval_minutes", 7, "bad"), DataException),
            (DeliveryError("g", "down"), NotificationException),
            (MessengerNotReadyError("SCAN_QR_CODE"), NotificationException),
            (NotificationConfigError("whatsapp.api_url", "missing"), NotificationException),
        ],
    )
    def test_parent(self, exc, parent):
        assert isinstance(exc, parent)
        assert isinstance(exc, DambaMonitorException)


class TestSpecificExceptions:
    """测试具体异常的上下文"""

    def test_token_decode_segment_count(self):
        exc = TokenDecodeError("不是三段式", segment_count=2)
        assert exc.context["segment_count"] == 2

    def test_browser_connection_with_port(self):
        exc = BrowserConnectionError(port=9333, reason="busy")
        assert "9333" in exc.message
        assert exc.context["reason"] == "busy"

    def test_alert_parse_truncates_raw_data(self):
        exc = AlertParseError("snapshot", "bad", raw_data="x" * 500)
        assert len(exc.context["raw_data_preview"]) == 100

    def test_delivery_error_status_code(self):
        exc = DeliveryError("g@g.us", "server error", status_code=500)
        assert exc.context["recipient"] == "g@g.us"
        assert exc.context["status_code"] == 500

    def test_invalid_group_settings(self):
        exc = InvalidGroupSettingsError("interval_minutes", 7, "not allowed")
        assert exc.context["value"] == "7"
        assert exc.context["source"] == "group_settings"


class TestHttpStatus:
    """测试接口返回的状态码"""

    @pytest.mark.parametrize(
        "exc, status",
        [
            (DambaMonitorException("x"), 500),
            (ZoneNotFoundError(1), 404),
            (GroupSettingsNotFoundError("g"), 404),
            (ZoneAlreadyExistsError("z1"), 409),
            (CredentialError("空"), 400),
            (InvalidGroupSettingsError("interval_minutes", 7, "bad"), 400),
            (CredentialMissingError("authenticate"), 401),
            (TokenDecodeError("坏"), 401),
            (MessengerNotReadyError(), 503),
            (BrowserNotInitializedError("capture"), 502),
            (NetworkTimeoutError("等待网络空闲", 3), 502),
            (DeliveryError("g", "down"), 500),
            (StorageError("zones", "read", "locked"), 500),
            (ConfigurationException("bad"), 500),
        ],
    )
    def test_status(self, exc, status):
        assert exc.http_status == status

    def test_none_fields_are_skipped(self):
        exc = DataException("x", source=None, context={"a": 1})
        assert exc.context == {"a": 1}

    def test_caller_context_not_mutated(self):
        context = {"a": 1}
        ConnectionException("x", port=9222, context=context)
        assert context == {"a": 1}
