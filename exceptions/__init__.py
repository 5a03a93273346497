"""
Damba Map Monitor - Custom Exception Hierarchy

This module provides a structured exception hierarchy for the map screenshot
monitoring system. All exceptions carry a context dictionary for debugging
and for HTTP error responses.

## Exception Categories

### Authentication Errors（认证异常）

#### auth.py
- **CredentialMissingError**: No map service token has been saved yet
- **CredentialError**: Submitted token is empty or malformed
- **TokenDecodeError**: Token payload segment cannot be decoded

### Connection Errors（连接异常）

#### connection.py
- **BrowserNotInitializedError**: A page operation ran without a browser session
- **BrowserConnectionError**: Chromium could not be launched
- **NetworkTimeoutError**: A bounded page wait timed out
- **PageLoadError**: Navigation to the map service failed

### Data Errors（数据异常）

#### data.py
- **AlertParseError**: Alert storage on the page or in the snapshot is malformed
- **StorageError**: SQLite read/write failed
- **DataFileError**: Screenshot file operation failed
- **ZoneNotFoundError** / **ZoneAlreadyExistsError**: Zone CRUD conflicts
- **GroupSettingsNotFoundError** / **InvalidGroupSettingsError**: Group setting CRUD errors

### Notification Errors（通知异常）

#### notification.py
- **DeliveryError**: Sending a screenshot to one group failed
- **MessengerNotReadyError**: WhatsApp gateway session is not connected
- **NotificationConfigError**: Gateway configuration is missing or invalid

### Base Exception（基础异常）

#### base.py
- **DambaMonitorException**: Base exception for all custom exceptions
- **ConnectionException**: Base for browser/page errors
- **AuthenticationException**: Base for credential errors
- **DataException**: Base for data and storage errors
- **NotificationException**: Base for messaging errors
- **ConfigurationException**: Base for configuration errors

## Usage Example（使用示例）

```python
from exceptions import BrowserNotInitializedError, DeliveryError

try:
    artifact = capture_engine.capture()
except BrowserNotInitializedError as e:
    log(f"截图失败: {e}", "ERROR")

try:
    messenger.send_image(group_id, artifact.image, artifact.filename)
except DeliveryError as e:
    log(f"发送失败: {e.to_dict()}", "ERROR")
```

## HTTP Mapping（接口映射）

Every class carries `http_status`, which the API returns as-is: 500 by
default, 502 for connection errors, 401 for authentication errors, 404 for
ZoneNotFoundError / GroupSettingsNotFoundError, 409 for
ZoneAlreadyExistsError, 400 for CredentialError / InvalidGroupSettingsError
and 503 for MessengerNotReadyError.
"""

from .auth import (
    CredentialError,
    CredentialMissingError,
    TokenDecodeError,
)
from .base import (
    AuthenticationException,
    ConfigurationException,
    ConnectionException,
    DambaMonitorException,
    DataException,
    NotificationException,
)
from .connection import (
    BrowserConnectionError,
    BrowserNotInitializedError,
    NetworkTimeoutError,
    PageLoadError,
)
from .data import (
    AlertParseError,
    DataFileError,
    GroupSettingsNotFoundError,
    InvalidGroupSettingsError,
    StorageError,
    ZoneAlreadyExistsError,
    ZoneNotFoundError,
)
from .notification import (
    DeliveryError,
    MessengerNotReadyError,
    NotificationConfigError,
)

__all__ = [
    # 基础异常
    "DambaMonitorException",
    "ConnectionException",
    "AuthenticationException",
    "DataException",
    "NotificationException",
    "ConfigurationException",
    # 连接异常
    "BrowserNotInitializedError",
    "BrowserConnectionError",
    "NetworkTimeoutError",
    "PageLoadError",
    # 数据异常
    "AlertParseError",
    "StorageError",
    "DataFileError",
    "ZoneNotFoundError",
    "ZoneAlreadyExistsError",
    "GroupSettingsNotFoundError",
    "InvalidGroupSettingsError",
    # 通知异常
    "DeliveryError",
    "MessengerNotReadyError",
    "NotificationConfigError",
    # 认证异常
    "CredentialMissingError",
    "CredentialError",
    "TokenDecodeError",
]
