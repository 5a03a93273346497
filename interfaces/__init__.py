"""
Interfaces Module - 接口层定义

This module provides interface contracts for the map screenshot monitor.
Components receive their collaborators through the constructor, so tests can
inject mocks without a browser, a database or a WhatsApp gateway.

## Core Interfaces（核心接口）

### ILogger
Logging interface for system-wide logging.

Methods:
- Callable with level parameter: logger(message, level)

Levels: "DEBUG", "INFO", "WARNING", "ERROR", "SUCCESS"

### IConfigLoader
Configuration loading interface.

Methods:
- get_all_config(): Get all configuration sections as dictionary
- get_config(section): Get specific configuration section

### IMessenger
Messaging platform client (WhatsApp HTTP gateway).

Methods:
- is_ready(): Gateway session connected
- send_image(chat_id, image, filename, caption): Send PNG bytes
- send_text(chat_id, text): Send a text reply
- list_groups(): Groups the account belongs to

Implementations:
- WhatsAppNotifier (notifiers/whatsapp_notifier.py)

### IScheduler
Per-group delivery scheduler.

Methods:
- start_job(group_id) / stop_job(group_id) / stop_all_jobs()

Implementations:
- DeliveryScheduler (schedulers/delivery_scheduler.py)

## Usage Patterns（使用模式）

### Constructor Injection（构造函数注入）

```python
from interfaces import IMessenger, ILogger

class ScreenshotDelivery:
    def __init__(self, capture_engine, messenger: IMessenger, logger: ILogger = None):
        self.capture_engine = capture_engine
        self.messenger = messenger
        self.log = logger or get_logger()
```

### Mocking for Testing（测试模拟）

```python
class MockLogger(ILogger):
    def __init__(self):
        self.messages = []

    def __call__(self, message, level="INFO"):
        self.messages.append((level, message))
```
"""

from .interfaces import IConfigLoader, ILogger, IMessenger, IScheduler

__all__ = ["ILogger", "IConfigLoader", "IMessenger", "IScheduler"]
