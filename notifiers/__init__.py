"""
Notifiers Module - 通知器模块

WhatsApp delivery for map screenshots.

## WhatsAppNotifier
HTTP client for a WAHA-compatible WhatsApp gateway (implements IMessenger).

- get_status / is_ready: session state, ready when WORKING
- get_qr_code: pairing QR for the operator
- list_groups: groups the account belongs to
- send_image: base64 PNG with optional caption
- send_text: plain text reply

Inbound messages arrive through the gateway webhook and are parsed by
parse_webhook() into InboundMessage.

## ScreenshotDelivery
Capture-then-send helpers shared by the scheduler, the alert monitor, the
message router and the manual send endpoint.

Flow:
```
capture_and_deliver(group_id)
  ↓
CaptureEngine.capture()      # one fresh PNG
  ↓
fan_out(artifact, groups)    # one send per group, failures isolated
  ↓
[DeliveryResult, ...]
```

Usage:
```python
from notifiers import WhatsAppNotifier

messenger = WhatsAppNotifier()
if messenger.is_ready():
    messenger.send_text("12036302@g.us", "hello")
```
"""

__all__ = [
    "WhatsAppNotifier",
    "InboundMessage",
    "parse_webhook",
    "ScreenshotDelivery",
    "DeliveryResult",
]


def __getattr__(name):
    """延迟导入，只在需要时加载模块"""
    if name in ("WhatsAppNotifier", "InboundMessage", "parse_webhook"):
        from . import whatsapp_notifier

        return getattr(whatsapp_notifier, name)
    elif name in ("ScreenshotDelivery", "DeliveryResult"):
        from . import screenshot_delivery

        return getattr(screenshot_delivery, name)
    raise AttributeError(f"module {__name__} has no attribute {name}")
