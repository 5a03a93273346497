"""
API Module - HTTP 接口模块

FastAPI application exposing the operator surface.

## Routes（路由）

### Map service (/damba)
- GET  /damba/screenshot          fresh capture (falls back to last image)
- GET  /damba/last-screenshot     last image without capturing
- POST /damba/token               save token and restart the browser session
- GET  /damba/status              token validity and expiry
- POST /damba/map-center          save [lat, lng]
- GET/POST /damba/zones, PUT/DELETE /damba/zones/{id}

### WhatsApp (/whatsapp)
- GET  /whatsapp/status, /whatsapp/qr, /whatsapp/groups
- POST /whatsapp/groups/settings
- GET/PUT/DELETE /whatsapp/groups/{groupId}/settings
- POST /whatsapp/send-message
- POST /whatsapp/webhook          inbound gateway events

### Static
- /screenshots/<filename>
"""

__all__ = ["create_app"]


def __getattr__(name):
    """延迟导入，避免未安装 fastapi 时导入失败"""
    if name == "create_app":
        from .app import create_app

        return create_app
    raise AttributeError(f"module {__name__} has no attribute {name}")
