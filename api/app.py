"""
HTTP 接口

对外提供令牌、截图、区域、群组设置和手动发送接口。接口只做参数转换，
业务逻辑都在核心组件中；截图目录以 /screenshots 静态挂载。
"""

from typing import Any

from fastapi import BackgroundTasks, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from exceptions import DambaMonitorException, GroupSettingsNotFoundError
from notifiers.whatsapp_notifier import parse_webhook
from storage import GroupSetting

from .schemas import (
    GroupSettingsRequest,
    GroupSettingsUpdateRequest,
    MapCenterRequest,
    SendMessageRequest,
    TokenRequest,
    ZoneCreateRequest,
    ZoneUpdateRequest,
)


def create_app(context: Any) -> FastAPI:
    """
    创建 FastAPI 应用

    Args:
        context: 提供 authenticator, delivery, screenshot_store, zone_store,
            settings_service, messenger, reaction_router, cors_origins, log 的对象
            （通常是 DambaMonitorApplication）
    """
    app = FastAPI(title="Damba Map Monitor")
    log = context.log

    if context.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(context.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(DambaMonitorException)
    async def handle_monitor_exception(request: Request, exc: DambaMonitorException):
        status = exc.http_status
        if status >= 500:
            log(f"{request.method} {request.url.path} 失败: {exc}", "ERROR")
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "请求参数不合法", "errors": jsonable_errors(exc)},
        )

    # ========== 地图服务 ==========

    @app.get("/damba/screenshot")
    def get_screenshot():
        authenticated = context.authenticator.check_validity()
        artifact = None
        if authenticated:
            try:
                artifact = context.delivery.capture()
            except DambaMonitorException as e:
                log(f"截图失败，返回上一张截图: {e}", "WARNING")
                artifact = context.screenshot_store.latest()
        return screenshot_payload(context, artifact, authenticated)

    @app.get("/damba/last-screenshot")
    def get_last_screenshot():
        authenticated = context.authenticator.is_authenticated
        artifact = context.screenshot_store.latest()
        return screenshot_payload(context, artifact, authenticated)

    @app.post("/damba/token")
    def save_token(request: TokenRequest):
        context.authenticator.save_credential(request.token)
        return {"success": True, "message": "Damba token saved successfully"}

    @app.get("/damba/status")
    def get_status():
        context.authenticator.check_validity()
        state = context.authenticator.session_state.to_dict()
        state["mapCenter"] = context.authenticator.get_map_center()
        return state

    @app.post("/damba/map-center")
    def save_map_center(request: MapCenterRequest):
        lat, lng = request.coordinates
        applied = context.authenticator.save_map_center(lat, lng)
        return {"success": True, "coordinates": [lat, lng], "applied": applied}

    @app.get("/damba/zones")
    def list_zones():
        return {"zones": [zone.to_dict() for zone in context.zone_store.list_zones()]}

    @app.post("/damba/zones")
    def create_zone(request: ZoneCreateRequest):
        zone = context.zone_store.create_zone(request.zoneId.strip(), request.name.strip())
        return {"zone": zone.to_dict()}

    @app.put("/damba/zones/{zone_pk}")
    def update_zone(zone_pk: int, request: ZoneUpdateRequest):
        zone = context.zone_store.update_zone(zone_pk, request.name.strip())
        return {"zone": zone.to_dict()}

    @app.delete("/damba/zones/{zone_pk}")
    def delete_zone(zone_pk: int):
        context.zone_store.delete_zone(zone_pk)
        return {"success": True}

    # ========== WhatsApp ==========

    @app.get("/whatsapp/status")
    def whatsapp_status():
        return context.messenger.get_status()

    @app.get("/whatsapp/qr")
    def whatsapp_qr():
        return {"qr": context.messenger.get_qr_code()}

    @app.get("/whatsapp/groups")
    def whatsapp_groups():
        settings = {s.group_id: s for s in context.settings_service.list_settings()}
        groups = []
        for group in context.messenger.list_groups():
            setting = settings.get(group["id"])
            groups.append({**group, "settings": setting.to_dict() if setting else None})
        return {"groups": groups}

    @app.post("/whatsapp/groups/settings")
    def create_group_settings(request: GroupSettingsRequest):
        setting = GroupSetting(
            group_id=request.groupId,
            group_name=request.groupName,
            interval_minutes=request.intervalMinutes,
            enabled=request.enabled,
            react_on_message=request.reactOnMessage,
            should_alert=request.shouldAlert,
            zone_ids=list(request.zoneIds),
        )
        saved = context.settings_service.save_settings(setting)
        return {"settings": saved.to_dict()}

    @app.get("/whatsapp/groups/{group_id}/settings")
    def get_group_settings(group_id: str):
        try:
            setting = context.settings_service.get_settings(group_id)
        except GroupSettingsNotFoundError:
            return {"settings": None}
        return {"settings": setting.to_dict()}

    @app.put("/whatsapp/groups/{group_id}/settings")
    def update_group_settings(group_id: str, request: GroupSettingsUpdateRequest):
        saved = context.settings_service.update_settings(group_id, **request.to_changes())
        return {"settings": saved.to_dict()}

    @app.delete("/whatsapp/groups/{group_id}/settings")
    def delete_group_settings(group_id: str):
        context.settings_service.delete_settings(group_id)
        return {"success": True}

    @app.post("/whatsapp/send-message")
    def send_message(request: SendMessageRequest):
        results = context.delivery.send_current_to_groups(request.groupIds, request.message)
        return {"results": [result.to_dict() for result in results]}

    @app.post("/whatsapp/webhook")
    def whatsapp_webhook(background_tasks: BackgroundTasks, payload: dict = Body(...)):
        message = parse_webhook(payload)
        if message is None:
            return {"received": True, "handled": False}
        background_tasks.add_task(handle_inbound, context, message)
        return {"received": True, "handled": True}

    context.screenshot_store.ensure_dir()
    app.mount(
        "/screenshots",
        StaticFiles(directory=context.screenshot_store.directory, check_dir=False),
        name="screenshots",
    )
    return app


def screenshot_payload(context: Any, artifact, authenticated: bool) -> dict:
    if artifact is None:
        return {"screenshot": None, "isAuthenticated": authenticated}
    url = context.screenshot_store.url_for(artifact.filename)
    return {"screenshot": artifact.to_dict(url, authenticated), "isAuthenticated": authenticated}


def handle_inbound(context: Any, message):
    try:
        context.reaction_router.handle(message)
    except DambaMonitorException as e:
        context.log(f"处理入站消息失败: {e}", "ERROR")


def jsonable_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": str(error.get("msg", "")),
            }
        )
    return errors
