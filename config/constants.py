"""
技术常量定义

说明：
- 这些是代码级常量，开发者维护，用户通常不需要修改
- 部署配置（端口、网关地址、检查间隔）请在 config/config.ini 或 .env 中配置
"""

# 地图服务
DEFAULT_MAP_SERVICE_URL = "https://damba.live"
SESSION_TOKEN_KEY = "refresh-token"  # sessionStorage 中的令牌键
SESSION_TOKEN_EXPIRES_KEY = "refresh-token-expires"  # sessionStorage 中的过期时间键
LOCAL_SETTINGS_KEY = "localUserSettings"  # localStorage 中的功能开关键
ALERTS_STORAGE_KEY = "alerts"  # localStorage 中的告警列表键
MAP_CENTER_KEY_SUFFIX = "-map-center-coord"  # 地图中心键: <用户ID>-map-center-coord

# 页面稳定等待
PAGE_LOAD_TIMEOUT_SECONDS = 10  # document.readyState 等待上限
NETWORK_IDLE_TIMEOUT_SECONDS = 3  # 网络空闲等待上限
NETWORK_IDLE_WINDOW_SECONDS = 0.5  # 资源数量保持不变多久视为空闲
STABILITY_POLL_INTERVAL = 0.1  # 轮询间隔（秒）
SETTLE_DELAY_SECONDS = 1.5  # 截图前的固定等待（秒）

# 截图文件
SCREENSHOT_PREFIX = "screenshot-"
SCREENSHOT_SUFFIX = ".png"

# 群组定时发送
ALLOWED_INTERVAL_MINUTES = (1, 5, 10, 15, 30, 60)

# 告警监控
DEFAULT_ALERT_CHECK_SECONDS = 5
MIN_ALERT_CHECK_SECONDS = 5
MAX_ALERT_CHECK_SECONDS = 60

# 页面任务队列
PAGE_TASK_TIMEOUT_SECONDS = 120  # 等待单个页面任务完成的上限
