"""
统一配置加载模块
提供系统各模块的配置加载接口

配置说明：
- 部署相关配置（API地址、端口、WhatsApp网关密钥等）优先从环境变量读取
- 环境变量未配置时，fallback 到 config.ini，再 fallback 到代码默认值
- 地图页面的功能开关写在 config/map_settings.yaml 中
- 参考 .env.template 文件了解可以配置哪些环境变量
"""

import configparser
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from exceptions import ConfigurationException
from interfaces import IConfigLoader

from .constants import (
    ALLOWED_INTERVAL_MINUTES,
    DEFAULT_ALERT_CHECK_SECONDS,
    DEFAULT_MAP_SERVICE_URL,
    MAX_ALERT_CHECK_SECONDS,
    MIN_ALERT_CHECK_SECONDS,
)


class ConfigLoader(IConfigLoader):
    """配置加载器类（支持环境变量优先）"""

    # 环境变量映射: "节.键" -> 环境变量名
    ENV_MAPPING = {
        "api.public_url": "API_URL",
        "api.port": "PORT",
        "api.cors_origins": "FRONTEND_URL",
        "whatsapp.api_url": "WHATSAPP_API_URL",
        "whatsapp.api_key": "WHATSAPP_API_KEY",
        "whatsapp.session": "WHATSAPP_SESSION",
        "whatsapp.admin_numbers": "WHATSAPP_ADMIN_NUMBERS",
        "paths.database_path": "DATABASE_PATH",
        "paths.screenshots_dir": "SCREENSHOTS_DIR",
    }

    def __init__(self, config_file: str = None, map_settings_file: str = None):
        """
        初始化配置加载器

        Args:
            config_file: 配置文件路径，默认为 config/config.ini
            map_settings_file: 地图功能开关文件，默认为 config/map_settings.yaml
        """
        config_dir = os.path.dirname(os.path.abspath(__file__))
        if config_file is None:
            config_file = os.path.join(config_dir, "config.ini")
        if map_settings_file is None:
            map_settings_file = os.path.join(config_dir, "map_settings.yaml")

        self.config_file = config_file
        self.map_settings_file = map_settings_file

        # 先加载 .env 文件到环境变量
        self._load_env()

        # 再加载 config.ini
        self.config = configparser.ConfigParser()
        self._load_config()

    def _load_env(self):
        """从项目根目录加载 .env 文件到环境变量（已存在的环境变量不覆盖）"""
        project_root = Path(__file__).parent.parent
        env_file = project_root / ".env"

        if env_file.exists():
            with open(env_file, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    # 跳过注释和空行
                    if not line or line.startswith("#"):
                        continue
                    # 解析 KEY=VALUE 格式
                    if "=" in line:
                        key, value = line.split("=", 1)
                        os.environ.setdefault(key.strip(), value.strip().strip('"'))

    def _load_config(self):
        """加载配置文件"""
        if os.path.exists(self.config_file):
            self.config.read(self.config_file, encoding="utf-8")
        # 配置文件不存在时不报错，依赖环境变量和默认值

    def _get_value(self, section: str, key: str, fallback: Any = None) -> Optional[str]:
        """
        获取配置值（优先从环境变量读取）

        优先级: 环境变量 > config.ini > fallback

        Args:
            section: 配置节名
            key: 配置键名
            fallback: 默认值

        Returns:
            配置值
        """
        composite_key = f"{section}.{key}"
        if composite_key in self.ENV_MAPPING:
            env_value = os.environ.get(self.ENV_MAPPING[composite_key])
            if env_value:
                return env_value

        if self.config.has_section(section) and self.config.has_option(section, key):
            return self.config.get(section, key)

        return fallback

    def _get_int(self, section: str, key: str, fallback: int) -> int:
        """读取整数配置，格式错误时使用默认值"""
        value = self._get_value(section, key)
        if value is None or str(value).strip() == "":
            return fallback
        try:
            return int(value)
        except ValueError:
            print(f"⚠️  警告: [{section}] {key}={value} 不是整数，使用默认值 {fallback}")
            return fallback

    def _get_bool(self, section: str, key: str, fallback: bool) -> bool:
        """读取布尔配置"""
        value = self._get_value(section, key)
        if value is None:
            return fallback
        return str(value).strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _split_list(value: Optional[str]) -> List[str]:
        if not value:
            return []
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_map_service_config(self) -> Dict[str, Any]:
        """
        获取地图服务配置

        Returns:
            Dict[str, Any]: base_url, map_path, navigation_timeout
        """
        return {
            "base_url": self._get_value("map_service", "base_url", DEFAULT_MAP_SERVICE_URL),
            "map_path": self._get_value("map_service", "map_path", "/map"),
            "navigation_timeout": self._get_int("map_service", "navigation_timeout", 30),
        }

    def get_browser_config(self) -> Dict[str, Any]:
        """
        获取浏览器配置

        Returns:
            Dict[str, Any]: headless, local_port, user_data_path, window_width, window_height
        """
        return {
            "headless": self._get_bool("browser", "headless", True),
            # 0 表示自动分配端口
            "local_port": self._get_int("browser", "local_port", 0),
            "user_data_path": self._get_value("browser", "user_data_path", ""),
            "window_width": self._get_int("browser", "window_width", 1920),
            "window_height": self._get_int("browser", "window_height", 1080),
        }

    def get_paths(self) -> Dict[str, str]:
        """
        获取路径配置

        Returns:
            Dict[str, str]: screenshots_dir, database_path, log_dir
        """
        return {
            "screenshots_dir": self._get_value("paths", "screenshots_dir", "screenshots"),
            "database_path": self._get_value("paths", "database_path", "data/damba_monitor.db"),
            "log_dir": self._get_value("paths", "log_dir", "logs"),
        }

    def get_alert_monitor_config(self) -> Dict[str, Any]:
        """
        获取告警监控配置

        检查间隔限制在 5-60 秒之间，超出范围时截断

        Returns:
            Dict[str, Any]: enabled, check_interval_seconds
        """
        interval = self._get_int(
            "alert_monitor", "check_interval_seconds", DEFAULT_ALERT_CHECK_SECONDS
        )
        if not MIN_ALERT_CHECK_SECONDS <= interval <= MAX_ALERT_CHECK_SECONDS:
            clamped = min(max(interval, MIN_ALERT_CHECK_SECONDS), MAX_ALERT_CHECK_SECONDS)
            print(f"⚠️  警告: 告警检查间隔 {interval} 秒超出范围，调整为 {clamped} 秒")
            interval = clamped

        return {
            "enabled": self._get_bool("alert_monitor", "enabled", True),
            "check_interval_seconds": interval,
        }

    def get_whatsapp_config(self) -> Dict[str, Any]:
        """
        获取 WhatsApp 网关配置（优先从环境变量读取）

        Returns:
            Dict[str, Any]: 网关配置字典，包含:
                - api_url: 网关地址
                - session: 网关会话名
                - api_key: 网关密钥（可为空）
                - admin_numbers: 允许通过私聊更新令牌的号码列表（空列表表示不限制）
        """
        api_url = self._get_value("whatsapp", "api_url", "http://localhost:3000")
        api_key = self._get_value("whatsapp", "api_key", "") or ""

        if not api_key:
            print("⚠️  警告: WHATSAPP_API_KEY 未配置，将不带密钥访问网关")

        return {
            "api_url": api_url.rstrip("/"),
            "session": self._get_value("whatsapp", "session", "default"),
            "api_key": api_key,
            "admin_numbers": self._split_list(self._get_value("whatsapp", "admin_numbers")),
        }

    def get_api_config(self) -> Dict[str, Any]:
        """
        获取 HTTP 接口配置

        Returns:
            Dict[str, Any]: host, port, public_url, cors_origins
        """
        port = self._get_int("api", "port", 3000)
        public_url = self._get_value("api", "public_url", f"http://localhost:{port}")
        return {
            "host": self._get_value("api", "host", "0.0.0.0"),
            "port": port,
            "public_url": public_url.rstrip("/"),
            "cors_origins": self._split_list(
                self._get_value("api", "cors_origins", "http://localhost:5173")
            ),
        }

    def get_map_settings(self) -> Dict[str, Any]:
        """
        从 YAML 文件加载地图页面设置

        Returns:
            Dict[str, Any]: local_user_settings（写入页面的功能开关）

        Raises:
            ConfigurationException: 文件不是合法的 YAML 或结构不正确
        """
        if not os.path.exists(self.map_settings_file):
            print(f"⚠️  警告: 地图设置文件不存在: {self.map_settings_file}")
            return {"local_user_settings": {}}

        try:
            with open(self.map_settings_file, "r", encoding="utf-8") as f:
                settings = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(
                f"地图设置文件格式错误: {e}", config_section="map_settings"
            ) from e

        flags = settings.get("local_user_settings") if isinstance(settings, dict) else None
        if flags is not None and not isinstance(flags, dict):
            raise ConfigurationException(
                "local_user_settings 必须是键值对",
                config_section="map_settings",
                config_key="local_user_settings",
            )
        return {"local_user_settings": dict(flags or {})}

    def get_config(self, section: str) -> Dict[str, Any]:
        """
        获取特定部分的配置

        Args:
            section: 配置部分名称

        Returns:
            Dict[str, Any]: 配置字典，未知节返回 config.ini 中的原始值
        """
        getters = {
            "map_service": self.get_map_service_config,
            "browser": self.get_browser_config,
            "paths": self.get_paths,
            "alert_monitor": self.get_alert_monitor_config,
            "whatsapp": self.get_whatsapp_config,
            "api": self.get_api_config,
            "map_settings": self.get_map_settings,
        }
        if section in getters:
            return getters[section]()
        if self.config.has_section(section):
            return dict(self.config.items(section))
        return {}

    def get_all_config(self) -> Dict[str, Any]:
        """
        获取所有配置

        Returns:
            Dict[str, Any]: 包含所有配置的字典
        """
        return {
            "map_service": self.get_map_service_config(),
            "browser": self.get_browser_config(),
            "paths": self.get_paths(),
            "alert_monitor": self.get_alert_monitor_config(),
            "whatsapp": self.get_whatsapp_config(),
            "api": self.get_api_config(),
            "map_settings": self.get_map_settings(),
            "allowed_intervals": list(ALLOWED_INTERVAL_MINUTES),
        }


# 全局实例（延迟加载）
_config_loader_instance = None


def load_config() -> ConfigLoader:
    """
    获取配置加载器实例（单例模式）

    Returns:
        ConfigLoader: 配置加载器实例
    """
    global _config_loader_instance
    if _config_loader_instance is None:
        _config_loader_instance = ConfigLoader()
    return _config_loader_instance
