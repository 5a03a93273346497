"""
Configuration Module - 配置管理模块

This module provides unified configuration loading for the map screenshot
monitor. Deployment values can be overridden by environment variables.

## Configuration Loading（配置加载）

### load_config()
Main entry point for loading configuration.
Returns a process-wide ConfigLoader instance.

Features:
- Environment variable priority (.env file / process env over config.ini)
- Type conversion (int, bool, comma-separated lists)
- Default value support
- Alert check interval clamped to 5-60 seconds

Usage:
```python
from config import load_config

config = load_config()
whatsapp = config.get_config("whatsapp")
paths = config.get_paths()
flags = config.get_map_settings()["local_user_settings"]
```

## Configuration Files（配置文件）

### config.ini
Sections:
- [map_service]: base_url, map_path, navigation_timeout
- [browser]: headless, local_port, user_data_path, window size
- [paths]: screenshots_dir, database_path, log_dir
- [alert_monitor]: enabled, check_interval_seconds
- [whatsapp]: api_url, session, api_key, admin_numbers
- [api]: host, port, public_url, cors_origins

### map_settings.yaml
Feature flags merged into the map page's localStorage on login.

### .env
Environment variables (not committed to git), see .env.template:

```bash
API_URL=http://localhost:8000
PORT=8000
WHATSAPP_API_URL=http://localhost:3000
WHATSAPP_API_KEY=secret
DATABASE_PATH=data/damba_monitor.db
```

## Dependencies

- configparser: INI file parsing
- PyYAML: map settings file
"""

from .config_loader import ConfigLoader, load_config

__all__ = ["ConfigLoader", "load_config"]
