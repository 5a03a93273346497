"""
Storage Module - 持久化存储模块

SQLite persistence for the map screenshot monitor.

## Tables（数据表）

- **app_config**: singleton row (id=1) holding the map service token, its
  expiry, the last alert snapshot and the saved map centre
- **zones**: named geographic zones, unique by external zone_id
- **group_settings**: per-WhatsApp-group delivery settings

## Stores（存储类）

### AppConfigStore
get_credential / save_credential, get_alert_snapshot / save_alert_snapshot,
get_map_center / save_map_center

### ZoneStore
list_zones (ordered by name), get_zone, create_zone, update_zone (rename
only), delete_zone, existing_zone_ids

### GroupSettingsStore
get, list_all, list_enabled, list_alerting, upsert, delete

## Usage Example

```python
from storage import Database, ZoneStore

db = Database("data/damba_monitor.db")
zones = ZoneStore(db)
zones.create_zone("1024", "North sector")
```
"""

from .app_config_store import AppConfigStore
from .database import Database
from .group_settings_store import GroupSettingsStore, validate_group_setting
from .models import Credential, GroupSetting, Zone
from .zone_store import ZoneStore

__all__ = [
    "Database",
    "AppConfigStore",
    "ZoneStore",
    "GroupSettingsStore",
    "validate_group_setting",
    "Credential",
    "Zone",
    "GroupSetting",
]
