from .settings import (
    Settings,
    WhatsAppSettings,
    SheetsSettings,
    StoreSettings,
    get_settings,
)

__all__ = ["Settings", "WhatsAppSettings", "SheetsSettings", "StoreSettings", "get_settings"]
