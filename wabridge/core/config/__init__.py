from .settings import (
    BUILTIN_TEST_PHONE_NUMBER_IDS,
    DEFAULT_CONFIG_PATH,
    Settings,
    ensure_config_file,
    load_settings,
    resolve_config_path,
)

__all__ = [
    "BUILTIN_TEST_PHONE_NUMBER_IDS",
    "DEFAULT_CONFIG_PATH",
    "Settings",
    "ensure_config_file",
    "load_settings",
    "resolve_config_path",
]
