"""
Settings for the wabridge webhook server.

Configuration lives in a plain ``KEY=value`` text file (``config.txt`` by default)
so operators can paste their tokens without quoting. Process environment variables
override file values. The result is an immutable ``Settings`` value that is built
once at startup and handed to every component that needs it.
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from wabridge.core.exceptions import ConfigurationError
from wabridge.core.logging.logger import get_logger

DEFAULT_CONFIG_PATH = "config.txt"
CONFIG_PATH_ENV = "WABRIDGE_CONFIG"

PLACEHOLDER_VERIFY_TOKEN = "your_verify_token_here"
PLACEHOLDER_APP_SECRET = "your_app_secret_here"
PLACEHOLDER_WHATSAPP_TOKEN = "your_whatsapp_token_here"

# Phone number IDs carried by the developer dashboard's "Test" webhook button
BUILTIN_TEST_PHONE_NUMBER_IDS = frozenset({"123456123", "123456789"})

DEFAULT_CONFIG_TEMPLATE = f"""# WhatsApp Webhook Configuration
# Just paste your tokens after the = sign (no quotes needed)

VERIFY_TOKEN={PLACEHOLDER_VERIFY_TOKEN}
APP_SECRET={PLACEHOLDER_APP_SECRET}
WHATSAPP_TOKEN={PLACEHOLDER_WHATSAPP_TOKEN}
"""

# Config file / environment key -> Settings field
_KEY_MAP = {
    "VERIFY_TOKEN": "verify_token",
    "APP_SECRET": "app_secret",
    "WHATSAPP_TOKEN": "whatsapp_token",
    "PORT": "port",
    "LOG_DIR": "log_dir",
    "LOG_LEVEL": "log_level",
    "GRAPH_API_VERSION": "graph_api_version",
    "GRAPH_BASE_URL": "graph_base_url",
    "SEND_TIMEOUT": "send_timeout",
    "REQUIRE_SIGNATURE": "require_signature",
    "TEST_PHONE_NUMBER_IDS": "test_phone_number_ids",
}

_PLACEHOLDERS = {
    "verify_token": PLACEHOLDER_VERIFY_TOKEN,
    "app_secret": PLACEHOLDER_APP_SECRET,
    "whatsapp_token": PLACEHOLDER_WHATSAPP_TOKEN,
}

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _get_version_from_pyproject() -> str:
    """
    Read version from pyproject.toml file.

    Returns:
        Version string from pyproject.toml, or fallback version
    """
    current_path = Path(__file__)
    for parent in [current_path.parent, *current_path.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            try:
                with open(pyproject_path, "rb") as f:
                    pyproject_data = tomllib.load(f)
                    version = pyproject_data.get("project", {}).get("version")
                    if version:
                        return version
            except (OSError, tomllib.TOMLDecodeError):
                continue

    return "0.1.0"


class Settings(BaseModel):
    """Immutable application settings."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    # ================================================================
    # WhatsApp credentials
    # ================================================================
    verify_token: str = PLACEHOLDER_VERIFY_TOKEN
    app_secret: str = PLACEHOLDER_APP_SECRET
    whatsapp_token: str = PLACEHOLDER_WHATSAPP_TOKEN

    # ================================================================
    # Server & logging
    # ================================================================
    port: int = Field(3000, ge=1, le=65535)
    log_dir: str = "./logs"
    log_level: str = "INFO"

    # ================================================================
    # Graph API
    # ================================================================
    graph_api_version: str = "v18.0"
    graph_base_url: str = "https://graph.facebook.com"
    send_timeout: float = Field(10.0, gt=0)

    # ================================================================
    # Webhook behaviour
    # ================================================================
    require_signature: bool = False
    test_phone_number_ids: frozenset[str] = BUILTIN_TEST_PHONE_NUMBER_IDS

    config_path: str = DEFAULT_CONFIG_PATH
    version: str = Field(default_factory=_get_version_from_pyproject)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and validate the log level."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}")
        return level

    @field_validator("test_phone_number_ids", mode="before")
    @classmethod
    def parse_test_phone_number_ids(cls, v):
        """Accept a comma separated string; built-in sentinels are always kept."""
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",")]
        return BUILTIN_TEST_PHONE_NUMBER_IDS | {part for part in v if part}

    @field_validator("graph_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def is_placeholder(self, name: str) -> bool:
        """Check whether a credential field still holds its placeholder value."""
        if name not in _PLACEHOLDERS:
            raise KeyError(f"{name} is not a credential setting")
        value = getattr(self, name)
        return not value or value == _PLACEHOLDERS[name]

    @property
    def unconfigured_credentials(self) -> list[str]:
        """Credential fields that still hold placeholder values."""
        return [name for name in _PLACEHOLDERS if self.is_placeholder(name)]


def resolve_config_path(config_path: str | os.PathLike | None = None) -> Path:
    """Pick the config file: explicit argument, then WABRIDGE_CONFIG, then default."""
    return Path(config_path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def ensure_config_file(path: str | os.PathLike, *, force: bool = False) -> bool:
    """
    Write the placeholder config file if it does not exist yet.

    Args:
        path: Location of the config file
        force: Overwrite an existing file

    Returns:
        True if the file was written
    """
    path = Path(path)
    if path.exists() and not force:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    return True


def load_settings(
    config_path: str | os.PathLike | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Build the application settings.

    Reads ``KEY=value`` pairs from the config file (creating it with placeholder
    values when absent), then applies environment overrides.

    Args:
        config_path: Config file location (see ``resolve_config_path``)
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Frozen Settings instance

    Raises:
        ConfigurationError: If any value fails validation
    """
    path = resolve_config_path(config_path)
    environ = os.environ if environ is None else environ

    if ensure_config_file(path):
        get_logger(__name__).warning(
            f"⚠ {path} not found, created it with placeholder values. "
            "Edit it and paste your tokens."
        )

    values: dict[str, object] = {"config_path": str(path)}
    file_values = dotenv_values(path, encoding="utf-8", interpolate=False)
    for key, raw in file_values.items():
        field = _KEY_MAP.get(key.strip())
        if field and raw is not None and raw.strip():
            values[field] = raw.strip()

    for key, field in _KEY_MAP.items():
        raw = environ.get(key)
        if raw is not None and raw.strip():
            values[field] = raw.strip()

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e
