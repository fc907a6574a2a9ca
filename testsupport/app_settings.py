import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple, Type

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict
from sqlalchemy.exc import ArgumentError

from .descriptor import ConnectionDescriptor
from .exceptions import ConfigurationMissing

APPSETTINGS_FILE = "appsettings.json"
CONNECTION_STRING_NAME = "DefaultConnection"
SETTINGS_DIR_ENV = "TESTSUPPORT_SETTINGS_DIR"


class AppSettings(BaseSettings):
    """Test settings read from appsettings.json, overridden by environment variables.

    A single connection string can be overridden with
    ``ConnectionStrings__DefaultConnection=...``.
    """

    model_config = SettingsConfigDict(case_sensitive=True, env_nested_delimiter="__", extra="ignore")

    connection_strings: Dict[str, str] = Field(default_factory=dict, alias="ConnectionStrings")
    settings_file: Optional[Path] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # 环境变量优先于文件内容（文件内容通过初始化参数传入）
        return env_settings, init_settings


def resolve_settings_dir(settings_dir: Optional[str] = None) -> Path:
    if settings_dir:
        return Path(settings_dir)
    return Path(os.environ.get(SETTINGS_DIR_ENV) or Path.cwd())


def load_settings(settings_dir: Path) -> AppSettings:
    """Read appsettings.json from ``settings_dir``; the file is mandatory."""
    settings_file = Path(settings_dir) / APPSETTINGS_FILE
    if not settings_file.is_file():
        raise ConfigurationMissing(
            f"Settings file {settings_file} not found; it must be checked in beside the tests"
        )
    try:
        data = json.loads(settings_file.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        raise ConfigurationMissing(f"Settings file {settings_file} is not valid JSON: {exc}") from exc
    return AppSettings(**data, settings_file=settings_file.resolve())


@lru_cache
def get_settings(settings_dir: Optional[str] = None) -> AppSettings:
    return load_settings(resolve_settings_dir(settings_dir))


def get_connection_string(settings: AppSettings, name: str = CONNECTION_STRING_NAME) -> str:
    connection_string = settings.connection_strings.get(name)
    if not connection_string:
        raise ConfigurationMissing(
            f"Connection string '{name}' not found under ConnectionStrings in {settings.settings_file}"
        )
    return connection_string


def get_connection_template(
    settings: Optional[AppSettings] = None, name: str = CONNECTION_STRING_NAME
) -> ConnectionDescriptor:
    """Parse the named connection string into the template every test database is derived from."""
    if settings is None:
        settings = get_settings()
    connection_string = get_connection_string(settings, name)
    try:
        template = ConnectionDescriptor.parse(connection_string)
    except ArgumentError as exc:
        raise ConfigurationMissing(f"Connection string '{name}' is not a valid database URL: {exc}") from exc

    if not template.catalog:
        raise ConfigurationMissing(f"Connection string '{name}' does not name a database/catalog")

    # 相对路径的 SQLite 文件以 appsettings.json 所在目录为基准
    if template.is_sqlite and settings.settings_file is not None:
        catalog = template.catalog
        if not catalog.startswith((":", "file:")) and not Path(catalog).is_absolute():
            template = template.with_catalog(str(settings.settings_file.parent / catalog))
    return template
