"""Connection descriptors and the per-test catalog name builder."""

from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, Optional, Union

from sqlalchemy.engine import URL, make_url

from .exceptions import InvalidIdentity

# 非法的文件名字符（Windows 规则的超集），SQLite 数据库文件名中不允许出现
SQLITE_FORBIDDEN_CHARS = set('/\\<>:"|?*\0')
SQLITE_MAX_FILENAME_BYTES = 255

# 服务器端数据库名称的长度限制
SERVER_NAME_LIMITS = {
    "postgresql": 63,
    "mssql": 128,
    "mysql": 64,
    "mariadb": 64,
}
MYSQL_FORBIDDEN_CHARS = set("./\\")


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Structured connection parameters, wrapping a SQLAlchemy URL.

    The catalog is the URL's database part: a database name for server
    engines, a file path for SQLite.
    """

    url: URL

    @classmethod
    def parse(cls, connection_string: Union[str, URL]) -> "ConnectionDescriptor":
        return cls(make_url(connection_string))

    @property
    def backend(self) -> str:
        return self.url.get_backend_name()

    @property
    def host(self) -> Optional[str]:
        return self.url.host

    @property
    def port(self) -> Optional[int]:
        return self.url.port

    @property
    def catalog(self) -> Optional[str]:
        return self.url.database

    @property
    def username(self) -> Optional[str]:
        return self.url.username

    @property
    def password(self) -> Optional[str]:
        return self.url.password

    @property
    def options(self) -> Dict[str, str]:
        return dict(self.url.query)

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    def with_catalog(self, catalog: Optional[str]) -> "ConnectionDescriptor":
        # URL.set(database=None) 会保留原值，这里重新构造 URL 才能清空 catalog
        url = self.url
        return ConnectionDescriptor(
            URL.create(
                drivername=url.drivername,
                username=url.username,
                password=url.password,
                host=url.host,
                port=url.port,
                database=catalog,
                query=url.query,
            )
        )

    def render(self) -> str:
        """Full connection string, password included, for create_engine."""
        return self.url.render_as_string(hide_password=False)

    def __str__(self) -> str:
        return self.url.render_as_string(hide_password=True)


def build_descriptor(template: ConnectionDescriptor, identity: str) -> ConnectionDescriptor:
    """Return a copy of ``template`` whose catalog is ``<catalog>.<identity>``."""
    if not template.catalog:
        raise InvalidIdentity(f"Connection template {template} has no database/catalog to extend")
    if not identity or any(not part for part in identity.split(".")):
        raise InvalidIdentity(f"Identity {identity!r} has an empty name component")

    catalog = f"{template.catalog}.{identity}"
    validate_catalog(template.backend, catalog, identity)
    return template.with_catalog(catalog)


def validate_catalog(backend: str, catalog: str, identity: str) -> None:
    """Raise InvalidIdentity if ``catalog`` cannot name a database on ``backend``."""
    if "\0" in catalog:
        raise InvalidIdentity(f"Database name {catalog!r} contains a NUL character")

    if backend == "sqlite":
        if catalog.startswith(":memory:") or catalog.startswith("file:"):
            raise InvalidIdentity(
                f"SQLite template {catalog!r} is not a plain file path and cannot be made unique"
            )
        bad = sorted(SQLITE_FORBIDDEN_CHARS.intersection(identity))
        if bad:
            raise InvalidIdentity(
                f"Identity {identity!r} contains characters not allowed in a file name: {''.join(bad)}"
            )
        if len(PurePath(catalog).name.encode("utf-8")) > SQLITE_MAX_FILENAME_BYTES:
            raise InvalidIdentity(
                f"SQLite file name for {identity!r} is longer than {SQLITE_MAX_FILENAME_BYTES} bytes"
            )
        return

    limit = SERVER_NAME_LIMITS.get(backend)
    if backend in ("mysql", "mariadb"):
        bad = sorted(MYSQL_FORBIDDEN_CHARS.intersection(catalog))
        if bad:
            raise InvalidIdentity(
                f"{backend} database names cannot contain {''.join(bad)!r}: {catalog!r}"
            )
        if catalog.endswith(" "):
            raise InvalidIdentity(f"{backend} database names cannot end with a space: {catalog!r}")
    if backend == "postgresql":
        # PostgreSQL 的限制按字节计算，其它引擎按字符计算
        length = len(catalog.encode("utf-8"))
    else:
        length = len(catalog)
    if limit is not None and length > limit:
        raise InvalidIdentity(
            f"Database name {catalog!r} is {length} long, {backend} allows at most {limit}"
        )
