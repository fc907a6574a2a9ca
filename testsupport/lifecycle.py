"""Create, delete and clean the database behind a PersistenceHandle.

A test database is in one of three states: absent, present with an empty
schema, or present with data. The operations here move it between them and
block until the engine has finished.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.pool import NullPool

from .exceptions import DatabaseConnectionError, LifecycleConflict, TestSupportError

logger = logging.getLogger(__name__)

SQLITE_SIDE_FILES = ("-journal", "-wal", "-shm")


@dataclass(frozen=True)
class ServerDialect:
    """SQL used to manage whole databases on one kind of server."""

    admin_database: Optional[str]
    exists_sql: str
    create_sql: Tuple[str, ...]
    drop_sql: Tuple[str, ...]


SERVER_DIALECTS = {
    "postgresql": ServerDialect(
        admin_database="postgres",
        exists_sql="SELECT 1 FROM pg_database WHERE datname = :name",
        create_sql=("CREATE DATABASE {name}",),
        drop_sql=("DROP DATABASE {name}",),
    ),
    "mssql": ServerDialect(
        admin_database="master",
        exists_sql="SELECT 1 FROM sys.databases WHERE name = :name",
        create_sql=("CREATE DATABASE {name}",),
        # 先踢掉其它连接，否则 DROP 会因数据库正在使用而失败
        drop_sql=(
            "ALTER DATABASE {name} SET SINGLE_USER WITH ROLLBACK IMMEDIATE",
            "DROP DATABASE {name}",
        ),
    ),
    "mysql": ServerDialect(
        admin_database=None,
        exists_sql="SELECT 1 FROM information_schema.schemata WHERE schema_name = :name",
        create_sql=("CREATE DATABASE {name}",),
        drop_sql=("DROP DATABASE {name}",),
    ),
}
SERVER_DIALECTS["mariadb"] = SERVER_DIALECTS["mysql"]


class DatabaseLifecycle:
    """Lifecycle operations for the database a handle is bound to.

    Reached through ``handle.database``. Any engine failure propagates to
    the caller; nothing is retried.
    """

    def __init__(self, handle):
        self._handle = handle

    @property
    def name(self) -> str:
        return self._handle.descriptor.catalog

    @property
    def is_sqlite(self) -> bool:
        return self._handle.descriptor.is_sqlite

    def check_server(self) -> None:
        """Raise DatabaseConnectionError if the database server cannot be reached."""
        if self.is_sqlite:
            return
        if self._handle.descriptor.backend in SERVER_DIALECTS:
            with self._admin_connection():
                pass
            return
        # 没有管理库可用的引擎，直接连目标库探测
        try:
            with self._handle.engine.connect():
                pass
        except DBAPIError as exc:
            raise DatabaseConnectionError(
                f"Could not connect to database server {self._handle.descriptor}: {exc.orig}"
            ) from exc

    def exists(self) -> bool:
        if self.is_sqlite:
            return Path(self.name).is_file()
        dialect = self._server_dialect()
        with self._admin_connection() as connection:
            row = connection.execute(text(dialect.exists_sql), {"name": self.name}).first()
        return row is not None

    def ensure_created(self) -> bool:
        """Create the database and its schema if missing.

        Returns True when anything was created. Existing data is never touched.
        """
        if not self.exists():
            self._create_database()
        elif self._has_tables():
            return False
        self._create_schema()
        return True

    def ensure_deleted(self) -> bool:
        """Drop the database if it exists. Returns True when it was dropped."""
        if not self.exists():
            return False
        self._drop_database()
        return True

    def ensure_clean(self) -> None:
        """Leave the database present with an empty schema, whatever it held before.

        An existing database is wiped in place: every table found in it is
        dropped and the model's schema created again.
        """
        if self.exists():
            try:
                self._drop_all_tables()
            except Exception:
                self._delete_after_failure()
                raise
        else:
            self._create_database()
        self._create_schema()

    def recreate_via_delete(self) -> None:
        """Delete the database and create it again from nothing.

        Ends in the same state as ensure_clean, but goes through the absent
        state; use it when the model's tables have changed shape.
        """
        self.ensure_deleted()
        self.ensure_created()

    def _has_tables(self) -> bool:
        with self._handle.engine.connect() as connection:
            return bool(inspect(connection).get_table_names())

    def _create_schema(self) -> None:
        try:
            self._handle.metadata.create_all(self._handle.engine)
        except Exception:
            self._delete_after_failure()
            raise
        self._handle.trace("Created schema in %s", self.name)

    def _drop_all_tables(self) -> None:
        self._handle.session.close()
        reflected = MetaData()
        with self._handle.engine.begin() as connection:
            reflected.reflect(bind=connection)
            reflected.drop_all(bind=connection)
        self._handle.trace("Dropped %d tables in %s", len(reflected.tables), self.name)

    def _create_database(self) -> None:
        if self.is_sqlite:
            path = Path(self.name)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                # 空文件即是一个合法的空 SQLite 数据库
                path.touch(exist_ok=True)
            except OSError as exc:
                raise LifecycleConflict(f"Could not create database file {path}: {exc}") from exc
        else:
            self._run_admin(self._server_dialect().create_sql, "create")
        self._handle.trace("Created database %s", self.name)

    def _drop_database(self) -> None:
        self._handle.release_connections()
        if self.is_sqlite:
            for suffix in ("",) + SQLITE_SIDE_FILES:
                path = Path(self.name + suffix)
                try:
                    path.unlink(missing_ok=True)
                except OSError as exc:
                    raise LifecycleConflict(f"Could not delete database file {path}: {exc}") from exc
        else:
            self._run_admin(self._server_dialect().drop_sql, "drop")
        self._handle.trace("Deleted database %s", self.name)

    def _delete_after_failure(self) -> None:
        # 半途失败时回到“不存在”状态，下一次 ensure_created/ensure_clean 会从头创建
        try:
            self._drop_database()
        except TestSupportError:
            logger.exception("Could not delete %s after a failed lifecycle operation", self.name)

    def _server_dialect(self) -> ServerDialect:
        backend = self._handle.descriptor.backend
        try:
            return SERVER_DIALECTS[backend]
        except KeyError:
            raise LifecycleConflict(
                f"Creating and dropping databases is not supported for {backend}"
            ) from None

    def _run_admin(self, statements: Tuple[str, ...], verb: str) -> None:
        with self._admin_connection() as connection:
            quoted = connection.dialect.identifier_preparer.quote_identifier(self.name)
            # text() 把 ":xxx" 当作绑定参数，名字里的冒号需要转义
            quoted = quoted.replace(":", "\\:")
            for statement in statements:
                try:
                    connection.execute(text(statement.format(name=quoted)))
                except DBAPIError as exc:
                    raise LifecycleConflict(
                        f"Could not {verb} database {self.name}: {exc.orig}"
                    ) from exc

    @contextmanager
    def _admin_connection(self):
        dialect = self._server_dialect()
        admin = self._handle.descriptor.with_catalog(dialect.admin_database)
        engine = self._handle.create_engine(admin, isolation_level="AUTOCOMMIT", poolclass=NullPool)
        try:
            try:
                connection = engine.connect()
            except DBAPIError as exc:
                raise DatabaseConnectionError(
                    f"Could not connect to database server {admin}: {exc.orig}"
                ) from exc
            with connection:
                yield connection
        finally:
            engine.dispose()
