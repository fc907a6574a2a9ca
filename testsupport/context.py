"""Persistence handles bound to a per-test database."""

import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy import MetaData, create_engine, event, inspect
from sqlalchemy.engine import Row
from sqlalchemy.orm import InstanceState, Session, sessionmaker

from .app_settings import get_connection_template
from .descriptor import ConnectionDescriptor, build_descriptor
from .identity import derive_identity
from .lifecycle import DatabaseLifecycle

logger = logging.getLogger(__name__)

LogSink = Callable[[str], None]

_handle_ids = itertools.count(1)
# 已释放的引擎 logger 名称，新句柄优先复用，避免 logging 中 logger 无限增长
_free_logging_names: List[str] = []


class Tracking(enum.Enum):
    TRACKED = "tracked"
    UNTRACKED = "untracked"


@dataclass(frozen=True)
class ContextConfiguration:
    """Everything needed to open a handle on one test database."""

    descriptor: ConnectionDescriptor
    metadata: MetaData
    tracking: Tracking = Tracking.TRACKED
    log_sink: Optional[LogSink] = None


class SinkHandler(logging.Handler):
    """Pushes each log record to a line sink as one line."""

    def __init__(self, sink: LogSink):
        super().__init__(logging.DEBUG)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = " ".join(self.format(record).split())
        except Exception:
            self.handleError(record)
            return
        self.sink(line)


class PersistenceHandle:
    """An engine and session on the database named by a ContextConfiguration.

    Use it as a context manager; leaving the block closes the session and
    disposes the engine even when the test fails.
    """

    def __init__(self, configuration: ContextConfiguration):
        self.configuration = configuration
        self.logging_name: Optional[str] = None
        self._sink_handler: Optional[SinkHandler] = None
        self._closed = False

        if configuration.log_sink is not None:
            self.logging_name = _acquire_logging_name()
        self.engine = self.create_engine(configuration.descriptor)
        if configuration.log_sink is not None:
            self._attach_sink(configuration.log_sink)
        self.session_factory = sessionmaker(autoflush=False, bind=self.engine)
        self.session: Session = self.session_factory()
        if configuration.tracking is Tracking.UNTRACKED:
            event.listen(self.session, "do_orm_execute", self._detach_loaded_entities)

        self.database = DatabaseLifecycle(self)

    @property
    def descriptor(self) -> ConnectionDescriptor:
        return self.configuration.descriptor

    @property
    def metadata(self) -> MetaData:
        return self.configuration.metadata

    @property
    def closed(self) -> bool:
        return self._closed

    def create_engine(self, descriptor: ConnectionDescriptor, **kwargs):
        """Create an engine that logs through this handle's trace logger."""
        if self.logging_name is not None:
            kwargs.setdefault("logging_name", self.logging_name)
        engine = create_engine(descriptor.render(), **kwargs)
        if descriptor.is_sqlite:
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    def trace(self, message: str, *args) -> None:
        """Log a lifecycle event, also sending it to the sink when one is attached."""
        logger.info(message, *args)
        if self.configuration.log_sink is not None:
            self.configuration.log_sink(message % args if args else message)

    def release_connections(self) -> None:
        """Return every connection this handle holds, so the database can be dropped."""
        self.session.close()
        self.engine.dispose()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.release_connections()
        finally:
            self._detach_sink()

    def __enter__(self) -> "PersistenceHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<PersistenceHandle {self.descriptor} {self.configuration.tracking.value}>"

    def _attach_sink(self, sink: LogSink) -> None:
        # 每个引擎使用独立的 logger，日志只发送给本句柄的 sink
        engine_logger = logging.getLogger(f"sqlalchemy.engine.Engine.{self.logging_name}")
        engine_logger.setLevel(logging.INFO)
        engine_logger.propagate = False
        self._sink_handler = SinkHandler(sink)
        engine_logger.addHandler(self._sink_handler)

    def _detach_sink(self) -> None:
        if self._sink_handler is None:
            return
        engine_logger = logging.getLogger(f"sqlalchemy.engine.Engine.{self.logging_name}")
        engine_logger.removeHandler(self._sink_handler)
        engine_logger.setLevel(logging.NOTSET)
        engine_logger.propagate = True
        self._sink_handler = None
        _free_logging_names.append(self.logging_name)

    def _detach_loaded_entities(self, orm_execute_state):
        if not orm_execute_state.is_select or orm_execute_state.is_relationship_load:
            return None
        session = orm_execute_state.session
        known = set(session.identity_map.keys())
        frozen = orm_execute_state.invoke_statement().freeze()

        # 预加载（joinedload/selectinload）带进来的实体也要分离，不只是结果行里的
        loaded = [obj for key, obj in list(session.identity_map.items()) if key not in known]
        for item in frozen.data:
            # 单实体查询冻结后保存的是实体本身而不是 Row
            loaded.extend(item if isinstance(item, Row) else (item,))
        for value in loaded:
            state = inspect(value, raiseerr=False)
            if isinstance(state, InstanceState) and state.session is session:
                session.expunge(value)
        return frozen()


def _acquire_logging_name() -> str:
    if _free_logging_names:
        return _free_logging_names.pop()
    return f"testsupport_{next(_handle_ids)}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_context(configuration: ContextConfiguration) -> PersistenceHandle:
    """Open a handle on the configured database.

    Server engines are probed straight away so an unreachable server fails
    here; the target database itself may still be absent.
    """
    handle = PersistenceHandle(configuration)
    try:
        handle.database.check_server()
    except Exception:
        handle.close()
        raise
    return handle


def unique_class_options(
    metadata: MetaData,
    type_name: str,
    tracking: Tracking = Tracking.TRACKED,
    log_sink: Optional[LogSink] = None,
    template: Optional[ConnectionDescriptor] = None,
) -> ContextConfiguration:
    """Configuration for a database shared by every test in one test class."""
    return _unique_options(metadata, derive_identity(type_name), tracking, log_sink, template)


def unique_method_options(
    metadata: MetaData,
    type_name: str,
    method_name: str,
    tracking: Tracking = Tracking.TRACKED,
    log_sink: Optional[LogSink] = None,
    template: Optional[ConnectionDescriptor] = None,
) -> ContextConfiguration:
    """Configuration for a database owned by a single test method."""
    return _unique_options(
        metadata, derive_identity(type_name, method_name), tracking, log_sink, template
    )


def _unique_options(metadata, identity, tracking, log_sink, template):
    if template is None:
        template = get_connection_template()
    return ContextConfiguration(
        descriptor=build_descriptor(template, identity),
        metadata=metadata,
        tracking=tracking,
        log_sink=log_sink,
    )
