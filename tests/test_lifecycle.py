from pathlib import Path

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, func, inspect, select
from sqlalchemy.exc import DBAPIError

from datalayer.book_app.models import Base, Book
from datalayer.book_app.seeding import seed_database_four_books
from testsupport.context import PersistenceHandle, create_context, unique_class_options, unique_method_options
from testsupport.descriptor import ConnectionDescriptor
from testsupport.exceptions import DatabaseConnectionError, LifecycleConflict


def book_count(handle):
    return handle.session.scalar(select(func.count()).select_from(Book))


def table_names(handle):
    with handle.engine.connect() as connection:
        return set(inspect(connection).get_table_names())


@pytest.fixture
def handle(sqlite_template, request):
    options = unique_method_options(Base.metadata, "LifecycleTests", request.node.name, template=sqlite_template)
    with create_context(options) as handle:
        yield handle


def test_new_database_starts_absent(handle):
    assert handle.database.exists() is False
    assert not Path(handle.descriptor.catalog).exists()


def test_ensure_created_creates_empty_schema(handle):
    assert handle.database.ensure_created() is True

    assert handle.database.exists()
    assert table_names(handle) == set(Base.metadata.tables)
    assert book_count(handle) == 0


def test_ensure_created_twice_is_a_noop(handle):
    handle.database.ensure_created()
    schema_after_first = table_names(handle)
    seed_database_four_books(handle.session)

    assert handle.database.ensure_created() is False

    assert table_names(handle) == schema_after_first
    assert book_count(handle) == 4


def test_ensure_created_adds_schema_to_empty_database(handle):
    Path(handle.descriptor.catalog).parent.mkdir(parents=True, exist_ok=True)
    Path(handle.descriptor.catalog).touch()

    assert handle.database.ensure_created() is True
    assert table_names(handle) == set(Base.metadata.tables)


def test_ensure_deleted_removes_database(handle):
    handle.database.ensure_created()

    assert handle.database.ensure_deleted() is True

    assert handle.database.exists() is False
    assert handle.database.ensure_deleted() is False


def test_ensure_clean_empties_populated_database(handle):
    handle.database.ensure_created()
    seed_database_four_books(handle.session)

    handle.database.ensure_clean()

    assert book_count(handle) == 0
    assert table_names(handle) == set(Base.metadata.tables)


def test_ensure_clean_creates_absent_database(handle):
    handle.database.ensure_clean()

    assert handle.database.exists()
    assert book_count(handle) == 0


def test_ensure_clean_drops_tables_not_in_model(handle):
    handle.database.ensure_created()
    stray = Table("T_STRAY", MetaData(), Column("id", Integer, primary_key=True))
    stray.create(handle.engine)

    handle.database.ensure_clean()

    assert "T_STRAY" not in table_names(handle)


def test_delete_then_create_equals_clean(sqlite_template):
    clean_options = unique_method_options(Base.metadata, "LifecycleTests", "ViaClean", template=sqlite_template)
    delete_options = unique_method_options(Base.metadata, "LifecycleTests", "ViaDelete", template=sqlite_template)

    with create_context(clean_options) as via_clean, create_context(delete_options) as via_delete:
        for handle in (via_clean, via_delete):
            handle.database.ensure_created()
            seed_database_four_books(handle.session)

        via_clean.database.ensure_clean()
        via_delete.database.ensure_deleted()
        via_delete.database.ensure_created()

        assert book_count(via_clean) == book_count(via_delete) == 0
        assert table_names(via_clean) == table_names(via_delete)


def test_recreate_via_delete_leaves_empty_schema(handle):
    handle.database.ensure_created()
    seed_database_four_books(handle.session)

    handle.database.recreate_via_delete()

    assert book_count(handle) == 0
    assert table_names(handle) == set(Base.metadata.tables)


def test_recreate_via_delete_on_absent_database(handle):
    handle.database.recreate_via_delete()

    assert handle.database.exists()
    assert book_count(handle) == 0


def test_failed_schema_creation_leaves_database_absent(sqlite_template, monkeypatch):
    metadata = MetaData()
    Table("T_THINGS", metadata, Column("id", Integer, primary_key=True), Column("name", String(20)))
    options = unique_class_options(metadata, "BrokenSchemaTests", template=sqlite_template)

    def fail_create_all(bind, **kwargs):
        raise RuntimeError("schema creation failed")

    monkeypatch.setattr(metadata, "create_all", fail_create_all)
    with create_context(options) as handle:
        with pytest.raises(RuntimeError, match="schema creation failed"):
            handle.database.ensure_created()

        assert handle.database.exists() is False


def test_failed_clean_leaves_database_absent(sqlite_template, monkeypatch):
    metadata = MetaData()
    Table("T_THINGS", metadata, Column("id", Integer, primary_key=True))
    options = unique_class_options(metadata, "BrokenCleanTests", template=sqlite_template)

    with create_context(options) as handle:
        handle.database.ensure_created()

        def fail_create_all(bind, **kwargs):
            raise RuntimeError("schema creation failed")

        monkeypatch.setattr(metadata, "create_all", fail_create_all)
        with pytest.raises(RuntimeError):
            handle.database.ensure_clean()

        assert handle.database.exists() is False


def test_unwritable_location_is_lifecycle_conflict(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    template = ConnectionDescriptor.parse(f"sqlite:///{blocker / 'BookApp'}")
    options = unique_class_options(Base.metadata, "ConflictTests", template=template)

    with create_context(options) as handle:
        with pytest.raises(LifecycleConflict):
            handle.database.ensure_created()


def server_handle(monkeypatch, connection_string, fake_url="sqlite://"):
    """A handle on a server template whose engines are swapped for SQLite ones."""

    def fake_create_engine(self, descriptor, **kwargs):
        kwargs.pop("isolation_level", None)
        return create_engine(fake_url, logging_name=self.logging_name, **kwargs)

    monkeypatch.setattr(PersistenceHandle, "create_engine", fake_create_engine)
    template = ConnectionDescriptor.parse(connection_string)
    return unique_method_options(Base.metadata, "ServerTests", "Lifecycle", template=template)


def test_unreachable_server_is_connection_error(monkeypatch, tmp_path):
    options = server_handle(
        monkeypatch,
        "postgresql://tester:pw@dbhost/BookApp",
        fake_url=f"sqlite:///{tmp_path / 'missing_dir' / 'server.db'}",
    )

    with pytest.raises(DatabaseConnectionError) as excinfo:
        create_context(options)

    assert isinstance(excinfo.value.__cause__, DBAPIError)
    assert "unable to open database file" in str(excinfo.value)


def test_refused_create_is_lifecycle_conflict(monkeypatch):
    options = server_handle(monkeypatch, "postgresql://tester:pw@dbhost/BookApp")

    with create_context(options) as handle:
        monkeypatch.setattr(type(handle.database), "exists", lambda self: False)
        with pytest.raises(LifecycleConflict) as excinfo:
            handle.database.ensure_created()

    assert isinstance(excinfo.value.__cause__, DBAPIError)
    assert "BookApp.ServerTests.Lifecycle" in str(excinfo.value)


def test_unsupported_dialect_is_lifecycle_conflict(monkeypatch):
    options = server_handle(monkeypatch, "oracle://tester:pw@dbhost/BookApp")

    with create_context(options) as handle:
        with pytest.raises(LifecycleConflict):
            handle.database.ensure_created()


def test_unreachable_unsupported_server_is_connection_error(monkeypatch, tmp_path):
    options = server_handle(
        monkeypatch,
        "oracle://tester:pw@dbhost/BookApp",
        fake_url=f"sqlite:///{tmp_path / 'missing_dir' / 'server.db'}",
    )

    with pytest.raises(DatabaseConnectionError) as excinfo:
        create_context(options)

    assert isinstance(excinfo.value.__cause__, DBAPIError)
