from decimal import Decimal

from sqlalchemy import func, select

from datalayer.specialised.models import (
    Address,
    Base,
    BookDetail,
    BookSummary,
    OrderInfo,
    Payment,
    PaymentCard,
    PaymentCash,
    PaymentType,
)
from datalayer.specialised.seeding import seed_book_summaries, seed_orders_and_payments
from testsupport.context import create_context, unique_method_options


def open_specialised(sqlite_template, method_name):
    options = unique_method_options(Base.metadata, "SpecialisedTests", method_name, template=sqlite_template)
    handle = create_context(options)
    handle.database.ensure_clean()
    return handle


def test_specialised_schema_has_its_own_tables(sqlite_template):
    with open_specialised(sqlite_template, "Schema") as handle:
        assert set(Base.metadata.tables) == {"T_BOOK_SUMMARIES", "T_BOOK_DETAILS", "T_ORDERS", "T_PAYMENTS"}
        assert handle.session.scalar(select(func.count()).select_from(OrderInfo)) == 0


def test_book_summary_with_details(sqlite_template):
    with open_specialised(sqlite_template, "Summaries") as handle:
        seed_book_summaries(handle.session)
        handle.session.expunge_all()

        summary = handle.session.scalars(select(BookSummary).where(BookSummary.title == "Refactoring")).one()

        assert summary.details.price == Decimal("40.00")
        assert summary.details.id == summary.id
        assert handle.session.scalar(select(func.count()).select_from(BookDetail)) == 2


def test_orders_store_addresses_as_columns(sqlite_template):
    with open_specialised(sqlite_template, "Orders") as handle:
        seed_orders_and_payments(handle.session)
        handle.session.expunge_all()

        order = handle.session.scalars(select(OrderInfo).where(OrderInfo.order_number == "SO0002")).one()

        assert order.delivery_address == Address("2 Other Road", "Other City", "99999", "US")
        assert order.billing_address.city == "Other City"
        assert order.created_at is not None


def test_payments_load_as_their_subclass(sqlite_template):
    with open_specialised(sqlite_template, "Payments") as handle:
        seed_orders_and_payments(handle.session)
        handle.session.expunge_all()

        payments = handle.session.scalars(select(Payment).order_by(Payment.id)).all()

        assert [type(payment) for payment in payments] == [PaymentCash, PaymentCard]
        assert payments[0].payment_type == PaymentType.CASH
        assert payments[1].receipt_code == "RCPT-0002"
        assert len(handle.session.scalars(select(PaymentCard)).all()) == 1
