from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from .models import Address, BookDetail, BookSummary, OrderInfo, Payment, PaymentCard, PaymentCash


def seed_book_summaries(session: Session) -> List[BookSummary]:
    summaries = [
        BookSummary(
            title="Refactoring",
            authors_string="Martin Fowler",
            details=BookDetail(description="Improving the design of existing code", price=Decimal("40.00")),
        ),
        BookSummary(
            title="Domain-Driven Design",
            authors_string="Eric Evans",
            details=BookDetail(description="Linking business needs to software design", price=Decimal("56.00")),
        ),
    ]
    session.add_all(summaries)
    session.commit()
    return summaries


def seed_orders_and_payments(session: Session) -> List[OrderInfo]:
    """Two orders, one paid in cash and one by card."""
    orders = [
        OrderInfo(
            order_number="SO0001",
            delivery_address=Address("1 Some Street", "Some Town", "AB1 2CD", "GB"),
        ),
        OrderInfo(
            order_number="SO0002",
            delivery_address=Address("2 Other Road", "Other City", "99999", "US"),
            billing_address=Address("PO Box 12", "Other City", "99998", "US"),
        ),
    ]
    payments: List[Payment] = [
        PaymentCash(amount=Decimal("12.50")),
        PaymentCard(amount=Decimal("99.99"), receipt_code="RCPT-0002"),
    ]
    session.add_all(orders + payments)
    session.commit()
    return orders
