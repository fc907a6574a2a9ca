from .models import (
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

__all__ = [
    "Address",
    "Base",
    "BookDetail",
    "BookSummary",
    "OrderInfo",
    "Payment",
    "PaymentCard",
    "PaymentCash",
    "PaymentType",
]
