import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import composite, declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


@dataclass
class Address:
    """Value object stored as columns on the owning row."""

    number_and_street: Optional[str]
    city: Optional[str]
    zip_post_code: Optional[str]
    country_code_iso2: Optional[str]

    def __composite_values__(self):
        return self.number_and_street, self.city, self.zip_post_code, self.country_code_iso2


class PaymentType(enum.IntEnum):
    CASH = 1
    CARD = 2


class BookSummary(Base):
    __tablename__ = 'T_BOOK_SUMMARIES'
    __table_args__ = {
        'extend_existing': True
    }

    id = Column(Integer, primary_key=True, autoincrement=True, mssql_identity_start=1, mssql_identity_increment=1)
    title = Column(String(256), nullable=False)
    authors_string = Column(String(200), nullable=True)

    details = relationship("BookDetail", back_populates="summary", uselist=False, cascade="all, delete-orphan")


class BookDetail(Base):
    __tablename__ = 'T_BOOK_DETAILS'
    __table_args__ = {
        'extend_existing': True
    }

    # 与 BookSummary 共用主键，一对一
    id = Column(Integer, ForeignKey('T_BOOK_SUMMARIES.id'), primary_key=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(9, 2), nullable=False)

    summary = relationship("BookSummary", back_populates="details")


class OrderInfo(Base):
    __tablename__ = 'T_ORDERS'
    __table_args__ = {
        'extend_existing': True
    }

    id = Column(Integer, primary_key=True, autoincrement=True, mssql_identity_start=1, mssql_identity_increment=1)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    delivery_number_and_street = Column(String(40), nullable=False)
    delivery_city = Column(String(30), nullable=False)
    delivery_zip_post_code = Column(String(10), nullable=False)
    delivery_country_code_iso2 = Column(String(2), nullable=False)
    delivery_address = composite(
        Address,
        delivery_number_and_street,
        delivery_city,
        delivery_zip_post_code,
        delivery_country_code_iso2,
    )

    billing_number_and_street = Column(String(40), nullable=True)
    billing_city = Column(String(30), nullable=True)
    billing_zip_post_code = Column(String(10), nullable=True)
    billing_country_code_iso2 = Column(String(2), nullable=True)
    billing_address = composite(
        Address,
        billing_number_and_street,
        billing_city,
        billing_zip_post_code,
        billing_country_code_iso2,
    )


class Payment(Base):
    """Payments share one table; payment_type says which subclass a row is."""

    __tablename__ = 'T_PAYMENTS'
    __table_args__ = {
        'extend_existing': True
    }

    id = Column(Integer, primary_key=True, autoincrement=True, mssql_identity_start=1, mssql_identity_increment=1)
    amount = Column(Numeric(9, 2), nullable=False)
    payment_type = Column(Integer, nullable=False)

    __mapper_args__ = {
        "polymorphic_on": payment_type,
    }


class PaymentCash(Payment):
    __mapper_args__ = {
        "polymorphic_identity": PaymentType.CASH.value,
    }


class PaymentCard(Payment):
    receipt_code = Column(String(1000), nullable=True)

    __mapper_args__ = {
        "polymorphic_identity": PaymentType.CARD.value,
    }
