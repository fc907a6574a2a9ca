"""Known data sets for tests that need a populated book database."""

from datetime import date, timedelta
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from .models import Author, Book, BookAuthor, PriceOffer, Review

DUMMY_BOOK_START_DATE = date(2017, 1, 1)


def create_four_books() -> List[Book]:
    martin_fowler = Author(name="Martin Fowler")

    books = []

    book1 = Book(
        title="Refactoring",
        description="Improving the design of existing code",
        published_on=date(1999, 7, 8),
        price=Decimal("40.00"),
    )
    book1.author_links.append(BookAuthor(author=martin_fowler, order=0))
    books.append(book1)

    book2 = Book(
        title="Patterns of Enterprise Application Architecture",
        description="Written in direct response to the stiff challenges",
        published_on=date(2002, 11, 15),
        price=Decimal("53.00"),
    )
    book2.author_links.append(BookAuthor(author=martin_fowler, order=0))
    books.append(book2)

    book3 = Book(
        title="Domain-Driven Design",
        description="Linking business needs to software design",
        published_on=date(2003, 8, 30),
        price=Decimal("56.00"),
    )
    book3.author_links.append(BookAuthor(author=Author(name="Eric Evans"), order=0))
    books.append(book3)

    book4 = Book(
        title="Quantum Networking",
        description="Entangled quantum networking provides faster-than-light data communications",
        published_on=date(2057, 1, 1),
        publisher="Future Publishing",
        price=Decimal("220.00"),
    )
    book4.author_links.append(BookAuthor(author=Author(name="Future Person"), order=0))
    book4.reviews.extend([
        Review(voter_name="Jon P Smith", num_stars=5, comment="I look forward to reading this book, if I am still alive!"),
        Review(voter_name="Albert Einstein", num_stars=5, comment="I wrote this book"),
    ])
    book4.promotion = PriceOffer(new_price=Decimal("219.00"), promotional_text="Save $1 if you order 40 years ahead!")
    books.append(book4)

    return books


def seed_database_four_books(session: Session) -> List[Book]:
    """Add the four known books (with authors, reviews and one price offer) and commit."""
    books = create_four_books()
    session.add_all(books)
    session.commit()
    return books


def create_dummy_books(num_books: int = 10) -> List[Book]:
    books = []
    for i in range(num_books):
        book = Book(
            title=f"Book{i:04d} Title",
            description=f"Book{i:04d} Description",
            published_on=DUMMY_BOOK_START_DATE + timedelta(days=i),
            publisher="Manning",
            price=Decimal(10 + i),
        )
        book.author_links.append(BookAuthor(author=Author(name=f"Author{i:04d}"), order=0))
        if i % 5 == 0:
            book.reviews.append(Review(voter_name="Reviewer", num_stars=(i % 5) + 1))
        books.append(book)
    return books


def seed_database_dummy_books(session: Session, num_books: int = 10) -> List[Book]:
    books = create_dummy_books(num_books)
    session.add_all(books)
    session.commit()
    return books
