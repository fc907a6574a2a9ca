from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import declarative_base, relationship

# 书店主模型使用独立的元数据，测试时按需创建
Base = declarative_base()


class Book(Base):
    __tablename__ = 'T_BOOKS'
    __table_args__ = {
        'extend_existing': True
    }

    id = Column(Integer, primary_key=True, autoincrement=True, mssql_identity_start=1, mssql_identity_increment=1)
    title = Column(String(256), nullable=False, index=True)
    description = Column(Text, nullable=True)
    published_on = Column(Date, nullable=False)
    publisher = Column(String(64), nullable=True)
    price = Column(Numeric(9, 2), nullable=False)
    image_url = Column(String(512), nullable=True)
    soft_deleted = Column(Boolean, nullable=False, default=False)

    author_links = relationship(
        "BookAuthor", back_populates="book", order_by="BookAuthor.order", cascade="all, delete-orphan"
    )
    reviews = relationship("Review", back_populates="book", cascade="all, delete-orphan")
    promotion = relationship("PriceOffer", back_populates="book", uselist=False, cascade="all, delete-orphan")

    @property
    def authors_ordered(self) -> str:
        return ", ".join(link.author.name for link in self.author_links)

    def __repr__(self):
        return f"<Book {self.id} {self.title!r}>"


class Author(Base):
    __tablename__ = 'T_AUTHORS'
    __table_args__ = {
        'extend_existing': True
    }

    id = Column(Integer, primary_key=True, autoincrement=True, mssql_identity_start=1, mssql_identity_increment=1)
    name = Column(String(100), nullable=False)

    books_link = relationship("BookAuthor", back_populates="author")


class BookAuthor(Base):
    __tablename__ = 'T_BOOK_AUTHORS'
    __table_args__ = {
        'extend_existing': True
    }

    book_id = Column(Integer, ForeignKey('T_BOOKS.id'), primary_key=True)
    author_id = Column(Integer, ForeignKey('T_AUTHORS.id'), primary_key=True)
    order = Column(Integer, nullable=False, default=0)  # 作者在书上的排列顺序

    book = relationship("Book", back_populates="author_links")
    author = relationship("Author", back_populates="books_link")


class Review(Base):
    __tablename__ = 'T_REVIEWS'
    __table_args__ = {
        'extend_existing': True
    }

    id = Column(Integer, primary_key=True, autoincrement=True, mssql_identity_start=1, mssql_identity_increment=1)
    voter_name = Column(String(100), nullable=False)
    num_stars = Column(Integer, nullable=False)
    comment = Column(String(500), nullable=True)
    book_id = Column(Integer, ForeignKey('T_BOOKS.id'), nullable=False)

    book = relationship("Book", back_populates="reviews")


class PriceOffer(Base):
    __tablename__ = 'T_PRICE_OFFERS'
    __table_args__ = {
        'extend_existing': True
    }

    id = Column(Integer, primary_key=True, autoincrement=True, mssql_identity_start=1, mssql_identity_increment=1)
    new_price = Column(Numeric(9, 2), nullable=False)
    promotional_text = Column(String(200), nullable=False)
    book_id = Column(Integer, ForeignKey('T_BOOKS.id'), unique=True, nullable=False)

    book = relationship("Book", back_populates="promotion")
