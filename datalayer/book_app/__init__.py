from .models import Author, Base, Book, BookAuthor, PriceOffer, Review

__all__ = ["Author", "Base", "Book", "BookAuthor", "PriceOffer", "Review"]
