import logging
from shelfshare.core.models import Book, Library
from shelfshare.core.exceptions import (
    DatabaseInsertError,
    LibraryExistsError,
    LibraryNotFoundError,
)

logger = logging.getLogger(__name__)


class CatalogAPI:

    @classmethod
    def create_library(cls, db, owner_id, name=None):
        if Library.for_owner(db, owner_id):
            raise LibraryExistsError()
        try:
            library = Library(owner_id=owner_id, name=name or "My Library")
            db.add(library)
            db.commit()
        except Exception as e:
            db.rollback()
            raise DatabaseInsertError(f"Failed to create library: {str(e)}.")
        logger.info(f"Library {library.id} created for {owner_id}")
        return library

    @classmethod
    def add_book(cls, db, owner_id, title, author=None, isbn=None):
        """Adds a book to the owner's library"""
        library = Library.for_owner(db, owner_id)
        if not library:
            raise LibraryNotFoundError("Create a library before adding books")
        try:
            book = Book(library_id=library.id, title=title, author=author, isbn=isbn)
            db.add(book)
            db.commit()
        except Exception as e:
            db.rollback()
            raise DatabaseInsertError(f"Failed to add book to db: {str(e)}.")
        return book
