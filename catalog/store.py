"""
catalog/store.py -- SQLAlchemy-backed persistence for Authors and Books.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

CatalogStore owns the engine and composes one concrete repository per entity
kind. Routes reach them as store.authors / store.books and never touch SQL.

Referential integrity: books.author_id references authors.id with no cascade.
Deleting an author who still has books fails with IntegrityError, which the
repository reports as False. SQLite only enforces this with
PRAGMA foreign_keys=ON, set on every pooled connection.

Usage:
    store = CatalogStore()                                # SQLite default
    store = CatalogStore("postgresql://user:pw@host/db")  # PostgreSQL
    author = Author(firstname="Ursula", lastname="Le Guin")
    store.authors.create(author)                          # assigns author.id
    store.books.create(Book(title="The Dispossessed", isbn="978-0060512750", author_id=author.id))
    store.close()
"""

from pathlib import Path

from sqlalchemy import Column, Float, ForeignKey, Integer, MetaData, String, Table, create_engine, event, text
from sqlalchemy.engine import Engine

from catalog.models import Author, Book
from catalog.repository import SqlRepository

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'bookstore_catalog.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_authors = Table(
    "authors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("firstname", String(100), nullable=False),
    Column("lastname", String(100), nullable=False),
    Column("bio", String(250)),
)

_books = Table(
    "books",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(150), nullable=False),
    Column("year", Integer),
    Column("isbn", String(20), nullable=False, unique=True),
    Column("summary", String(500)),
    Column("image", String(255)),
    Column("price", Float),
    Column("author_id", Integer, ForeignKey("authors.id"), nullable=False),
)


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement per connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class AuthorRepository(SqlRepository[Author]):
    table = _authors

    def _to_values(self, entity: Author) -> dict:
        return {"firstname": entity.firstname, "lastname": entity.lastname, "bio": entity.bio}

    def _from_row(self, row) -> Author:
        return Author(id=row.id, firstname=row.firstname, lastname=row.lastname, bio=row.bio)


class BookRepository(SqlRepository[Book]):
    table = _books

    def _to_values(self, entity: Book) -> dict:
        return {
            "title": entity.title,
            "year": entity.year,
            "isbn": entity.isbn,
            "summary": entity.summary,
            "image": entity.image,
            "price": entity.price,
            "author_id": entity.author_id,
        }

    def _from_row(self, row) -> Book:
        return Book(
            id=row.id,
            title=row.title,
            year=row.year,
            isbn=row.isbn,
            summary=row.summary,
            image=row.image,
            price=row.price,
            author_id=row.author_id,
        )

    def find_by_author(self, author_id: int) -> list[Book]:
        """Return the author's books ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _books.select().where(_books.c.author_id == author_id).order_by(_books.c.id)
            ).fetchall()
        return [self._from_row(r) for r in rows]


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------


class CatalogStore:
    """Owns the catalog engine and exposes one repository per entity kind."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        metadata.create_all(self.engine)
        self.authors = AuthorRepository(self.engine)
        self.books = BookRepository(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()
