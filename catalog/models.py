"""
catalog/models.py -- Domain dataclasses for the book catalog.

These are pure data containers with zero logic. Persistence lives in
catalog/repository.py and catalog/store.py; HTTP shape lives in api/models.py.

id is None before the record is written to the database. Repositories assign
it on a successful create().
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Author:
    firstname: str
    lastname: str
    bio: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Book:
    """A catalog title. author_id must reference an existing Author."""

    title: str
    isbn: str
    author_id: int
    year: Optional[int] = None
    summary: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = None
    id: Optional[int] = None
