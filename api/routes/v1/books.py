"""
api/routes/v1/books.py -- Book CRUD routes.

Routes:
  GET    /books       -- list books                  (Customer, Administrator)
  GET    /books/{id}  -- book detail with its author (Customer, Administrator)
  POST   /books       -- create book                 (Administrator)
  PUT    /books/{id}  -- update book                 (Administrator)
  DELETE /books/{id}  -- delete book                 (Administrator)

Same outcome mapping as authors.py. A book whose authorId does not exist, or
whose ISBN is already taken, fails the insert/update constraint -> 409.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import BookCreate, BookResponse, BookUpdate
from auth.dependencies import require_admin, require_reader
from catalog.models import Book
from catalog.store import CatalogStore

logger = logging.getLogger("bookstore.api.books")

router = APIRouter()


def _not_found(location: str, book_id: int) -> HTTPException:
    logger.warning("%s: Book with id:%d was not found", location, book_id)
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Book not found."})


def _bad_request(location: str, message: str) -> HTTPException:
    logger.warning("%s: %s", location, message)
    return HTTPException(status_code=400, detail={"code": "bad_request", "message": message})


def _conflict(location: str, message: str) -> HTTPException:
    logger.error("%s: %s", location, message)
    return HTTPException(status_code=409, detail={"code": "conflict", "message": message})


def _book_from(body: BookCreate, book_id: int | None = None) -> Book:
    return Book(
        id=book_id,
        title=body.title,
        year=body.year,
        isbn=body.isbn,
        summary=body.summary,
        image=body.image,
        price=body.price,
        author_id=body.author_id,
    )


@router.get("/books", response_model=list[BookResponse], dependencies=[Depends(require_reader)])
def list_books(request: Request) -> list[BookResponse]:
    location = "Books - list"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Attempted to get all books", location)
    books = catalog.books.find_all()
    logger.info("%s: Successfully got %d books", location, len(books))
    return [BookResponse.from_domain(b) for b in books]


@router.get("/books/{book_id}", response_model=BookResponse, dependencies=[Depends(require_reader)])
def get_book(request: Request, book_id: int) -> BookResponse:
    location = "Books - get"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Attempted to get book with id:%d", location, book_id)
    book = catalog.books.find_by_id(book_id)
    if book is None:
        raise _not_found(location, book_id)
    author = catalog.authors.find_by_id(book.author_id)
    logger.info("%s: Successfully got book with id:%d", location, book_id)
    return BookResponse.from_domain(book, author)


@router.post("/books", response_model=BookResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_book(request: Request, body: BookCreate) -> BookResponse:
    location = "Books - create"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Book submission attempted", location)
    book = _book_from(body)
    if not catalog.books.create(book):
        raise _conflict(location, "Book creation failed. Check that the author exists and the ISBN is unique.")
    logger.info("%s: Book with id:%d created", location, book.id)
    return BookResponse.from_domain(book)


@router.put("/books/{book_id}", status_code=204, dependencies=[Depends(require_admin)])
def update_book(request: Request, book_id: int, body: BookUpdate) -> Response:
    location = "Books - update"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Book with id:%d update attempted", location, book_id)
    if book_id < 1 or book_id != body.id:
        raise _bad_request(location, "Book id in path and body must match.")
    if not catalog.books.exists(book_id):
        raise _not_found(location, book_id)
    if not catalog.books.update(_book_from(body, book_id)):
        raise _conflict(location, f"Book with id:{book_id} update failed.")
    logger.info("%s: Book with id:%d updated", location, book_id)
    return Response(status_code=204)


@router.delete("/books/{book_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_book(request: Request, book_id: int) -> Response:
    location = "Books - delete"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Book with id:%d delete attempted", location, book_id)
    if book_id < 1:
        raise _bad_request(location, f"Invalid book id:{book_id}.")
    book = catalog.books.find_by_id(book_id)
    if book is None:
        raise _not_found(location, book_id)
    if not catalog.books.delete(book):
        raise _conflict(location, f"Book with id:{book_id} could not be deleted.")
    logger.info("%s: Book with id:%d deleted", location, book_id)
    return Response(status_code=204)
