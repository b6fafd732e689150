"""
api/routes/v1/authors.py -- Author CRUD routes.

Routes:
  GET    /authors       -- list authors             (Customer, Administrator)
  GET    /authors/{id}  -- author detail with books (Customer, Administrator)
  POST   /authors       -- create author            (Administrator)
  PUT    /authors/{id}  -- update author            (Administrator)
  DELETE /authors/{id}  -- delete author            (Administrator)

Outcome mapping:
  id < 1 or path/body id mismatch -> 400
  exists() False / find_by_id() None -> 404
  repository returns False -> 409 (constraint violation, e.g. author has books)
  unexpected storage errors propagate to the generic 500 handler
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import AuthorCreate, AuthorResponse, AuthorUpdate
from auth.dependencies import require_admin, require_reader
from catalog.models import Author
from catalog.store import CatalogStore

logger = logging.getLogger("bookstore.api.authors")

router = APIRouter()


def _not_found(location: str, author_id: int) -> HTTPException:
    logger.warning("%s: Author with id:%d was not found", location, author_id)
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "Author not found."})


def _bad_request(location: str, message: str) -> HTTPException:
    logger.warning("%s: %s", location, message)
    return HTTPException(status_code=400, detail={"code": "bad_request", "message": message})


def _conflict(location: str, message: str) -> HTTPException:
    logger.error("%s: %s", location, message)
    return HTTPException(status_code=409, detail={"code": "conflict", "message": message})


@router.get("/authors", response_model=list[AuthorResponse], dependencies=[Depends(require_reader)])
def list_authors(request: Request) -> list[AuthorResponse]:
    location = "Authors - list"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Attempted to get all authors", location)
    authors = catalog.authors.find_all()
    logger.info("%s: Successfully got %d authors", location, len(authors))
    return [AuthorResponse.from_domain(a) for a in authors]


@router.get("/authors/{author_id}", response_model=AuthorResponse, dependencies=[Depends(require_reader)])
def get_author(request: Request, author_id: int) -> AuthorResponse:
    location = "Authors - get"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Attempted to get author with id:%d", location, author_id)
    author = catalog.authors.find_by_id(author_id)
    if author is None:
        raise _not_found(location, author_id)
    books = catalog.books.find_by_author(author_id)
    logger.info("%s: Successfully got author with id:%d", location, author_id)
    return AuthorResponse.from_domain(author, books)


@router.post("/authors", response_model=AuthorResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_author(request: Request, body: AuthorCreate) -> AuthorResponse:
    location = "Authors - create"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Author submission attempted", location)
    author = Author(firstname=body.firstname, lastname=body.lastname, bio=body.bio)
    if not catalog.authors.create(author):
        raise _conflict(location, "Author creation failed.")
    logger.info("%s: Author with id:%d created", location, author.id)
    return AuthorResponse.from_domain(author)


@router.put("/authors/{author_id}", status_code=204, dependencies=[Depends(require_admin)])
def update_author(request: Request, author_id: int, body: AuthorUpdate) -> Response:
    location = "Authors - update"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Author with id:%d update attempted", location, author_id)
    if author_id < 1 or author_id != body.id:
        raise _bad_request(location, "Author id in path and body must match.")
    if not catalog.authors.exists(author_id):
        raise _not_found(location, author_id)
    author = Author(id=author_id, firstname=body.firstname, lastname=body.lastname, bio=body.bio)
    if not catalog.authors.update(author):
        raise _conflict(location, f"Author with id:{author_id} update failed.")
    logger.info("%s: Author with id:%d updated", location, author_id)
    return Response(status_code=204)


@router.delete("/authors/{author_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_author(request: Request, author_id: int) -> Response:
    location = "Authors - delete"
    catalog: CatalogStore = request.app.state.catalog
    logger.info("%s: Author with id:%d delete attempted", location, author_id)
    if author_id < 1:
        raise _bad_request(location, f"Invalid author id:{author_id}.")
    author = catalog.authors.find_by_id(author_id)
    if author is None:
        raise _not_found(location, author_id)
    if not catalog.authors.delete(author):
        raise _conflict(location, f"Author with id:{author_id} could not be deleted.")
    logger.info("%s: Author with id:%d deleted", location, author_id)
    return Response(status_code=204)
