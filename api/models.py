"""
API request and response models for BookStore REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in catalog/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.

Field names follow the companion front-end's camelCase JSON (loginName,
authorId); populate_by_name lets Python callers use the snake_case names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from catalog.models import Author, Book

# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Request body for POST /users/login and POST /users/register.

    Length limits here only guard the transport. The password policy
    (PASSWORD_MIN_LENGTH..PASSWORD_MAX_LENGTH) is applied by
    auth.service.register() because it is configuration, not schema.
    """

    model_config = ConfigDict(str_strip_whitespace=False, populate_by_name=True)

    login_name: str = Field(alias="loginName", min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


class RegistrationErrorRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    description: str


class RegisterResponse(BaseModel):
    """Response for POST /users/register, on success and on policy failure."""

    model_config = ConfigDict(frozen=True)

    succeeded: bool
    errors: list[RegistrationErrorRow] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------


class AuthorCreate(BaseModel):
    """Request body for POST /api/v1/authors."""

    model_config = ConfigDict(str_strip_whitespace=True)

    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=250)


class AuthorUpdate(AuthorCreate):
    """Request body for PUT /api/v1/authors/{id}. id must match the path."""

    id: int


class BookSummary(BaseModel):
    """A book as listed inside an author detail response."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    year: Optional[int]
    isbn: str


class AuthorResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    firstname: str
    lastname: str
    bio: Optional[str]
    books: list[BookSummary] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, author: Author, books: Optional[list[Book]] = None) -> "AuthorResponse":
        return cls(
            id=author.id,
            firstname=author.firstname,
            lastname=author.lastname,
            bio=author.bio,
            books=[BookSummary(id=b.id, title=b.title, year=b.year, isbn=b.isbn) for b in books or []],
        )


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


class BookCreate(BaseModel):
    """Request body for POST /api/v1/books."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    title: str = Field(min_length=1, max_length=150)
    year: Optional[int] = Field(default=None, ge=0, le=9999)
    isbn: str = Field(min_length=1, max_length=20)
    summary: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = Field(default=None, max_length=255)
    price: Optional[float] = Field(default=None, ge=0)
    author_id: int = Field(alias="authorId", ge=1)


class BookUpdate(BookCreate):
    """Request body for PUT /api/v1/books/{id}. id must match the path."""

    id: int


class AuthorSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    firstname: str
    lastname: str


class BookResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    title: str
    year: Optional[int]
    isbn: str
    summary: Optional[str]
    image: Optional[str]
    price: Optional[float]
    author_id: int = Field(alias="authorId")
    author: Optional[AuthorSummary] = None

    @classmethod
    def from_domain(cls, book: Book, author: Optional[Author] = None) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            year=book.year,
            isbn=book.isbn,
            summary=book.summary,
            image=book.image,
            price=book.price,
            author_id=book.author_id,
            author=AuthorSummary(id=author.id, firstname=author.firstname, lastname=author.lastname)
            if author is not None
            else None,
        )
