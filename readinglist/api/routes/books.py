"""
Book API Routes

CRUD over the signed-in account's reading list. Every route requires a
session, checked before the body is validated; single-book routes also
check ownership.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from readinglist.api.dependencies import get_book_service, get_required_session
from readinglist.api.schemas import (
    BookCreateRequest,
    BookResponse,
    BookUpdateRequest,
    DeleteResponse,
    ErrorResponse,
)
from readinglist.services.book_service import BookCollectionService, BookFilters
from readinglist.sessions import SessionData

router = APIRouter(
    prefix="/books",
    tags=["books"],
    responses={401: {"model": ErrorResponse, "description": "Not signed in"}},
)

_SINGLE_BOOK_ERRORS = {
    403: {"model": ErrorResponse, "description": "Book belongs to another account"},
    404: {"model": ErrorResponse, "description": "Book not found"},
}


@router.get("", response_model=list[BookResponse])
def list_books(
    status_filter: Optional[str] = Query(None, alias="status", description="to-read, reading or read"),
    genre: Optional[str] = Query(None, description="Exact genre"),
    search: Optional[str] = Query(None, description="Substring of title or author"),
    session: SessionData = Depends(get_required_session),
    books: BookCollectionService = Depends(get_book_service),
):
    """List the caller's books, newest first."""
    found = books.list(session, BookFilters(status=status_filter, genre=genre, search=search))
    return [BookResponse.from_stored(book) for book in found]


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid book data"}},
)
def create_book(
    body: BookCreateRequest,
    session: SessionData = Depends(get_required_session),
    books: BookCollectionService = Depends(get_book_service),
):
    """Add a book. The owner is always the caller."""
    book = books.create(session, body.to_fields())
    logger.info(f"Created book {book.id}")
    return BookResponse.from_stored(book)


@router.get("/{book_id}", response_model=BookResponse, responses=_SINGLE_BOOK_ERRORS)
def get_book(
    book_id: int,
    session: SessionData = Depends(get_required_session),
    books: BookCollectionService = Depends(get_book_service),
):
    """Get one of the caller's books."""
    return BookResponse.from_stored(books.get(session, book_id))


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    responses={
        **_SINGLE_BOOK_ERRORS,
        400: {"model": ErrorResponse, "description": "Invalid book data"},
    },
)
def update_book(
    book_id: int,
    body: BookUpdateRequest,
    session: SessionData = Depends(get_required_session),
    books: BookCollectionService = Depends(get_book_service),
):
    """Replace every field of one of the caller's books."""
    return BookResponse.from_stored(books.update(session, book_id, body.to_fields()))


@router.delete("/{book_id}", response_model=DeleteResponse, responses=_SINGLE_BOOK_ERRORS)
def delete_book(
    book_id: int,
    session: SessionData = Depends(get_required_session),
    books: BookCollectionService = Depends(get_book_service),
):
    """Delete one of the caller's books."""
    return DeleteResponse(deleted_id=books.delete(session, book_id))
