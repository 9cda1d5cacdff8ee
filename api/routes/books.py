"""
Book routes: metadata CRUD and PDF download/upload.
"""

import uuid
from typing import AsyncIterator, List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from api.auth import TokenClaims, require_administrator, require_member
from api.config import APIConfig
from api.dependencies import get_api_config, get_book_repository, get_file_store
from api.models import BookResponse, BookUpdate, CreatedResponse, MessageResponse
from storage.books import BookRepository
from storage.exceptions import FileTooLargeError, StorageError
from storage.files import PDF_CONTENT_TYPE, SNIFF_LENGTH, BookFileStore, sniff_content_type

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/books", tags=["Books"])

BOOK_FORM_FIELDS = ("title", "author", "subject")
BOOK_FILE_FIELD = "bookFile"


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _check_declared_size(request: Request, limit: int) -> None:
    """Reject an upload from its Content-Length header, before any body is read."""
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        size = int(declared)
    except ValueError:
        raise _bad_request("invalid Content-Length header")
    if size > limit:
        raise _bad_request(f"request body too large, the limit is {limit} bytes")


async def _limited_body(request: Request, limit: int) -> AsyncIterator[bytes]:
    """Yield the request body, failing as soon as more than limit bytes arrive."""
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            logger.info("Upload aborted at size limit", received=received, limit=limit)
            raise FileTooLargeError(limit)
        yield chunk


async def _read_upload_form(request: Request, limit: int) -> FormData:
    """
    Parse a multipart upload without reading more than limit bytes of body.

    Raises:
        HTTPException: 400 if the body is not valid multipart form data
        FileTooLargeError: If the body exceeds the limit, whether or not a
            Content-Length was declared
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        raise _bad_request("multipart/form-data body is required")

    parser = MultiPartParser(request.headers, _limited_body(request, limit))
    try:
        return await parser.parse()
    except MultiPartException as e:
        raise _bad_request(e.message)


@router.get("", response_model=List[BookResponse])
async def list_books(
    claims: TokenClaims = Depends(require_member),
    books: BookRepository = Depends(get_book_repository),
):
    """List every book in the catalogue."""
    records = await books.list_books()
    return [BookResponse.model_validate(record) for record in records]


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    request: Request,
    claims: TokenClaims = Depends(require_administrator),
    books: BookRepository = Depends(get_book_repository),
    files: BookFileStore = Depends(get_file_store),
    api_config: APIConfig = Depends(get_api_config),
):
    """
    Upload a new book.

    Multipart form fields: **title**, **author**, **subject** and **bookFile**
    (a PDF of at most 10 MiB). The file type is determined from its content,
    not from its name or declared type.
    """
    _check_declared_size(request, api_config.max_book_file_size)

    form = await _read_upload_form(request, api_config.max_book_file_size)
    try:
        values = {}
        for field in BOOK_FORM_FIELDS:
            value = form.get(field)
            if not isinstance(value, str) or not value.strip():
                raise _bad_request(f"{field} is required")
            values[field] = value.strip()

        upload = form.get(BOOK_FILE_FIELD)
        if not isinstance(upload, UploadFile):
            raise _bad_request(f"{BOOK_FILE_FIELD} is required")

        head = await upload.read(SNIFF_LENGTH)
        content_type = sniff_content_type(head)
        if content_type != PDF_CONTENT_TYPE:
            logger.info("Rejected non-PDF upload", detected=content_type, filename=upload.filename)
            raise _bad_request(f"only pdf files are supported, got {content_type}")
        await upload.seek(0)

        book_id = str(uuid.uuid4())
        await files.save(book_id, upload.file)
        try:
            await books.create_book(book_id, **values)
        except StorageError:
            await files.remove(book_id)
            raise
    finally:
        await form.close()

    logger.info("Book uploaded", book_id=book_id, by=claims.username)
    return CreatedResponse(message=f"book created with id: {book_id}", id=book_id)


@router.get("/{book_id:uuid}", response_model=BookResponse)
async def get_book(
    book_id: uuid.UUID,
    claims: TokenClaims = Depends(require_member),
    books: BookRepository = Depends(get_book_repository),
):
    """Get one book's metadata."""
    record = await books.get_book(str(book_id))
    return BookResponse.model_validate(record)


@router.get("/{book_id:uuid}/file", response_class=FileResponse)
async def get_book_file(
    book_id: uuid.UUID,
    claims: TokenClaims = Depends(require_member),
    files: BookFileStore = Depends(get_file_store),
):
    """Download a book's PDF."""
    path = files.locate(str(book_id))
    return FileResponse(
        path,
        media_type=PDF_CONTENT_TYPE,
        headers={"Content-Transfer-Encoding": "binary"},
    )


@router.put("/{book_id:uuid}", response_model=MessageResponse)
async def update_book(
    book_id: uuid.UUID,
    update: BookUpdate,
    claims: TokenClaims = Depends(require_administrator),
    books: BookRepository = Depends(get_book_repository),
):
    """
    Update a book. Only non-empty fields in the body overwrite stored values.
    """
    await books.update_book(str(book_id), update.changes())
    return MessageResponse(message="book updated")


@router.delete("/{book_id:uuid}", response_model=MessageResponse)
async def delete_book(
    book_id: uuid.UUID,
    claims: TokenClaims = Depends(require_administrator),
    books: BookRepository = Depends(get_book_repository),
    files: BookFileStore = Depends(get_file_store),
):
    """
    Delete a book and its PDF.

    The record is authoritative: once it is gone the book is deleted, and a
    file that cannot be removed is left for `manage_library.py cleanup`.
    """
    await books.delete_book(str(book_id))
    try:
        await files.remove(str(book_id))
    except StorageError as e:
        logger.warning("Book file left behind after delete", book_id=str(book_id), error=e.message)
    return MessageResponse(message="book deleted")
