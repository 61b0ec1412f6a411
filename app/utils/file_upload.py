"""
File Upload Utility - Validate and store applicant documents.

Supported formats:
- PDF (.pdf), must open with PyPDF2
- Images (.jpg, .jpeg, .png)

Max file size: settings.max_upload_size_mb (default 5MB)
Files are written under settings.upload_dir with a random prefix;
only metadata goes to MongoDB.
"""

import io
import logging
import os
import re
import uuid
from datetime import datetime
from typing import List
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]")


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def sanitize_filename(filename: str) -> str:
    """Strip directories and anything outside [A-Za-z0-9._-]."""
    name = os.path.basename(filename.replace("\\", "/"))
    name = SAFE_NAME.sub("_", name).lstrip(".")
    return name or "file"


def upload_root() -> str:
    os.makedirs(settings.upload_dir, exist_ok=True)
    return settings.upload_dir


def resolve_stored_file(file_name: str) -> str:
    """
    Map a download name to a path inside the upload dir.
    Raises 400 on anything that tries to leave it.
    """
    safe = sanitize_filename(file_name)
    if safe != file_name:
        raise HTTPException(status_code=400, detail="Invalid file name")
    return os.path.join(upload_root(), safe)


def validate_pdf(content: bytes) -> None:
    """Reject PDFs that PyPDF2 cannot open."""
    try:
        reader = PdfReader(io.BytesIO(content))
        if len(reader.pages) == 0:
            raise HTTPException(status_code=400, detail="PDF has no pages")
    except (PdfReadError, ValueError, OSError) as e:
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")


async def save_upload(file: UploadFile) -> dict:
    """
    Validate one uploaded file and write it to disk.

    Returns:
        Stored file metadata (file_path, original_name, content_type, size_bytes, uploaded_at)

    Raises:
        HTTPException 400 on bad type/content, 413 when too large
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in settings.allowed_upload_extensions:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: {', '.join(settings.allowed_upload_extensions)}"
        )

    content = await file.read()

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_size_mb}MB"
        )
    if not content:
        raise HTTPException(status_code=400, detail=f"File '{file.filename}' is empty")

    if ext == '.pdf':
        validate_pdf(content)

    stored_name = f"{uuid.uuid4().hex}_{sanitize_filename(file.filename)}"
    with open(os.path.join(upload_root(), stored_name), "wb") as out:
        out.write(content)

    return {
        "file_path": stored_name,
        "original_name": file.filename,
        "content_type": file.content_type,
        "size_bytes": len(content),
        "uploaded_at": datetime.utcnow()
    }


def remove_files(file_paths: List[str]) -> None:
    """Best-effort delete of stored files."""
    for name in file_paths:
        path = os.path.join(upload_root(), sanitize_filename(name))
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.warning("Stored file already gone: %s", name)
        except OSError as e:
            logger.warning("Could not remove %s: %s", name, e)
