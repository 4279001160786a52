"""Local storage for uploaded product assets."""
import logging
import os
import re
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from config import settings_conf

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(Exception):
    """Base exception for storage errors."""
    pass

class FileTooLargeError(StorageError):
    """Raised when an upload exceeds the configured size limit."""
    def __init__(self, name: str, limit: int):
        self.name = name
        self.limit = limit
        super().__init__(f"File {name} exceeds the {limit // (1024 * 1024)} MB limit")

class InvalidFileTypeError(StorageError):
    """Raised when an upload has the wrong content type."""
    pass


def safe_filename(name: Optional[str]) -> str:
    """Reduce a client-supplied file name to a safe basename."""
    base = os.path.basename(name or '') or 'file'
    return SAFE_NAME.sub('_', base)[:120]


async def save_upload(
    upload: UploadFile,
    folder: str,
    image_only: bool = False,
    upload_dir: Optional[str] = None,
    max_bytes: Optional[int] = None
) -> Dict[str, Any]:
    """Stream an uploaded file to ``<upload_dir>/<folder>/``.

    Returns:
        Dict with path, name, size and content_type

    Raises:
        InvalidFileTypeError: If image_only and the upload is not an image
        FileTooLargeError: If the upload exceeds the size limit
    """
    content_type = upload.content_type or 'application/octet-stream'
    if image_only and not content_type.startswith('image/'):
        raise InvalidFileTypeError(f"File {upload.filename} must be an image")

    max_bytes = max_bytes or settings_conf['max_upload_mb'] * 1024 * 1024
    target_dir = Path(upload_dir or settings_conf['upload_dir']) / folder
    target_dir.mkdir(parents=True, exist_ok=True)

    name = safe_filename(upload.filename)
    path = target_dir / f"{uuid.uuid4().hex}_{name}"

    size = 0
    try:
        async with aiofiles.open(path, 'wb') as f:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise FileTooLargeError(name, max_bytes)
                await f.write(chunk)
    except Exception:
        if path.exists():
            path.unlink()
        raise

    logger.info(f"Stored upload {name} ({size} bytes) at {path}")
    return {
        'path': str(path),
        'name': name,
        'size': size,
        'content_type': content_type,
    }


async def remove_files(paths: Iterable[str]) -> None:
    """Delete stored uploads, skipping any that are already gone."""
    for path in paths:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            continue
        logger.info(f"Removed upload {path}")


__all__ = [
    'save_upload',
    'remove_files',
    'safe_filename',
    'StorageError',
    'FileTooLargeError',
    'InvalidFileTypeError',
]
