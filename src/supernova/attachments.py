# src/supernova/attachments.py
"""
Attachment ingestion.

Converts user-selected image files into base64 ``Attachment`` objects ready
for transport. Non-image files are dropped without error. Files are read
with aiofiles one after another so the resulting list keeps the order in
which the files were selected.
"""

import base64
import binascii
import logging
import mimetypes
import os
import pathlib
import re
from typing import Iterable, List, Optional, Union

import aiofiles

from .exceptions import AttachmentError
from .models import Attachment

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[\w-]+=[\w.-]+)*;base64,(?P<data>.*)$", re.DOTALL)


def is_image_mime_type(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.lower().startswith("image/")


def guess_mime_type(path: PathLike) -> Optional[str]:
    mime_type, _ = mimetypes.guess_type(os.fspath(path))
    return mime_type


def ingest_bytes(data: bytes, mime_type: Optional[str]) -> Optional[Attachment]:
    """
    Encodes raw bytes as an attachment.

    Returns:
        The Attachment, or None if the MIME type is not an image type.
    """
    if not is_image_mime_type(mime_type):
        logger.debug(f"Dropping non-image attachment with MIME type '{mime_type}'.")
        return None
    encoded = base64.b64encode(data).decode("ascii")
    return Attachment(mime_type=mime_type, data=encoded)


def attachment_from_data_url(data_url: str) -> Optional[Attachment]:
    """
    Builds an attachment from a ``data:<mime>;base64,<payload>`` URL.

    Returns:
        The Attachment, or None for non-image payloads.

    Raises:
        AttachmentError: If the string is not a base64 data URL.
    """
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise AttachmentError("Not a base64 data URL.")
    mime_type = match.group("mime")
    payload = match.group("data")
    if not is_image_mime_type(mime_type):
        logger.debug(f"Dropping non-image data URL with MIME type '{mime_type}'.")
        return None
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AttachmentError(f"Invalid base64 payload in data URL: {e}")
    return Attachment(mime_type=mime_type, data=payload)


async def ingest_file(path: PathLike, mime_type: Optional[str] = None) -> Optional[Attachment]:
    """
    Reads one file and encodes it.

    Args:
        path: File to read.
        mime_type: Explicit MIME type; guessed from the file name when omitted.

    Returns:
        The Attachment, or None if the file is not an image.

    Raises:
        AttachmentError: If the file cannot be read.
    """
    file_path = pathlib.Path(os.path.expanduser(os.fspath(path)))
    resolved_mime = mime_type or guess_mime_type(file_path)
    if not is_image_mime_type(resolved_mime):
        logger.debug(f"Skipping non-image file {file_path} (MIME type: {resolved_mime}).")
        return None
    try:
        async with aiofiles.open(file_path, mode="rb") as f:
            data = await f.read()
    except OSError as e:
        logger.error(f"Failed to read attachment file {file_path}: {e}")
        raise AttachmentError(f"Could not read file '{file_path}': {e}")
    logger.debug(f"Ingested {file_path} ({resolved_mime}, {len(data)} bytes).")
    return ingest_bytes(data, resolved_mime)


async def ingest_files(paths: Iterable[PathLike]) -> List[Attachment]:
    """
    Reads and encodes a batch of selected files, preserving selection order.

    Non-image files are silently skipped.

    Raises:
        AttachmentError: If any image file cannot be read.
    """
    attachments: List[Attachment] = []
    for path in paths:
        attachment = await ingest_file(path)
        if attachment is not None:
            attachments.append(attachment)
    return attachments
