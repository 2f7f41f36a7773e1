"""
Listing image storage on local disk.

Files land in ``UPLOAD_DIR`` as ``<epoch millis>-<original name>`` and are
served by the static mount at ``/uploads``.
"""

import logging
import os
import re
import shutil
import time
from pathlib import Path
from typing import List, Optional, Sequence

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from roomfood.core.exceptions import ValidationException
from roomfood.core.settings import get_settings

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"


def upload_dir() -> Path:
    path = Path(get_settings().UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def stored_filename(original_name: str, millis: Optional[int] = None) -> str:
    """Timestamp-prefixed name with whitespace runs replaced by '_'"""
    base = os.path.basename(original_name or "image") or "image"
    safe = re.sub(r"\s+", "_", base)
    if millis is None:
        millis = int(time.time() * 1000)
    return f"{millis}-{safe}"


def public_url(filename: str) -> str:
    return f"{get_settings().BASE_URL.rstrip('/')}{UPLOAD_URL_PREFIX}/{filename}"


def _write(upload: UploadFile, directory: Path) -> str:
    """Write ``upload`` under a name no other file holds; returns that name.

    Exclusive create fails on a taken name, so the timestamp is bumped until a
    free one is found.
    """
    millis = int(time.time() * 1000)
    while True:
        filename = stored_filename(upload.filename, millis)
        try:
            with (directory / filename).open("xb") as out:
                shutil.copyfileobj(upload.file, out)
            return filename
        except FileExistsError:
            millis += 1


async def save_images(files: Sequence[UploadFile]) -> List[str]:
    """Persist uploaded images and return their public URLs, in upload order"""
    files = [f for f in files if f is not None and f.filename]
    limit = get_settings().MAX_LISTING_IMAGES
    if len(files) > limit:
        raise ValidationException(f"At most {limit} images may be uploaded at once", code="too_many_images")

    directory = upload_dir()
    urls = []
    for upload in files:
        filename = await run_in_threadpool(_write, upload, directory)
        urls.append(public_url(filename))
        logger.info(f"Stored upload {filename}")
    return urls
