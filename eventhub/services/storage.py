"""
Photo storage: validation, resizing and persistence to local disk or S3.
"""
import asyncio
import hashlib
import io
import logging
import os
import secrets
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import aiofiles
from PIL import Image, UnidentifiedImageError

from ..config import settings
from ..exceptions import CorruptedImageError, ImageTooLargeError, UnsupportedImageFormatError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ("jpeg", "jpg", "png")
ALLOWED_PATTERN = "|".join(ALLOWED_EXTENSIONS)
_PIL_FORMATS = {"jpeg": "JPEG", "jpg": "JPEG", "png": "PNG"}


@dataclass
class StoredPhoto:
    photo_url: str
    highres_url: str
    base_url: str


def _extension(filename: str) -> str:
    return os.path.splitext(filename.lower())[1].lstrip(".")


def validate_upload(filename: Optional[str], content_type: Optional[str], content: bytes) -> str:
    """Check type, size and readability; return the normalised extension."""
    extension = _extension(filename or "")
    mimetype = (content_type or "").lower()
    mime_ok = any(kind in mimetype for kind in ALLOWED_EXTENSIONS)
    if extension not in ALLOWED_EXTENSIONS or not mime_ok:
        raise UnsupportedImageFormatError(ALLOWED_PATTERN)

    if len(content) > settings.photo_max_mb * 1000 * 1000:
        raise ImageTooLargeError(settings.photo_max_mb)

    try:
        Image.open(io.BytesIO(content)).verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise CorruptedImageError()
    return extension


def stored_name(filename: str, extension: str) -> str:
    # Nonce keeps same-named uploads within one clock tick apart
    seed = f"{filename}{time.time_ns()}{secrets.token_hex(4)}"
    digest = hashlib.md5(seed.encode("utf-8")).hexdigest()
    return f"{digest}.{extension}"


def resized_name(name: str, width: int, height: int) -> str:
    stem, extension = os.path.splitext(name)
    return f"{stem}_{width}_{height}{extension}"


def resize_image(content: bytes, width: int, height: int, extension: str) -> bytes:
    with Image.open(io.BytesIO(content)) as image:
        if _PIL_FORMATS[extension] == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        resized = image.resize((width, height))
        buffer = io.BytesIO()
        resized.save(buffer, format=_PIL_FORMATS[extension])
        return buffer.getvalue()


class StorageService:
    """Writes original and resized photos to the configured backend."""

    def __init__(self, backend: Optional[str] = None, upload_dir: Optional[str] = None):
        self.backend = backend or settings.storage_backend
        self.upload_dir = os.path.abspath(upload_dir or settings.upload_dir)
        self._s3_client = None

    @property
    def s3_client(self):
        if self._s3_client is None:
            import boto3
            self._s3_client = boto3.client(
                "s3",
                region_name=settings.s3_region,
                aws_access_key_id=settings.s3_access_key_id,
                aws_secret_access_key=settings.s3_secret_access_key,
                endpoint_url=settings.s3_endpoint_url,
            )
        return self._s3_client

    @property
    def s3_public_base(self) -> str:
        return settings.s3_public_base_url or \
            f"https://{settings.s3_bucket}.s3.{settings.s3_region}.amazonaws.com"

    async def save_photo(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        request_base_url: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> StoredPhoto:
        extension = validate_upload(filename, content_type, content)
        width = width or settings.photo_default_width
        height = height or settings.photo_default_height

        name = stored_name(filename or "photo", extension)
        small_name = resized_name(name, width, height)
        try:
            resized = await asyncio.to_thread(resize_image, content, width, height, extension)
        except (OSError, ValueError):
            raise CorruptedImageError()

        mime = "image/png" if extension == "png" else "image/jpeg"
        highres_url = await self._write(name, content, mime, request_base_url)
        photo_url = await self._write(small_name, resized, mime, request_base_url)
        base_url = self.s3_public_base if self.backend == "s3" else request_base_url.rstrip("/")
        logger.info({"event": "photo_stored", "file": name, "backend": self.backend})
        return StoredPhoto(photo_url=photo_url, highres_url=highres_url, base_url=base_url)

    async def _write(self, name: str, content: bytes, mime: str, request_base_url: str) -> str:
        if self.backend == "s3":
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=settings.s3_bucket,
                Key=f"uploads/{name}",
                Body=content,
                ContentType=mime,
            )
            return f"{self.s3_public_base}/uploads/{name}"

        os.makedirs(self.upload_dir, exist_ok=True)
        async with aiofiles.open(os.path.join(self.upload_dir, name), "wb") as f:
            await f.write(content)
        return f"{request_base_url.rstrip('/')}/uploads/{name}"

    async def delete_photo_files(self, *urls: Optional[str]) -> None:
        """Remove stored files; missing files are logged and ignored."""
        for url in urls:
            if not url:
                continue
            name = os.path.basename(urlparse(url).path)
            if self.backend == "s3":
                try:
                    await asyncio.to_thread(
                        self.s3_client.delete_object,
                        Bucket=settings.s3_bucket,
                        Key=f"uploads/{name}",
                    )
                except Exception as e:
                    logger.error(f"Failed to delete S3 photo {name}: {e}")
                continue
            path = os.path.join(self.upload_dir, name)
            try:
                os.remove(path)
            except FileNotFoundError:
                logger.warning(f"Photo file not found: {path}")
            except OSError as e:
                logger.error(f"Failed to delete local photo {path}: {e}")


storage_service = StorageService()
