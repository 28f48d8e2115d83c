"""Photo validation, naming and local persistence."""
import io
import os

import pytest
from PIL import Image

from conftest import png_bytes
from eventhub.exceptions import CorruptedImageError, ImageTooLargeError, UnsupportedImageFormatError
from eventhub.services.storage import (
    StorageService,
    resize_image,
    resized_name,
    stored_name,
    validate_upload,
)


class TestValidateUpload:
    def test_accepts_png_and_normalises_extension(self):
        assert validate_upload("Holiday.PNG", "image/png", png_bytes()) == "png"

    def test_extension_and_mime_must_both_match(self):
        with pytest.raises(UnsupportedImageFormatError) as exc:
            validate_upload("notes.txt", "image/png", png_bytes())
        assert str(exc.value) == "File upload only supports the following file types - jpeg|jpg|png"
        with pytest.raises(UnsupportedImageFormatError):
            validate_upload("photo.png", "image/gif", png_bytes())

    def test_size_limit(self, monkeypatch):
        from eventhub.config import settings

        monkeypatch.setattr(settings, "photo_max_mb", 0)
        with pytest.raises(ImageTooLargeError) as exc:
            validate_upload("photo.png", "image/png", png_bytes())
        assert str(exc.value) == "File size > 0MB"
        assert exc.value.status_code == 413

    def test_corrupted_image(self):
        with pytest.raises(CorruptedImageError):
            validate_upload("photo.jpg", "image/jpeg", b"definitely not a jpeg")


def test_names():
    name = stored_name("holiday.png", "png")
    stem, ext = os.path.splitext(name)
    assert ext == ".png"
    assert len(stem) == 32
    assert resized_name(name, 320, 240) == f"{stem}_320_240.png"


def test_resize_image():
    resized = resize_image(png_bytes(40, 30), 10, 8, "png")
    with Image.open(io.BytesIO(resized)) as image:
        assert image.size == (10, 8)


async def test_local_save_and_delete(tmp_path):
    service = StorageService(backend="local", upload_dir=str(tmp_path))

    stored = await service.save_photo(
        "holiday.png", "image/png", png_bytes(), "http://testserver/", width=32, height=24)

    assert stored.highres_url.startswith("http://testserver/uploads/")
    assert stored.photo_url.endswith("_32_24.png")
    files = sorted(os.listdir(tmp_path))
    assert len(files) == 2

    await service.delete_photo_files(stored.photo_url, stored.highres_url)
    assert os.listdir(tmp_path) == []
