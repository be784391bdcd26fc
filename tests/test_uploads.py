"""Tests for upload validation and storage."""

import re

import pytest

from confess_wall.config import UploadConfig
from confess_wall.errors import PayloadTooLarge, StoreFailure, UnsupportedMediaType
from confess_wall.uploads import MAX_UPLOAD_BYTES, UploadStorage, storage_name, validate_upload


class TestValidateUpload:
    """Test validate_upload()."""

    def test_no_file_returns_none(self):
        """Test a missing file is allowed and yields None."""
        assert validate_upload(None, 0, None) is None
        assert validate_upload("application/octet-stream", 0, "") is None

    def test_png_accepted(self):
        """Test a small PNG is accepted."""
        photo = validate_upload("image/png", 1024, "cat.png")

        assert photo is not None
        assert photo.content_type == "image/png"
        assert photo.size == 1024
        assert photo.filename.endswith(".png")

    @pytest.mark.parametrize("mime", ["image/jpeg", "image/gif", "image/webp"])
    def test_other_images_accepted(self, mime):
        """Test every allow-listed type is accepted."""
        assert validate_upload(mime, 10, "upload.bin") is not None

    def test_pdf_rejected(self):
        """Test a PDF is rejected by declared type."""
        with pytest.raises(UnsupportedMediaType):
            validate_upload("application/pdf", 1024, "report.pdf")

    def test_missing_type_rejected(self):
        """Test a file without a declared type is rejected."""
        with pytest.raises(UnsupportedMediaType):
            validate_upload(None, 10, "mystery.png")

    def test_type_parameters_ignored(self):
        """Test MIME parameters and case do not affect the check."""
        assert validate_upload("Image/PNG; charset=binary", 10, "a.png") is not None

    def test_size_ceiling(self):
        """Test files over 2 MiB are rejected and the limit itself is allowed."""
        assert validate_upload("image/jpeg", MAX_UPLOAD_BYTES, "big.jpg") is not None
        with pytest.raises(PayloadTooLarge):
            validate_upload("image/jpeg", MAX_UPLOAD_BYTES + 1, "huge.jpg")

    def test_custom_limits(self):
        """Test allow-list and size ceiling can be overridden."""
        with pytest.raises(UnsupportedMediaType):
            validate_upload("image/gif", 10, "a.gif", allowed_types=["image/png"])
        with pytest.raises(PayloadTooLarge):
            validate_upload("image/png", 11, "a.png", max_bytes=10)


class TestStorageName:
    """Test generated storage names."""

    def test_extension_lower_cased(self):
        """Test the original extension is kept in lower case."""
        assert re.fullmatch(r"img_\d+_\d+\.png", storage_name("Holiday.PNG"))

    def test_no_extension(self):
        """Test names without an extension still get a unique name."""
        assert re.fullmatch(r"img_\d+_\d+", storage_name("noext"))

    def test_path_components_dropped(self):
        """Test directory parts of the client name never reach the stored name."""
        name = storage_name("../../etc/passwd.jpg")
        assert "/" not in name and ".." not in name

    def test_names_unique_within_same_millisecond(self):
        """Test many names generated back to back never collide."""
        names = {storage_name("a.jpg") for _ in range(2000)}
        assert len(names) == 2000


class TestUploadStorage:
    """Test writing photos to disk."""

    def setup_method(self):
        """Set up test fixtures."""
        self.data = b"\x89PNG\r\n\x1a\nfake"

    def make_storage(self, tmp_path):
        config = UploadConfig(directory=str(tmp_path / "uploads"))
        return UploadStorage(config, "http://localhost:3000")

    @pytest.mark.asyncio
    async def test_save_returns_public_url(self, tmp_path):
        """Test saved photos are written and get a public URL."""
        storage = self.make_storage(tmp_path)
        photo = storage.validate("image/png", len(self.data), "cat.png")

        url = await storage.save(photo, self.data)

        assert url == f"http://localhost:3000/uploads/{photo.filename}"
        assert (tmp_path / "uploads" / photo.filename).read_bytes() == self.data

    @pytest.mark.asyncio
    async def test_save_never_overwrites(self, tmp_path):
        """Test writing the same name twice fails instead of replacing the file."""
        storage = self.make_storage(tmp_path)
        photo = storage.validate("image/png", len(self.data), "cat.png")
        await storage.save(photo, self.data)

        with pytest.raises(StoreFailure):
            await storage.save(photo, b"other")
        assert (tmp_path / "uploads" / photo.filename).read_bytes() == self.data

    @pytest.mark.asyncio
    async def test_discard_removes_file(self, tmp_path):
        """Test discard deletes a stored photo and tolerates missing files."""
        storage = self.make_storage(tmp_path)
        photo = storage.validate("image/png", len(self.data), "cat.png")
        await storage.save(photo, self.data)

        await storage.discard(photo)
        await storage.discard(photo)

        assert not (tmp_path / "uploads" / photo.filename).exists()

    def test_relative_public_url(self, tmp_path):
        """Test URLs are root-relative when no base URL is configured."""
        storage = UploadStorage(UploadConfig(directory=str(tmp_path)))
        photo = storage.validate("image/gif", 1, "a.gif")
        assert storage.public_url(photo) == f"/uploads/{photo.filename}"
