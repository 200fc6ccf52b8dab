"""Tests for company logo storage paths and uploads (GCS mocked)."""
from unittest.mock import MagicMock, patch

from app.utils.storage import logo_path, upload_company_logo


class TestLogoPath:
    def test_extension_from_filename(self):
        path = logo_path(7, "Logo.PNG", b"img", "image/png")
        assert path.startswith("company-logos/7/")
        assert path.endswith(".png")

    def test_extension_from_content_type(self):
        assert logo_path(7, "logo", b"img", "image/jpeg").endswith(".jpg")

    def test_same_bytes_same_path(self):
        assert logo_path(1, "a.png", b"same", None) == logo_path(1, "a.png", b"same", None)
        assert logo_path(1, "a.png", b"one", None) != logo_path(1, "a.png", b"two", None)


class TestUploadCompanyLogo:
    def test_uploads_and_returns_public_url(self):
        bucket = MagicMock()
        bucket.name = "audit-assets"
        with patch("app.utils.storage.get_bucket", return_value=bucket):
            url = upload_company_logo(3, "logo.png", b"bytes", "image/png")

        path = bucket.blob.call_args.args[0]
        assert url == f"https://storage.googleapis.com/audit-assets/{path}"
        bucket.blob.return_value.upload_from_string.assert_called_once_with(
            b"bytes", content_type="image/png"
        )
