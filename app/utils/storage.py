import hashlib
import mimetypes

from google.cloud import storage as gcs_storage

from app.config import get_settings

LOGO_PREFIX = "company-logos"


def get_storage_client():
    return gcs_storage.Client(project=get_settings().GCP_PROJECT_ID or None)


def get_bucket():
    client = get_storage_client()
    return client.bucket(get_settings().GCS_BUCKET_NAME)


def upload_file(path: str, file_bytes: bytes, content_type: str = "application/octet-stream") -> str:
    """Upload file to GCS bucket. Returns the public object URL."""
    bucket = get_bucket()
    blob = bucket.blob(path)
    blob.upload_from_string(file_bytes, content_type=content_type)
    return f"https://storage.googleapis.com/{bucket.name}/{path}"


def logo_path(company_id: int, filename: str, file_bytes: bytes, content_type: str | None) -> str:
    """Content-addressed object path for a company logo."""
    digest = hashlib.sha256(file_bytes).hexdigest()[:16]
    extension = ""
    if "." in filename:
        extension = "." + filename.rsplit(".", 1)[1].lower()
    elif content_type:
        extension = mimetypes.guess_extension(content_type) or ""
    return f"{LOGO_PREFIX}/{company_id}/{digest}{extension}"


def upload_company_logo(
    company_id: int,
    filename: str,
    file_bytes: bytes,
    content_type: str | None = None,
) -> str:
    """Store a logo image and return its URL."""
    path = logo_path(company_id, filename, file_bytes, content_type)
    return upload_file(path, file_bytes, content_type or "application/octet-stream")
