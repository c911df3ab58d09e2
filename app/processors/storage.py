from uuid import UUID
from loguru import logger
from app.database import get_supabase


async def upload_file(
    bucket: str,
    path: str,
    file_bytes: bytes,
    content_type: str = "application/octet-stream",
) -> str:
    """Upload (or replace) a file in Supabase Storage and return its path."""
    db = get_supabase()
    db.storage.from_(bucket).upload(
        path, file_bytes, {"content-type": content_type, "upsert": "true"}
    )
    logger.info(f"Uploaded {path} to bucket {bucket} ({len(file_bytes)} bytes)")
    return path


async def generate_signed_url(bucket: str, path: str, expires: int = 3600) -> str:
    db = get_supabase()
    result = db.storage.from_(bucket).create_signed_url(path, expires)
    return result["signedURL"]


def proposal_pdf_path(contractor_id: UUID | str, proposal_id: UUID | str, proposal_number: str) -> str:
    return f"{contractor_id}/{proposal_id}/{proposal_number}.pdf"
