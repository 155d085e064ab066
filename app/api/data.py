import logging

from fastapi import APIRouter, HTTPException, Response

from app.services.ledger import is_safe_filename, read_page_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/data", tags=["data"])


@router.get("/pages/{filename}")
def get_verification_page(filename: str):
    """Serve a verification ledger file (``<encoded-slug>.json``) as-is."""
    if not is_safe_filename(filename):
        logger.info("Invalid filename rejected: %s", filename)
        raise HTTPException(status_code=400, detail="Invalid file name")

    text = read_page_file(filename)
    if text is None:
        raise HTTPException(status_code=404, detail="File not found")

    return Response(
        content=text,
        media_type="application/json; charset=utf-8",
        headers={"Cache-Control": "no-store"},
    )
