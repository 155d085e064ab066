import logging
from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from app.services.graph import clear_neighbors_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["revalidate"])

GRAPH_TAG = "graph"


class RevalidateRequest(BaseModel):
    tags: List[str] = []


@router.post("/revalidate")
def revalidate(data: RevalidateRequest):
    """Drop in-process caches by tag. Unknown tags are accepted and ignored."""
    tags = [str(t) for t in data.tags]
    if GRAPH_TAG in tags:
        clear_neighbors_cache()
        logger.info("Neighbor graph cache cleared")
    return {"ok": True, "tags": tags}
