# localscope/routers/admin.py
# -----------------------------------------------------------------------------
# Cache inspection / purge, persisted category tags
# -----------------------------------------------------------------------------
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from localscope.core.cache import ResponseCache
from localscope.db import crud
from localscope.db.session import get_session

router = APIRouter(prefix="/admin", tags=["admin"])


def get_cache(request: Request) -> ResponseCache:
    return request.app.state.cache


@router.get("/cache")
async def cache_stats(cache: ResponseCache = Depends(get_cache)):
    return {"entries": len(cache), "ttl_seconds": cache.ttl_seconds}


@router.post("/cache/purge")
async def purge_cache(cache: ResponseCache = Depends(get_cache)):
    removed = cache.purge_expired()
    return {"removed": removed, "entries": len(cache)}


@router.get("/categories")
async def get_category_tags(db: AsyncSession = Depends(get_session)):
    rows = await crud.list_category_tags(db)
    return [
        {"term": x.term, "key": x.key, "value": x.value, "source": x.source}
        for x in rows
    ]
