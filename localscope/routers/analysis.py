from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger

from localscope.core.config import settings
from localscope.core.errors import GENERIC_MESSAGE, LocalscopeError
from localscope.schemas.analysis import AnalysisRequest, OpportunityReport
from localscope.schemas.domain import ZipQuery
from localscope.services.analyzer import OpportunityAnalyzer

router = APIRouter(tags=["analysis"])


def get_analyzer(request: Request) -> OpportunityAnalyzer:
    """Built once at startup (see localscope.main)."""
    return request.app.state.analyzer


@router.post("/analyze", response_model=OpportunityReport)
async def analyze(
    req: AnalysisRequest, analyzer: OpportunityAnalyzer = Depends(get_analyzer)
):
    query = req.to_location_query(settings.DEFAULT_ADDRESS_RADIUS_MILES)
    zip_radius = req.radius_miles if isinstance(query, ZipQuery) else None
    try:
        return await analyzer.analyze(
            req.business_term,
            query,
            include_locations=req.include_locations,
            use_zip_boundary=req.use_zip_boundary,
            zip_radius_miles=zip_radius,
        )
    except LocalscopeError as e:
        if e.status_code >= 500:
            logger.error(f"[analyze] {e.kind}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.user_message)
    except Exception:
        logger.exception("[analyze] unexpected failure")
        raise HTTPException(status_code=500, detail=GENERIC_MESSAGE)
