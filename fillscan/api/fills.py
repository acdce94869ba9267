"""Fill detection endpoint for parsed charts."""

import dataclasses
import logging
import threading

from fastapi import APIRouter, HTTPException

from fillscan.api.schemas import FillSegmentResponse, FillsRequest, FillsResponse
from fillscan.analysis.engine import create_extraction_summary, extract_fills
from fillscan.analysis.errors import DrumTrackNotFoundError, FillDetectionError
from fillscan.analysis.novelty import PatternCache
from fillscan.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

# Only used when FILLSCAN_SHARE_PATTERN_CACHE is set
_shared_cache = PatternCache(settings.pattern_cache_size)
_shared_cache_lock = threading.Lock()


@router.post("/fills", response_model=FillsResponse)
def detect_fills(request: FillsRequest):
    """Detect drum fills in an already-parsed chart."""
    chart = request.chart.to_chart()
    config = {"difficulty": settings.difficulty, **(request.config or {})}

    try:
        if settings.share_pattern_cache:
            with _shared_cache_lock:
                fills = extract_fills(chart, config, pattern_cache=_shared_cache, song_id=request.song_id)
        else:
            fills = extract_fills(chart, config, song_id=request.song_id)
        summary = create_extraction_summary(chart, fills, config)
    except DrumTrackNotFoundError as e:
        raise HTTPException(404, str(e))
    except FillDetectionError as e:
        logger.info(f"Rejected chart: {e}")
        raise HTTPException(400, str(e))

    return FillsResponse(
        fills=[FillSegmentResponse(**dataclasses.asdict(f)) for f in fills],
        summary=summary,
    )
