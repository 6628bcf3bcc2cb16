from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from censusquote.application import get_quote_service
from censusquote.core.errors import CensusQuoteError, EmptyInputError, ParseError
from censusquote.core.schema import CensusEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/census")
async def receive_census_event(event: CensusEvent) -> dict:
    """Ingest the census file referenced by a chat event and deliver its quote."""
    service = get_quote_service()
    try:
        report = await service.handle_event(event)
    except (ParseError, EmptyInputError) as exc:
        logger.error("census event failed: %s", exc.describe(), extra={"file_id": event.file_id})
        raise HTTPException(status_code=422, detail=f"Census ingestion failed: {exc.describe()}") from exc
    except CensusQuoteError as exc:
        logger.error("census event failed: %s", exc.describe(), extra={"file_id": event.file_id})
        raise HTTPException(status_code=502, detail=f"Census ingestion failed: {exc.describe()}") from exc
    return report.model_dump()
