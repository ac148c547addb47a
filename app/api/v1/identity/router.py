import logging
from typing import Dict, Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .registry import CITIZENS, TEST_CITIZENS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["identity"])


class NinLookupRequest(BaseModel):
    nin: Optional[str] = None


def _lookup(table: Dict[str, Dict[str, str]], nin: Optional[str]) -> JSONResponse:
    if not nin:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "NIN is required"})
    person = table.get(nin.strip().upper())
    if person is None:
        logger.info("NIN lookup miss for %s", nin)
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "NIN not found"})
    return JSONResponse(status_code=status.HTTP_200_OK, content=person)


@router.post("/nin-verification")
async def verify_nin(payload: NinLookupRequest) -> JSONResponse:
    return _lookup(CITIZENS, payload.nin)


@router.post("/test-nin")
async def test_nin(payload: NinLookupRequest) -> JSONResponse:
    return _lookup(TEST_CITIZENS, payload.nin)
