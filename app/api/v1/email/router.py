from typing import Union

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.exceptions import ServiceError
from app.core.services import AppServices, get_services

from .schemas import SendEmailRequest, SendEmailResponse
from . import service

router = APIRouter(prefix="/api", tags=["email"])


@router.post(
    "/send-email",
    response_model=SendEmailResponse,
    status_code=status.HTTP_200_OK,
)
async def send_email(
    payload: SendEmailRequest,
    services: AppServices = Depends(get_services),
) -> Union[SendEmailResponse, JSONResponse]:
    try:
        return await service.send_templated_email(services.email, payload)
    except ServiceError as e:
        # these routes answer {"error": ...} for web clients
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
