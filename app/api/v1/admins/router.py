from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.core.exceptions import SagaFailedError, ServiceError
from app.core.services import AppServices, get_services

from .schemas import AdminProvisionRequest, AdminProvisionResponse
from . import service

router = APIRouter(prefix="/api/v1/admins", tags=["admins"])


@router.post("", response_model=AdminProvisionResponse, status_code=status.HTTP_201_CREATED)
async def provision_admin(
    payload: AdminProvisionRequest,
    services: AppServices = Depends(get_services),
):
    """Create a school and its first admin. Public: this is the sign-up path for a new school."""
    try:
        return await service.provision_admin(
            services.sync_remote, services.auth, services.documents, services.email, payload
        )
    except SagaFailedError as e:
        return JSONResponse(status_code=e.status_code, content={"detail": e.message, "saga": e.result.to_dict()})
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
