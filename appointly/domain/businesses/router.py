"""Business router - onboarding and public booking page endpoints"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import AuthContext, get_auth_context, get_business_owner
from ...database import get_db
from .schemas import (
    BranchCreate,
    BranchResponse,
    BusinessCreate,
    BusinessResponse,
    PublicBusinessResponse,
    WorkerCreate,
    WorkerResponse,
    branch_to_response,
    business_to_response,
    worker_to_response,
)
from .service import BusinessService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/business", tags=["Business"])
public_router = APIRouter(prefix="/public/business", tags=["Public"])


def get_business_service(db: Session = Depends(get_db)) -> BusinessService:
    """Dependency injection for BusinessService"""
    return BusinessService(db)


@router.post("", response_model=BusinessResponse, status_code=201)
async def onboard_business(
    data: BusinessCreate,
    auth: AuthContext = Depends(get_auth_context),
    service: BusinessService = Depends(get_business_service),
):
    """Create the caller's business with the default Monday-Friday schedule"""
    return business_to_response(service.onboard(data, auth.user_id))


@router.get("", response_model=BusinessResponse)
async def get_business(
    auth: AuthContext = Depends(get_business_owner),
    service: BusinessService = Depends(get_business_service),
):
    return business_to_response(service.get_own_business(auth))


@router.post("/branches", response_model=BranchResponse, status_code=201)
async def add_branch(
    data: BranchCreate,
    auth: AuthContext = Depends(get_business_owner),
    service: BusinessService = Depends(get_business_service),
):
    return branch_to_response(service.add_branch(data, auth))


@router.post("/workers", response_model=WorkerResponse, status_code=201)
async def add_worker(
    data: WorkerCreate,
    auth: AuthContext = Depends(get_business_owner),
    service: BusinessService = Depends(get_business_service),
):
    return worker_to_response(service.add_worker(data, auth))


@public_router.get("/{username}", response_model=PublicBusinessResponse)
async def get_public_business(
    username: str,
    service: BusinessService = Depends(get_business_service),
):
    """Public booking page: business profile with its branches and workers"""
    business = service.get_public_business(username)
    return PublicBusinessResponse(
        business=business_to_response(business),
        branches=[branch_to_response(b) for b in business.branches],
        workers=[worker_to_response(w) for w in business.workers],
    )
