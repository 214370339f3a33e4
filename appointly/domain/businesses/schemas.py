"""Business domain schemas - Pydantic models for validation"""

import re
from typing import Optional

import pytz
from pydantic import BaseModel, Field, field_validator


class BusinessCreate(BaseModel):
    """Schema for onboarding a business"""

    name: str = Field(min_length=1, max_length=255)
    username: str
    timezone: str = "UTC"
    seedDefaultSchedule: bool = True

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip().lower()
        if not re.match(r"^[a-z0-9][a-z0-9_-]{2,49}$", v):
            raise ValueError("Username must be 3-50 characters: letters, digits, '-' or '_'")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v not in pytz.all_timezones_set:
            raise ValueError("Unknown timezone")
        return v


class BranchCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class WorkerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    branchId: Optional[int] = None


class BranchResponse(BaseModel):
    id: int
    name: str


class WorkerResponse(BaseModel):
    id: int
    name: str
    branchId: Optional[int] = None


class BusinessResponse(BaseModel):
    """Schema for business response"""

    id: int
    name: str
    username: str
    timezone: str


class PublicBusinessResponse(BaseModel):
    """Public booking page data"""

    business: BusinessResponse
    branches: list[BranchResponse]
    workers: list[WorkerResponse]


def business_to_response(business) -> BusinessResponse:
    return BusinessResponse(
        id=business.id, name=business.name, username=business.username, timezone=business.timezone
    )


def branch_to_response(branch) -> BranchResponse:
    return BranchResponse(id=branch.id, name=branch.name)


def worker_to_response(worker) -> WorkerResponse:
    return WorkerResponse(id=worker.id, name=worker.name, branchId=worker.branch_id)
