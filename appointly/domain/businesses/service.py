"""Business service - Onboarding and the minimal branch/worker registry"""

import logging

from sqlalchemy.orm import Session

from ...auth import AuthContext
from ...errors import ConflictError, NotFoundError
from ...models import Branch, Business, Worker
from ...shared.transactions import write_transaction
from ..schedules.service import seed_default_schedule
from .repository import BusinessRepository
from .schemas import BranchCreate, BusinessCreate, WorkerCreate

logger = logging.getLogger(__name__)


class BusinessService:
    """Service layer for business operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BusinessRepository()

    def onboard(self, data: BusinessCreate, owner_user_id: str) -> Business:
        """Create the caller's business and seed the default weekly schedule"""
        logger.info(f"📥 Onboarding business '{data.username}' for user {owner_user_id}")

        if self.repo.get_by_owner(self.db, owner_user_id):
            raise ConflictError("This account already owns a business")
        if self.repo.get_by_username(self.db, data.username):
            raise ConflictError("Username is already taken")

        with write_transaction(self.db, "Onboard business"):
            business = self.repo.add_business(
                self.db,
                owner_user_id=owner_user_id,
                name=data.name,
                username=data.username,
                timezone=data.timezone,
            )
            if data.seedDefaultSchedule:
                seed_default_schedule(self.db, business.id)

        self.db.refresh(business)
        logger.info(f"✅ Business {business.id} onboarded")
        return business

    def get_public_business(self, username: str) -> Business:
        business = self.repo.get_by_username(self.db, username)
        if not business:
            raise NotFoundError("Business not found")
        return business

    def get_own_business(self, auth: AuthContext) -> Business:
        business = self.repo.get_by_id(self.db, auth.business_id)
        if not business:
            raise NotFoundError("Business not found")
        return business

    def add_branch(self, data: BranchCreate, auth: AuthContext) -> Branch:
        return self.repo.create_branch(self.db, auth.business_id, data.name)

    def add_worker(self, data: WorkerCreate, auth: AuthContext) -> Worker:
        if data.branchId is not None and not self.repo.get_branch(self.db, auth.business_id, data.branchId):
            raise NotFoundError("Branch not found")
        return self.repo.create_worker(self.db, auth.business_id, data.name, data.branchId)
