"""Business repository - Database operations for businesses, branches and workers"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Branch, Business, Worker


class BusinessRepository:
    """Repository for business database operations"""

    @staticmethod
    def get_by_id(db: Session, business_id: int) -> Optional[Business]:
        return db.query(Business).filter(Business.id == business_id).first()

    @staticmethod
    def get_by_username(db: Session, username: str) -> Optional[Business]:
        """Get a business by its public booking slug (case-insensitive)"""
        return db.query(Business).filter(Business.username == username.lower()).first()

    @staticmethod
    def get_by_owner(db: Session, owner_user_id: str) -> Optional[Business]:
        return db.query(Business).filter(Business.owner_user_id == owner_user_id).first()

    @staticmethod
    def lock(db: Session, business_id: int) -> Optional[Business]:
        """
        Take the calendar lock for a business.

        SELECT ... FOR UPDATE on the business row; held until the surrounding
        transaction commits or rolls back. On SQLite the transaction already
        holds the write lock (BEGIN IMMEDIATE) and FOR UPDATE is omitted.
        """
        return db.query(Business).filter(Business.id == business_id).with_for_update().first()

    @staticmethod
    def list_all(db: Session) -> list[Business]:
        return db.query(Business).order_by(Business.id).all()

    @staticmethod
    def add_business(db: Session, **business_data) -> Business:
        """Stage a new business and assign its id without committing"""
        business = Business(**business_data)
        db.add(business)
        db.flush()
        return business

    @staticmethod
    def get_branch(db: Session, business_id: int, branch_id: int) -> Optional[Branch]:
        return db.query(Branch).filter(Branch.id == branch_id, Branch.business_id == business_id).first()

    @staticmethod
    def get_worker(db: Session, business_id: int, worker_id: int) -> Optional[Worker]:
        return db.query(Worker).filter(Worker.id == worker_id, Worker.business_id == business_id).first()

    @staticmethod
    def create_branch(db: Session, business_id: int, name: str) -> Branch:
        branch = Branch(business_id=business_id, name=name)
        db.add(branch)
        db.commit()
        db.refresh(branch)
        return branch

    @staticmethod
    def create_worker(db: Session, business_id: int, name: str, branch_id: Optional[int] = None) -> Worker:
        worker = Worker(business_id=business_id, name=name, branch_id=branch_id)
        db.add(worker)
        db.commit()
        db.refresh(worker)
        return worker

    @staticmethod
    def worker_names(db: Session, business_id: int) -> dict[int, str]:
        rows = db.query(Worker.id, Worker.name).filter(Worker.business_id == business_id).all()
        return {worker_id: name for worker_id, name in rows}
