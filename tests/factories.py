"""Database and object factories shared by the test modules"""

from datetime import datetime, time, timedelta

from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from appointly import models  # noqa: F401
from appointly.auth import AuthContext
from appointly.database import Base, build_engine
from appointly.domain.notifications.dispatcher import NotificationDispatcher
from appointly.domain.scope import Scope
from appointly.models import Appointment, Branch, Business, ExceptionRule, ScheduleRule, Worker

# Tuesday before the Monday most scenarios book on
NOW = datetime(2025, 7, 1, 12, 0)


def memory_session():
    """
    Session on a private in-memory SQLite database.

    All work goes through the returned session; the engine holds exactly one
    connection.
    """
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return factory(), engine


def file_session_factory(path: str):
    """Session factory on a SQLite file, for tests that need several connections"""
    engine = build_engine(f"sqlite:///{path}")
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine), engine


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingNotificationDispatcher(NotificationDispatcher):
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def notify(self, kind, appointment, business_name, token=None):
        if self.fail:
            raise RuntimeError("queue unavailable")
        self.sent.append((kind, appointment.id, business_name, token))

    def kinds(self) -> list[str]:
        return [kind for kind, *_ in self.sent]


def create_business(db, username="acme", timezone="UTC", owner_user_id="owner-1", name="Acme Studio") -> Business:
    business = Business(owner_user_id=owner_user_id, name=name, username=username, timezone=timezone)
    db.add(business)
    db.commit()
    return business


def create_branch(db, business, name="Downtown") -> Branch:
    branch = Branch(business_id=business.id, name=name)
    db.add(branch)
    db.commit()
    return branch


def create_worker(db, business, name="Dana", branch=None) -> Worker:
    worker = Worker(business_id=business.id, name=name, branch_id=branch.id if branch else None)
    db.add(worker)
    db.commit()
    return worker


def create_rule(
    db,
    business,
    day_of_week=1,
    start=time(9, 0),
    end=time(17, 0),
    duration=30,
    branch_id=None,
    worker_id=None,
) -> ScheduleRule:
    rule = ScheduleRule(
        business_id=business.id,
        branch_id=branch_id,
        worker_id=worker_id,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        slot_duration_minutes=duration,
    )
    db.add(rule)
    db.commit()
    return rule


def create_exception(
    db, business, day, is_closed=True, start=None, end=None, branch_id=None, worker_id=None
) -> ExceptionRule:
    exception = ExceptionRule(
        business_id=business.id,
        branch_id=branch_id,
        worker_id=worker_id,
        date=day,
        is_closed=is_closed,
        start_time=start,
        end_time=end,
    )
    db.add(exception)
    db.commit()
    return exception


def create_appointment(
    db, business, start, end, status="pending", email="client@example.com", branch_id=None, worker_id=None
) -> Appointment:
    appointment = Appointment(
        business_id=business.id,
        branch_id=branch_id,
        worker_id=worker_id,
        client_name="Existing Client",
        client_email=email,
        start_time=start,
        end_time=end,
        status=status,
    )
    db.add(appointment)
    db.commit()
    return appointment


def owner_auth(business, user_id=None) -> AuthContext:
    return AuthContext(
        user_id=user_id or business.owner_user_id,
        is_business_owner=True,
        scope=Scope(business_id=business.id),
    )
