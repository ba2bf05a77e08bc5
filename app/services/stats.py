"""Statistics aggregator: per-user and platform-wide figures computed on demand.

Nothing here is cached or persisted; every call reads the current transaction set.
Sums are grouped SQL aggregates so the platform view never loads every row.
"""

from datetime import date, datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models import Transaction, User
from app.schemas.admin import PlatformStats, PlatformTotals
from app.schemas.auth import UserOut
from app.schemas.transaction import TransactionOut, TransactionWithOwner, UserStats

USER_RECENT_LIMIT = 10
PLATFORM_RECENT_TRANSACTIONS_LIMIT = 20
PLATFORM_RECENT_USERS_LIMIT = 10


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """[start, end) of the calendar month containing now, in now's timezone."""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def _sums_by_type(query) -> dict[str, float]:
    """Run a (type, SUM(amount)) grouped query and return {'income': x, 'expense': y}."""
    sums = {"income": 0.0, "expense": 0.0}
    for txn_type, total in query.group_by(Transaction.type).all():
        if txn_type in sums:
            sums[txn_type] = float(total or 0)
    return sums


def compute_user_stats(db: Session, owner_id: int, now: datetime | None = None) -> UserStats:
    """Balance, totals, this-month totals and the 10 newest transactions for one user."""
    now = now or datetime.now(timezone.utc)
    start, end = month_bounds(now)
    month_start: date = start.date()
    month_end: date = end.date()

    base = db.query(Transaction.type, func.sum(Transaction.amount)).filter(
        Transaction.user_id == owner_id
    )
    totals = _sums_by_type(base)
    this_month = _sums_by_type(
        base.filter(Transaction.date >= month_start, Transaction.date < month_end)
    )
    count = (
        db.query(func.count(Transaction.id))
        .filter(Transaction.user_id == owner_id)
        .scalar()
        or 0
    )
    recent = (
        db.query(Transaction)
        .filter(Transaction.user_id == owner_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(USER_RECENT_LIMIT)
        .all()
    )
    return UserStats(
        total_balance=totals["income"] - totals["expense"],
        total_income=totals["income"],
        total_expenses=totals["expense"],
        this_month_income=this_month["income"],
        this_month_expenses=this_month["expense"],
        total_transactions=count,
        recent_transactions=[TransactionOut.model_validate(t) for t in recent],
    )


def compute_platform_stats(db: Session, now: datetime | None = None) -> PlatformStats:
    """Platform totals, this-month sign-ups and activity, and recent rows for the admin dashboard."""
    now = now or datetime.now(timezone.utc)
    start, end = month_bounds(now)

    total_users = db.query(func.count(User.id)).scalar() or 0
    total_transactions = db.query(func.count(Transaction.id)).scalar() or 0
    sums = _sums_by_type(db.query(Transaction.type, func.sum(Transaction.amount)))
    this_month_users = (
        db.query(func.count(User.id))
        .filter(User.created_at >= start, User.created_at < end)
        .scalar()
        or 0
    )
    this_month_transactions = (
        db.query(func.count(Transaction.id))
        .filter(Transaction.created_at >= start, Transaction.created_at < end)
        .scalar()
        or 0
    )
    recent_transactions = (
        db.query(Transaction)
        .options(joinedload(Transaction.owner))
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(PLATFORM_RECENT_TRANSACTIONS_LIMIT)
        .all()
    )
    recent_users = (
        db.query(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .limit(PLATFORM_RECENT_USERS_LIMIT)
        .all()
    )
    return PlatformStats(
        stats=PlatformTotals(
            total_users=total_users,
            total_transactions=total_transactions,
            total_income=sums["income"],
            total_expenses=sums["expense"],
            this_month_users=this_month_users,
            this_month_transactions=this_month_transactions,
        ),
        recent_transactions=[TransactionWithOwner.model_validate(t) for t in recent_transactions],
        recent_users=[UserOut.model_validate(u) for u in recent_users],
    )
