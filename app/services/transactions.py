"""Transaction repository: CRUD on transactions with per-user ownership enforcement.

Update and delete are single conditional statements (WHERE id AND user_id) so no
other request can slip in between the ownership check and the write.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.models import Transaction
from app.schemas.admin import Pagination
from app.schemas.transaction import TransactionCreate, TransactionType, TransactionUpdate
from app.services.bs_date import to_bs_date_string
from app.services.pagination import build_pagination, page_offset

logger = logging.getLogger(__name__)


class TransactionNotFoundError(Exception):
    """Raised when no transaction with the given id is owned by the caller."""

    def __init__(self, transaction_id: int) -> None:
        self.transaction_id = transaction_id
        self.message = "Transaction not found"
        super().__init__(self.message)


class TransactionRejectedError(Exception):
    """Raised when the store refuses a write (constraint violation)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def _newest_first(query):
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc())


def create_transaction(db: Session, owner_id: int, data: TransactionCreate) -> Transaction:
    """Persist a new transaction owned by owner_id; bs_date is derived from date."""
    txn = Transaction(
        user_id=owner_id,
        type=data.type,
        amount=data.amount,
        category=data.category,
        description=data.description,
        date=data.date,
        bs_date=to_bs_date_string(data.date),
    )
    db.add(txn)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise TransactionRejectedError("Transaction rejected by the store.", e) from e
    logger.info("Transaction created: id=%s user_id=%s type=%s", txn.id, owner_id, txn.type)
    return txn


def list_for_owner(
    db: Session,
    owner_id: int,
    type: TransactionType | None = None,
) -> list[Transaction]:
    """All of owner_id's transactions, newest created first, optionally filtered by type."""
    query = db.query(Transaction).filter(Transaction.user_id == owner_id)
    if type is not None:
        query = query.filter(Transaction.type == type)
    return _newest_first(query).all()


def get_for_owner(db: Session, owner_id: int, transaction_id: int) -> Transaction:
    txn = (
        db.query(Transaction)
        .filter(Transaction.id == transaction_id, Transaction.user_id == owner_id)
        .first()
    )
    if txn is None:
        raise TransactionNotFoundError(transaction_id)
    return txn


def update_transaction(
    db: Session,
    owner_id: int,
    transaction_id: int,
    changes: TransactionUpdate,
) -> Transaction:
    """
    Replace the provided fields of a transaction owned by owner_id.

    Ownership check and write are one UPDATE ... WHERE id AND user_id RETURNING
    statement. Raises TransactionNotFoundError when no owned row matches.
    """
    values = changes.changes()
    if values.get("date") is not None:
        values["bs_date"] = to_bs_date_string(values["date"])
    values["updated_at"] = datetime.now(timezone.utc)

    stmt = (
        update(Transaction)
        .where(Transaction.id == transaction_id, Transaction.user_id == owner_id)
        .values(**values)
        .returning(Transaction)
        .execution_options(populate_existing=True)
    )
    try:
        txn = db.scalars(stmt).one_or_none()
        if txn is None:
            db.rollback()
            raise TransactionNotFoundError(transaction_id)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise TransactionRejectedError("Transaction rejected by the store.", e) from e
    logger.info(
        "Transaction updated: id=%s user_id=%s fields=%s",
        transaction_id,
        owner_id,
        sorted(k for k in values if k != "updated_at"),
    )
    return txn


def delete_transaction(db: Session, owner_id: int, transaction_id: int) -> int:
    """
    Permanently delete a transaction owned by owner_id; returns its id.

    Raises TransactionNotFoundError when no owned row matches, including when the
    row was already deleted.
    """
    stmt = (
        delete(Transaction)
        .where(Transaction.id == transaction_id, Transaction.user_id == owner_id)
        .returning(Transaction.id)
    )
    deleted_id = db.execute(stmt).scalar_one_or_none()
    if deleted_id is None:
        db.rollback()
        raise TransactionNotFoundError(transaction_id)
    db.commit()
    logger.info("Transaction deleted: id=%s user_id=%s", deleted_id, owner_id)
    return deleted_id


def list_all(db: Session, page: int, page_size: int) -> tuple[list[Transaction], Pagination]:
    """Admin listing across all users, owner joined in, newest created first."""
    total = db.query(func.count(Transaction.id)).scalar() or 0
    rows = (
        _newest_first(db.query(Transaction).options(joinedload(Transaction.owner)))
        .offset(page_offset(page, page_size))
        .limit(page_size)
        .all()
    )
    return rows, build_pagination(page, page_size, total)
