"""Transaction endpoints: owner-scoped CRUD, per-user stats, and admin notifications on change.

Each mutation runs authenticate -> write -> commit -> broadcast -> respond, in that
order. Broadcast only queues the event for connected admins, so it never fails
or delays the request; the write has already committed.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.transaction import (
    CategoriesResponse,
    DeleteResponse,
    StatsResponse,
    TransactionCreate,
    TransactionListResponse,
    TransactionOut,
    TransactionResponse,
    TransactionType,
    TransactionUpdate,
)
from app.services.notifications import (
    TRANSACTION_ADDED,
    TRANSACTION_DELETED,
    TRANSACTION_UPDATED,
    NotificationHub,
    actor_identity,
    deletion_payload,
    get_hub,
    transaction_payload,
)
from app.services.stats import compute_user_stats
from app.services.transactions import (
    TransactionNotFoundError,
    TransactionRejectedError,
    create_transaction,
    delete_transaction,
    get_for_owner,
    list_for_owner,
    update_transaction,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _actor(user: CurrentUser) -> dict[str, str]:
    return actor_identity(user.first_name, user.last_name, user.email)


def _as_json(txn: TransactionOut) -> dict[str, Any]:
    return txn.model_dump(mode="json", by_alias=True)


def _not_found(e: TransactionNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


def _rejected(e: TransactionRejectedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.get("", response_model=TransactionListResponse)
def get_transactions(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    type: Annotated[TransactionType | None, Query(description="income or expense")] = None,
) -> TransactionListResponse:
    """All of the caller's transactions, newest first."""
    rows = list_for_owner(db, current_user.id, type=type)
    return TransactionListResponse(
        transactions=[TransactionOut.model_validate(t) for t in rows]
    )


@router.get("/categories", response_model=CategoriesResponse)
def get_categories() -> CategoriesResponse:
    """Suggested categories per transaction type (the API accepts any non-empty category)."""
    return CategoriesResponse()


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> StatsResponse:
    """Balance, totals, this month's totals and the 10 most recent transactions."""
    return StatsResponse(stats=compute_user_stats(db, current_user.id))


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> TransactionResponse:
    try:
        txn = get_for_owner(db, current_user.id, transaction_id)
    except TransactionNotFoundError as e:
        raise _not_found(e) from e
    return TransactionResponse(transaction=TransactionOut.model_validate(txn))


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def post_transaction(
    body: TransactionCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    notifications: Annotated[NotificationHub, Depends(get_hub)],
) -> TransactionResponse:
    """Record an income or expense for the caller and notify connected admins."""
    try:
        txn = await run_in_threadpool(create_transaction, db, current_user.id, body)
    except TransactionRejectedError as e:
        raise _rejected(e) from e
    out = TransactionOut.model_validate(txn)
    await notifications.broadcast(
        TRANSACTION_ADDED, transaction_payload(_as_json(out), _actor(current_user))
    )
    return TransactionResponse(transaction=out)


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def put_transaction(
    transaction_id: int,
    body: TransactionUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    notifications: Annotated[NotificationHub, Depends(get_hub)],
) -> TransactionResponse:
    """Replace the provided fields of one of the caller's transactions. 404 if not theirs."""
    try:
        txn = await run_in_threadpool(
            update_transaction, db, current_user.id, transaction_id, body
        )
    except TransactionNotFoundError as e:
        raise _not_found(e) from e
    except TransactionRejectedError as e:
        raise _rejected(e) from e
    out = TransactionOut.model_validate(txn)
    await notifications.broadcast(
        TRANSACTION_UPDATED, transaction_payload(_as_json(out), _actor(current_user))
    )
    return TransactionResponse(transaction=out)


@router.delete("/{transaction_id}", response_model=DeleteResponse)
async def remove_transaction(
    transaction_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    notifications: Annotated[NotificationHub, Depends(get_hub)],
) -> DeleteResponse:
    """Permanently delete one of the caller's transactions. 404 if not theirs or already gone."""
    try:
        deleted_id = await run_in_threadpool(
            delete_transaction, db, current_user.id, transaction_id
        )
    except TransactionNotFoundError as e:
        raise _not_found(e) from e
    await notifications.broadcast(
        TRANSACTION_DELETED, deletion_payload(deleted_id, _actor(current_user))
    )
    return DeleteResponse()
