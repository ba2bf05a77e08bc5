"""Unit tests for app.services.transactions: ownership, ordering, conditional update/delete, store constraints."""

import unittest
from datetime import date

from app.models import Transaction
from app.schemas.transaction import TransactionCreate, TransactionUpdate
from app.services.bs_date import to_bs_date_string
from app.services.transactions import (
    TransactionNotFoundError,
    TransactionRejectedError,
    create_transaction,
    delete_transaction,
    get_for_owner,
    list_all,
    list_for_owner,
    update_transaction,
)
from tests.support import add_user, make_session_factory


def _create(**kwargs: object) -> TransactionCreate:
    defaults = {
        "type": "expense",
        "amount": 250.5,
        "category": "Food & Dining",
        "description": "Lunch",
        "date": date(2026, 10, 5),
    }
    defaults.update(kwargs)
    return TransactionCreate(**defaults)


class RepositoryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.addCleanup(self.db.close)
        self.alice = add_user(self.db, "alice")
        self.bob = add_user(self.db, "bob")


class TestCreateAndList(RepositoryTestCase):
    def test_created_transaction_listed_for_owner_only(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create())
        self.assertIn(txn.id, [t.id for t in list_for_owner(self.db, self.alice.id)])
        self.assertEqual(list_for_owner(self.db, self.bob.id), [])

    def test_bs_date_derived_from_date(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create(date=date(2026, 5, 20)))
        self.assertEqual(txn.bs_date, to_bs_date_string(date(2026, 5, 20)))

    def test_newest_created_first(self) -> None:
        first = create_transaction(self.db, self.alice.id, _create(category="A"))
        second = create_transaction(self.db, self.alice.id, _create(category="B"))
        third = create_transaction(self.db, self.alice.id, _create(category="C"))
        ids = [t.id for t in list_for_owner(self.db, self.alice.id)]
        self.assertEqual(ids, [third.id, second.id, first.id])

    def test_type_filter(self) -> None:
        create_transaction(self.db, self.alice.id, _create(type="income", category="Salary"))
        create_transaction(self.db, self.alice.id, _create(type="expense"))
        incomes = list_for_owner(self.db, self.alice.id, type="income")
        self.assertEqual([t.type for t in incomes], ["income"])

    def test_get_for_owner_hides_other_users_rows(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create())
        self.assertEqual(get_for_owner(self.db, self.alice.id, txn.id).id, txn.id)
        with self.assertRaises(TransactionNotFoundError):
            get_for_owner(self.db, self.bob.id, txn.id)


class TestUpdate(RepositoryTestCase):
    def test_owner_partial_update(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create())
        updated = update_transaction(
            self.db, self.alice.id, txn.id, TransactionUpdate(amount=300, description="Dinner")
        )
        self.assertEqual(float(updated.amount), 300.0)
        self.assertEqual(updated.description, "Dinner")
        self.assertEqual(updated.category, "Food & Dining")

    def test_new_date_recomputes_bs_date(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create(date=date(2026, 1, 10)))
        updated = update_transaction(
            self.db, self.alice.id, txn.id, TransactionUpdate(date=date(2026, 8, 1))
        )
        self.assertEqual(updated.bs_date, to_bs_date_string(date(2026, 8, 1)))

    def test_non_owner_update_not_found_and_row_unchanged(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create(amount=42))
        with self.assertRaises(TransactionNotFoundError):
            update_transaction(self.db, self.bob.id, txn.id, TransactionUpdate(amount=1))
        self.db.expire_all()
        row = self.db.get(Transaction, txn.id)
        self.assertEqual(float(row.amount), 42.0)
        self.assertEqual(row.user_id, self.alice.id)

    def test_missing_id_not_found(self) -> None:
        with self.assertRaises(TransactionNotFoundError):
            update_transaction(self.db, self.alice.id, 9999, TransactionUpdate(amount=1))


class TestDelete(RepositoryTestCase):
    def test_delete_twice_not_found_second_time(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create())
        self.assertEqual(delete_transaction(self.db, self.alice.id, txn.id), txn.id)
        with self.assertRaises(TransactionNotFoundError):
            delete_transaction(self.db, self.alice.id, txn.id)
        self.assertEqual(list_for_owner(self.db, self.alice.id), [])

    def test_non_owner_delete_not_found_and_row_kept(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create())
        with self.assertRaises(TransactionNotFoundError):
            delete_transaction(self.db, self.bob.id, txn.id)
        self.assertEqual(len(list_for_owner(self.db, self.alice.id)), 1)


class TestStoreConstraints(RepositoryTestCase):
    """Rows that slip past request validation are still refused by the table constraints."""

    def test_negative_amount_rejected_by_store(self) -> None:
        data = TransactionCreate.model_construct(
            type="expense", amount=-5, category="Travel", description=None, date=date(2026, 10, 5)
        )
        with self.assertRaises(TransactionRejectedError):
            create_transaction(self.db, self.alice.id, data)
        self.assertEqual(list_for_owner(self.db, self.alice.id), [])

    def test_unknown_type_rejected_by_store(self) -> None:
        data = TransactionCreate.model_construct(
            type="transfer", amount=5, category="Travel", description=None, date=date(2026, 10, 5)
        )
        with self.assertRaises(TransactionRejectedError):
            create_transaction(self.db, self.alice.id, data)

    def test_update_to_unknown_type_rejected_and_row_unchanged(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create(type="income", category="Salary"))
        with self.assertRaises(TransactionRejectedError):
            update_transaction(
                self.db, self.alice.id, txn.id, TransactionUpdate.model_construct(type="transfer")
            )
        self.db.expire_all()
        self.assertEqual(self.db.get(Transaction, txn.id).type, "income")

    def test_update_to_zero_amount_rejected(self) -> None:
        txn = create_transaction(self.db, self.alice.id, _create(amount=12))
        with self.assertRaises(TransactionRejectedError):
            update_transaction(
                self.db, self.alice.id, txn.id, TransactionUpdate.model_construct(amount=0)
            )
        self.db.expire_all()
        self.assertEqual(float(self.db.get(Transaction, txn.id).amount), 12.0)


class TestListAll(RepositoryTestCase):
    def test_pagination_and_owner_join(self) -> None:
        for i in range(5):
            owner = self.alice if i % 2 == 0 else self.bob
            create_transaction(self.db, owner.id, _create(category=f"C{i}"))
        rows, pagination = list_all(self.db, page=2, page_size=2)
        self.assertEqual([r.category for r in rows], ["C2", "C1"])
        self.assertEqual(rows[0].owner.username, "alice")
        self.assertEqual(pagination.total_count, 5)
        self.assertEqual(pagination.total_pages, 3)
        self.assertTrue(pagination.has_next)
        self.assertTrue(pagination.has_prev)


if __name__ == "__main__":
    unittest.main()
