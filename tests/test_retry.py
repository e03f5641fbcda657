"""
Tests for the retryable unit of work and transaction bounds
"""

import time
from types import SimpleNamespace

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from storefront.data.database import Database
from storefront.data.models import ProductVariationModel
from storefront.domain.errors import (
    InsufficientStock,
    NotFound,
    TransactionFailure,
    TransactionTimeout,
    ValidationError,
)
from storefront.utils.retry import RetryPolicy, run_unit_of_work, transaction_retry
from storefront.utils.settings import ITEM_TX_TIMEOUT_SECONDS

NO_WAIT = RetryPolicy(attempts=3, backoff_base=0)


class FakeDatabase:
    """Store double calling the body directly"""

    def __init__(self):
        self.timeouts = []

    def run_in_transaction(self, fn, timeout):
        self.timeouts.append(timeout)
        return fn(None)


class FlakyBody:
    """Fails with the given errors, then returns 'ok'"""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self, db):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def conflict():
    return OperationalError("UPDATE product_variations", {}, Exception("could not serialize access"))


class TestRunUnitOfWork:

    def test_success_first_time(self):
        database = FakeDatabase()
        body = FlakyBody()

        assert run_unit_of_work(database, "add item", body, timeout=10, policy=NO_WAIT) == "ok"
        assert body.calls == 1
        assert database.timeouts == [10]

    def test_conflict_is_retried(self):
        body = FlakyBody(conflict(), conflict())

        assert run_unit_of_work(FakeDatabase(), "add item", body, timeout=10, policy=NO_WAIT) == "ok"
        assert body.calls == 3

    def test_gives_up_with_attempt_count_and_cause(self):
        body = FlakyBody(conflict(), conflict(), conflict(), conflict())

        with pytest.raises(TransactionFailure) as exc:
            run_unit_of_work(FakeDatabase(), "clear cart", body, timeout=15, policy=NO_WAIT)

        assert body.calls == 3
        assert exc.value.attempts == 3
        assert exc.value.operation == "clear cart"
        assert isinstance(exc.value.cause, OperationalError)
        assert exc.value.__cause__ is exc.value.cause
        assert "after 3 attempts" in str(exc.value)

    @pytest.mark.parametrize("error", [NotFound("Cart item x not found"), ValidationError("Quantity must be greater than 0")])
    def test_not_retried(self, error):
        body = FlakyBody(error)

        with pytest.raises(type(error)):
            run_unit_of_work(FakeDatabase(), "update item", body, timeout=10, policy=NO_WAIT)

        assert body.calls == 1

    def test_insufficient_stock_is_retried_then_surfaced(self):
        body = FlakyBody(*[InsufficientStock("v1", 1, 2) for _ in range(3)])

        with pytest.raises(InsufficientStock) as exc:
            run_unit_of_work(FakeDatabase(), "add item", body, timeout=10, policy=NO_WAIT)

        assert body.calls == 3
        assert exc.value.attempts == 3

    def test_insufficient_stock_can_clear_on_retry(self):
        """A concurrent release may free stock between attempts"""
        body = FlakyBody(InsufficientStock("v1", 0, 1))

        assert run_unit_of_work(FakeDatabase(), "add item", body, timeout=10, policy=NO_WAIT) == "ok"
        assert body.calls == 2

    def test_timeout_is_retried(self):
        body = FlakyBody(TransactionTimeout(10, 10.5))

        assert run_unit_of_work(FakeDatabase(), "merge guest cart", body, timeout=15, policy=NO_WAIT) == "ok"


class TestBackoff:

    def test_exponential_schedule(self):
        retrying = transaction_retry("add item", RetryPolicy(attempts=3, backoff_base=0.1))

        waits = [retrying.wait(SimpleNamespace(attempt_number=n)) for n in (1, 2, 3)]

        assert waits == pytest.approx([0.1, 0.2, 0.4])

    def test_backoff_actually_waits(self):
        body = FlakyBody(conflict(), conflict())
        started = time.monotonic()

        run_unit_of_work(FakeDatabase(), "add item", body, timeout=10, policy=RetryPolicy(3, 0.05))

        # 0.05 + 0.1
        assert time.monotonic() - started >= 0.14


class TestTransactionBound:

    def test_slow_transaction_rolls_back(self, database, make_variation, stock_of):
        variation_id = make_variation(stock=5)

        def slow(db):
            db.get(ProductVariationModel, variation_id).stock = 1
            time.sleep(0.05)

        with pytest.raises(TransactionTimeout):
            database.run_in_transaction(slow, timeout=0.01)

        assert stock_of(variation_id) == 5

    def test_within_bound_commits(self, database, make_variation, stock_of):
        variation_id = make_variation(stock=5)

        def quick(db):
            db.get(ProductVariationModel, variation_id).stock = 4
            return "done"

        assert database.run_in_transaction(quick, timeout=5) == "done"
        assert stock_of(variation_id) == 4

    def test_timeout_is_a_transaction_failure(self):
        error = TransactionTimeout(timeout=10, elapsed=12.345)

        assert isinstance(error, TransactionFailure)
        assert (error.operation, error.attempts, error.cause) == ("transaction", 1, None)
        assert (error.timeout, error.elapsed) == (10, 12.345)
        assert str(error) == "Transaction exceeded 10.0s (took 12.35s)"


class TestSqliteBusyWait:

    def test_busy_wait_defaults_to_item_bound(self, database):
        assert database.busy_timeout == ITEM_TX_TIMEOUT_SECONDS

    def test_blocked_writer_gives_up_after_busy_wait(self, database):
        """A writer waiting on BEGIN IMMEDIATE stops at its busy timeout"""
        contender = Database(database.url, busy_timeout=0.2)
        try:
            with database.session() as holder:
                holder.execute(text("SELECT 1"))

                started = time.monotonic()
                with pytest.raises(OperationalError):
                    contender.run_in_transaction(lambda db: db.execute(text("SELECT 1")), timeout=5)
                assert time.monotonic() - started < 2
        finally:
            contender.dispose()
