# storefront/utils/retry.py
from dataclasses import dataclass
from typing import Callable, TypeVar

from sqlalchemy.orm import Session
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.data.database import Database
from storefront.domain.errors import InsufficientStock, NotFound, TransactionFailure, ValidationError
from storefront.utils.settings import TX_BACKOFF_BASE_SECONDS, TX_MAX_ATTEMPTS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

#brakujacego wiersza ani zlego inputu retry nie naprawi
NON_RETRYABLE = (ValidationError, NotFound)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = TX_MAX_ATTEMPTS
    backoff_base: float = TX_BACKOFF_BASE_SECONDS


def _log_failed_attempt(operation: str):
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            f"{operation} attempt {retry_state.attempt_number} failed: {exc!r}, "
            f"retrying in {retry_state.next_action.sleep:.2f}s"
        )

    return before_sleep


def transaction_retry(operation: str, policy: RetryPolicy) -> Retrying:
    # czekanie: base, 2*base, 4*base ...
    return Retrying(
        reraise=False,
        stop=stop_after_attempt(policy.attempts),
        wait=wait_exponential(multiplier=policy.backoff_base, min=0, max=60),
        retry=retry_if_not_exception_type(NON_RETRYABLE),
        before_sleep=_log_failed_attempt(operation),
    )


def run_unit_of_work(
    database: Database,
    operation: str,
    body: Callable[[Session], T],
    timeout: float,
    policy: RetryPolicy | None = None,
) -> T:
    """
    Retryowalna jednostka pracy: body(session) w jednej ograniczonej czasowo
    transakcji, powtarzane przy dowolnym bledzie poza NON_RETRYABLE.
    """
    policy = policy or RetryPolicy()
    retrying = transaction_retry(operation, policy)

    try:
        return retrying(database.run_in_transaction, body, timeout)
    except RetryError as e:
        attempts = e.last_attempt.attempt_number
        cause = e.last_attempt.exception()
        logger.error(f"{operation} failed after {attempts} attempts: {cause!r}")

        if isinstance(cause, InsufficientStock):
            cause.attempts = attempts
            raise cause

        raise TransactionFailure(operation, attempts, cause) from cause
