import contextlib
import logging

from database.database import SessionLocal, get_engine
from database.repositories.coordinator import CoordinatorRepository

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def matching_uow(retry_attempts: int = 3, retry_wait_seconds: float = 0.5):
    """Per-unit-of-work transaction scope.

    Yields a CoordinatorRepository bound to a fresh Session. Commits on
    success, rolls back on exception, always closes.

    Usage:
        with matching_uow() as repo:
            profiles = repo.find_eligible_coordinators(3)
        # commit happens automatically on successful exit
    """
    get_engine()
    session = SessionLocal()
    try:
        repo = CoordinatorRepository(
            session,
            retry_attempts=retry_attempts,
            retry_wait_seconds=retry_wait_seconds
        )
        yield repo
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
