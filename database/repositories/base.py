from sqlalchemy.orm import Session


class BaseRepository:
    """Session holder shared by repositories; callers own the transaction."""

    def __init__(self, db: Session):
        self.db = db

    def flush(self) -> None:
        """Push pending writes so generated ids are visible before commit."""
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
