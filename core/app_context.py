import contextlib
from dataclasses import dataclass
from typing import Iterator, Optional

from core.cache.match_cache import MatchCacheService, init_match_cache
from core.config_loader import AppConfig
from core.grading.classifier import CareGradeClassifier
from core.matcher.service import MatchingPipeline
from core.matcher.settings_service import CoordinatorSettingsService


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Stateless services (classifier, cache) are built once; anything that
    needs a database session is built per unit of work through pipeline()
    and settings().
    """
    config: AppConfig
    classifier: CareGradeClassifier
    match_cache: Optional[MatchCacheService] = None

    @classmethod
    def build(cls, config: AppConfig) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration

        Returns:
            Wired AppContext instance (no DB session attached)
        """
        from database.database import configure_database

        configure_database(config.database.url)
        return cls(
            config=config,
            classifier=CareGradeClassifier(),
            match_cache=init_match_cache(config.cache)
        )

    @contextlib.contextmanager
    def pipeline(self) -> Iterator[MatchingPipeline]:
        """MatchingPipeline bound to a fresh unit of work."""
        from database.uow import matching_uow

        with matching_uow(
            retry_attempts=self.config.database.retry_attempts,
            retry_wait_seconds=self.config.database.retry_wait_seconds
        ) as repo:
            yield MatchingPipeline(
                store=repo,
                config=self.config.matching,
                cache=self.match_cache
            )

    @contextlib.contextmanager
    def settings(self) -> Iterator[CoordinatorSettingsService]:
        """CoordinatorSettingsService bound to a fresh unit of work."""
        from database.uow import matching_uow

        with matching_uow(
            retry_attempts=self.config.database.retry_attempts,
            retry_wait_seconds=self.config.database.retry_wait_seconds
        ) as repo:
            yield CoordinatorSettingsService(repo, cache=self.match_cache)
