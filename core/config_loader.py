import yaml
import os
from typing import Optional
from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    url: str
    retry_attempts: int = 3
    retry_wait_seconds: float = 0.5


class CacheConfig(BaseModel):
    """
    Configuration for the coordinator match result cache.

    Results are only cached when the requested result size is at or
    below max_cacheable_results.
    """
    enabled: bool = True
    redis_url: str = "redis://localhost:6379/0"
    password: Optional[str] = None
    ttl_seconds: int = 3600
    max_cacheable_results: int = 50
    key_prefix: str = "coordinator-matches"


class ScoringWeights(BaseModel):
    """Weights for each sub-score in the composite candidate score (0.0-5.0)."""
    specialty: float = 0.4
    experience: float = 0.25
    customer_satisfaction: float = 0.2
    location: float = 0.1
    availability: float = 0.05
    # Best language compatibility for the preferred language.
    # Neutral by default; raise it to let language skills move the ranking.
    language: float = 0.0


class WorkloadConfig(BaseModel):
    """Second-pass workload rebalancing applied after the candidate sort."""
    rebalance_weight: float = 0.3


class MatcherConfig(BaseModel):
    """
    Configuration for the MatchingPipeline.

    Controls the hard filters applied before scoring and how the scoring
    stage is executed.
    """
    # Coordinators without an active skill in the preferred language are dropped
    require_preferred_language: bool = True

    parallel_scoring: bool = False
    max_workers: Optional[int] = None  # None = os.cpu_count()

    # Deadline for one pipeline run; None disables it
    timeout_seconds: Optional[float] = None


class MatchingConfig(BaseModel):
    """
    Top-level matching configuration.
    """
    enabled: bool = True
    default_max_results: int = 20

    matcher: MatcherConfig = MatcherConfig()
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    workload: WorkloadConfig = Field(default_factory=WorkloadConfig)


class AppConfig(BaseModel):
    database: DatabaseConfig
    cache: CacheConfig = Field(default_factory=CacheConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from a subdirectory), use the project root copy
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Allow env var override for DB URL
    env_db_url = os.environ.get("DATABASE_URL")
    if env_db_url:
        if not data.get('database'):
            data['database'] = {}
        data['database']['url'] = env_db_url

    # Allow env var override for Redis URL
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        if not data.get('cache'):
            data['cache'] = {}
        data['cache']['redis_url'] = env_redis_url

    return AppConfig(**data)
