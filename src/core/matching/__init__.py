# src/core/matching/__init__.py
"""
Домен подбора заявок.
Скоринг, рекомендации, поиск поблизости и ранжирование через сервис инференса.
"""

from src.core.matching.assisted import (
    AssistedRanker,
    AssistedResult,
    InferenceClient,
    InferenceError,
    validate_matches,
    with_fallback,
)
from src.core.matching.criteria import CriteriaRepository
from src.core.matching.errors import (
    DriverNotFoundError,
    InvalidDriverError,
    InvalidRoleError,
    LocationUnavailableError,
    MatchingError,
)
from src.core.matching.models import (
    DriverPreferenceProfile,
    JobScore,
    MatchingCriteria,
    rank_scores,
)
from src.core.matching.proximity import ProximityQuery, proximity_score
from src.core.matching.recommender import (
    HistoryRecommender,
    build_preference_profile,
    compute_recommendation_score,
)
from src.core.matching.scorer import DeterministicScorer, compute_job_score
from src.core.matching.service import MatchingService

__all__ = [
    "MatchingService",
    "MatchingCriteria",
    "JobScore",
    "DriverPreferenceProfile",
    "rank_scores",
    "CriteriaRepository",
    "DeterministicScorer",
    "compute_job_score",
    "HistoryRecommender",
    "build_preference_profile",
    "compute_recommendation_score",
    "ProximityQuery",
    "proximity_score",
    "AssistedRanker",
    "AssistedResult",
    "InferenceClient",
    "InferenceError",
    "validate_matches",
    "with_fallback",
    "MatchingError",
    "InvalidDriverError",
    "DriverNotFoundError",
    "InvalidRoleError",
    "LocationUnavailableError",
]
