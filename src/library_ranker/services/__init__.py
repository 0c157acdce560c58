from .ranking_service import DecayResult, RankedItem, RankingService
from .recorder import MatchRecorder
from .system import InitializationResult, ResetResult, SystemLifecycle

__all__ = [
    "DecayResult",
    "InitializationResult",
    "MatchRecorder",
    "RankedItem",
    "RankingService",
    "ResetResult",
    "SystemLifecycle",
]
