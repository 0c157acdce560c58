"""Library Ranker.

Rank a personal media library through repeated pairwise comparisons,
using experience-scaled Elo updates and adaptive pair selection.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
