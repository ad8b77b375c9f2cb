"""Score fusion and snippet helpers."""

from .fusion import FusedCandidate, WeightedOverrideFusion
from .snippets import best_window_snippet, truncate_snippet

__all__ = ["FusedCandidate", "WeightedOverrideFusion", "best_window_snippet", "truncate_snippet"]
