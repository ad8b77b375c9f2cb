"""Result fusion for hybrid contact search."""

from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from ..common.config import SearchConfig
from ..models import KeywordMatch, MatchedField, ResultSource, SemanticMatch

logger = structlog.get_logger("contact_search.fusion")

# Keyword matches on these fields carry a more useful snippet than a tag or
# transcript excerpt.
SNIPPET_OVERRIDE_FIELDS = frozenset({MatchedField.NAME, MatchedField.EMAIL, MatchedField.PHONE})


@dataclass
class FusedCandidate:
    """A contact's merged score with the per-branch inputs kept for debugging."""
    contact_id: str
    score: float
    matched_field: Optional[MatchedField]
    snippet: Optional[str]
    semantic_score: float = 0.0
    keyword_score: float = 0.0
    source: ResultSource = ResultSource.SEMANTIC
    name_override: bool = False
    document_id: Optional[str] = None


class WeightedOverrideFusion:
    """Weighted score fusion with a strong-name-match override.

    Policy
    - semantic contribution = ``semantic * semantic_weight``
    - keyword contribution = ``keyword * keyword_weight``, multiplied by
      ``name_boost`` when the keyword hit is a name match scoring above
      ``name_min_score``
    - a boosted name match replaces any semantic score outright; otherwise the
      larger contribution wins
    - keyword snippets on name/email/phone replace the semantic snippet

    Scores are not clamped here; callers decide how to present them.
    """

    def __init__(
        self,
        semantic_weight: float = 0.7,
        keyword_weight: float = 0.6,
        name_boost: float = 3.0,
        name_min_score: float = 0.8
    ):
        self.semantic_weight = semantic_weight
        self.keyword_weight = keyword_weight
        self.name_boost = name_boost
        self.name_min_score = name_min_score

    @classmethod
    def from_config(cls, config: SearchConfig) -> "WeightedOverrideFusion":
        return cls(
            semantic_weight=config.semantic_weight,
            keyword_weight=config.keyword_weight,
            name_boost=config.name_match_boost,
            name_min_score=config.name_match_min_score,
        )

    def is_name_override(self, match: KeywordMatch) -> bool:
        return match.matched_field is MatchedField.NAME and match.score > self.name_min_score

    def keyword_contribution(self, match: KeywordMatch) -> float:
        contribution = match.score * self.keyword_weight
        if self.is_name_override(match):
            contribution *= self.name_boost
        return contribution

    def fuse_results(
        self,
        semantic_results: List[SemanticMatch],
        keyword_results: List[KeywordMatch]
    ) -> List[FusedCandidate]:
        """Merge per-contact results; returns candidates sorted by score, descending."""
        candidates: Dict[str, FusedCandidate] = {}

        for result in semantic_results:
            contribution = result.score * self.semantic_weight
            existing = candidates.get(result.contact_id)
            if existing is not None and existing.score >= contribution:
                continue
            candidates[result.contact_id] = FusedCandidate(
                contact_id=result.contact_id,
                score=contribution,
                matched_field=result.matched_field,
                snippet=result.snippet,
                semantic_score=result.score,
                source=ResultSource.SEMANTIC,
                document_id=result.document_id,
            )

        for result in keyword_results:
            contribution = self.keyword_contribution(result)
            override = self.is_name_override(result)
            existing = candidates.get(result.contact_id)

            if existing is None:
                candidates[result.contact_id] = FusedCandidate(
                    contact_id=result.contact_id,
                    score=contribution,
                    matched_field=result.matched_field,
                    snippet=result.snippet,
                    keyword_score=result.score,
                    source=ResultSource.KEYWORD,
                    name_override=override,
                )
                continue

            existing.keyword_score = result.score
            existing.source = ResultSource.HYBRID
            if override:
                existing.score = contribution
                existing.matched_field = result.matched_field
                existing.name_override = True
            elif contribution > existing.score:
                existing.score = contribution
                existing.matched_field = result.matched_field
            if result.matched_field in SNIPPET_OVERRIDE_FIELDS:
                existing.snippet = result.snippet

        fused = sorted(candidates.values(), key=lambda c: c.score, reverse=True)

        logger.debug(
            "Weighted override fusion completed",
            semantic_count=len(semantic_results),
            keyword_count=len(keyword_results),
            fused_count=len(fused),
            name_overrides=sum(1 for c in fused if c.name_override)
        )
        return fused
