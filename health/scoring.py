"""
health/scoring.py

Weighted site health score from site-wide ranking and CTR averages.
"""

from __future__ import annotations

from dataclasses import dataclass

# (upper bound on average position, score); first matching row wins.
_POSITION_BREAKPOINTS: tuple[tuple[float, int], ...] = (
    (5.0, 95),
    (10.0, 80),
    (20.0, 60),
    (50.0, 40),
)
_POSITION_FLOOR_SCORE = 20

# (lower bound on average CTR, score); first matching row wins.
_CTR_BREAKPOINTS: tuple[tuple[float, int], ...] = (
    (0.07, 95),
    (0.05, 85),
    (0.03, 70),
    (0.02, 50),
)
_CTR_FLOOR_SCORE = 30


@dataclass(frozen=True)
class HealthScoreComponent:
    score: int
    details: str

    def as_dict(self) -> dict:
        return {"score": self.score, "details": self.details}


@dataclass(frozen=True)
class HealthScore:
    overall: int
    technical: HealthScoreComponent
    content: HealthScoreComponent
    user_experience: HealthScoreComponent
    authority: HealthScoreComponent

    def as_dict(self) -> dict:
        return {
            "overall": self.overall,
            "technical": self.technical.as_dict(),
            "content": self.content.as_dict(),
            "userExperience": self.user_experience.as_dict(),
            "authority": self.authority.as_dict(),
        }


class HealthScoreCalculator:
    """Combines four 0–100 sub-scores into one overall health score.

    Sub-scores come from fixed breakpoint tables:
        technical       – average position
        content         – average CTR
        user experience – average CTR (same table as content)
        authority       – constant placeholder until a backlink source exists

    Weights are whole percentages and must sum to 100, which keeps the
    half-up rounding of the overall score exact.
    """

    TECHNICAL_WEIGHT_PCT: int = 30
    CONTENT_WEIGHT_PCT: int = 30
    USER_EXPERIENCE_WEIGHT_PCT: int = 25
    AUTHORITY_WEIGHT_PCT: int = 15

    AUTHORITY_PLACEHOLDER_SCORE: int = 75

    def compute(self, average_position: float, average_ctr: float) -> HealthScore:
        """Score a site from its window averages.

        Args:
            average_position: Impression-weighted mean ranking position.
            average_ctr: Click-through rate as a fraction (0.05 = 5 %).

        Returns:
            A HealthScore whose ``overall`` is the weighted sum of the
            sub-scores rounded to the nearest integer.
        """
        technical = self.technical_score(average_position)
        content = self.content_score(average_ctr)
        user_experience = self.user_experience_score(average_ctr)
        authority = self.authority_score()

        weighted_sum_pct: int = (
            technical.score * self.TECHNICAL_WEIGHT_PCT
            + content.score * self.CONTENT_WEIGHT_PCT
            + user_experience.score * self.USER_EXPERIENCE_WEIGHT_PCT
            + authority.score * self.AUTHORITY_WEIGHT_PCT
        )
        return HealthScore(
            overall=(weighted_sum_pct + 50) // 100,
            technical=technical,
            content=content,
            user_experience=user_experience,
            authority=authority,
        )

    @staticmethod
    def technical_score(average_position: float) -> HealthScoreComponent:
        score = _POSITION_FLOOR_SCORE
        for upper_bound, band_score in _POSITION_BREAKPOINTS:
            if average_position <= upper_bound:
                score = band_score
                break
        return HealthScoreComponent(
            score=score,
            details=f"Score is based on an average ranking position of {average_position:.1f}.",
        )

    @staticmethod
    def content_score(average_ctr: float) -> HealthScoreComponent:
        return HealthScoreComponent(
            score=_ctr_band(average_ctr),
            details=f"Score is based on an average CTR of {average_ctr * 100:.2f}%.",
        )

    @staticmethod
    def user_experience_score(average_ctr: float) -> HealthScoreComponent:
        return HealthScoreComponent(
            score=_ctr_band(average_ctr),
            details=f"Engagement proxy based on an average CTR of {average_ctr * 100:.2f}%.",
        )

    def authority_score(self) -> HealthScoreComponent:
        return HealthScoreComponent(
            score=self.AUTHORITY_PLACEHOLDER_SCORE,
            details="Authority metrics will be enabled in a future update.",
        )


def _ctr_band(average_ctr: float) -> int:
    for lower_bound, band_score in _CTR_BREAKPOINTS:
        if average_ctr >= lower_bound:
            return band_score
    return _CTR_FLOOR_SCORE
