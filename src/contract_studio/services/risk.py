"""
Risk banding policy shared by display code and default-score generation.

Scores produced by AI analysis are never re-banded; this policy only applies
where a caller has a qualitative level and needs a score, or the reverse for
display.
"""

from contract_studio.models.document import RiskLevel


# level -> (representative score, inclusive band)
RISK_BANDS: dict[RiskLevel, tuple[int, tuple[int, int]]] = {
    RiskLevel.LOW: (30, (0, 49)),
    RiskLevel.MEDIUM: (65, (50, 79)),
    RiskLevel.HIGH: (90, (80, 100)),
}


def score_for_level(level: RiskLevel | str) -> int:
    """Representative score for a risk level."""
    return RISK_BANDS[RiskLevel(level)][0]


def level_for_score(score: int) -> RiskLevel:
    """Band a 0-100 score into its risk level."""
    if not 0 <= score <= 100:
        raise ValueError(f"Risk score out of range: {score}")
    for level, (_, (low, high)) in RISK_BANDS.items():
        if low <= score <= high:
            return level
    raise ValueError(f"Risk score not covered by any band: {score}")


def is_consistent(level: RiskLevel | str, score: int) -> bool:
    """Whether a level/score pair agrees with the banding policy."""
    return level_for_score(score) == RiskLevel(level)
