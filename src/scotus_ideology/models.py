"""Data classes for cleaned and score-joined vote records."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class VoteRecord:
    """One justice's vote in one case, after cleaning."""
    case_id: str
    term: int
    chief: str
    justice_id: int
    justice_name: str
    issue_area: Optional[int]
    court_direction: int  # 1 = conservative, 2 = liberal
    justice_direction: int
    court_liberal: int = 0
    justice_liberal: int = 0


@dataclass
class JoinedVote(VoteRecord):
    """A vote record extended with the justice's score for that term."""
    score_mean: float = 0.0
    score_sd: float = 0.0

    @property
    def is_conservative_term(self) -> bool:
        return self.score_mean > 0
