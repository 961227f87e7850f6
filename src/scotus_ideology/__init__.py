"""SCOTUS Ideology - predict justice ideology from per-issue-area voting direction."""

__version__ = "0.1.0"

from scotus_ideology.cleaning import DirectionCodeError as DirectionCodeError
from scotus_ideology.cleaning import SchemaError as SchemaError
from scotus_ideology.models import JoinedVote as JoinedVote
from scotus_ideology.models import VoteRecord as VoteRecord
