"""AI engine: opponent reads, range estimates, win rates and the decision policy."""

from .opponent_model import OpponentAnalysis, OpponentModel, OpponentView, SessionBehavior
from .personality import PERSONALITIES, Personality, PersonalityRegistry
from .policy import Decision, DecisionContext, DecisionPolicy, OpponentRead, Tier
from .range_estimator import BayesianRangeTracker, HandRange, HandRangeEstimator
from .strategy import DecisionRecord, StrategyAdjuster, StrategyAdjustments
from .win_rate import Matchup, WinRateCalculator

__all__ = [
    "BayesianRangeTracker",
    "Decision",
    "DecisionContext",
    "DecisionPolicy",
    "DecisionRecord",
    "HandRange",
    "HandRangeEstimator",
    "Matchup",
    "OpponentAnalysis",
    "OpponentModel",
    "OpponentRead",
    "OpponentView",
    "PERSONALITIES",
    "Personality",
    "PersonalityRegistry",
    "SessionBehavior",
    "StrategyAdjuster",
    "StrategyAdjustments",
    "Tier",
    "WinRateCalculator",
]
