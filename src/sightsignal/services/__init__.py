"""
SightSignal services.

Leaf components are pure functions (geo, conditions, reputation, reactions,
membership, viral); the evaluator, ranking engine and signal service are
async and take repositories by injection.
"""

from .evaluator import SignalEvaluation, SignalEvaluator
from .ranking import RankingEngine
from .signals import NewSignal, SignalService, SignalUpdate

__all__ = [
    "NewSignal",
    "RankingEngine",
    "SignalEvaluation",
    "SignalEvaluator",
    "SignalService",
    "SignalUpdate",
]
