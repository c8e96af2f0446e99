"""Call path scoring: intent (business value) and risk (architectural danger).

Both calculators combine three structural signals from the query port
(80%) with version-control change signals (20%):
  - intent: business impact, architecture value, call-chain completeness
  - risk:   architecture risk, blast radius, layer violations

Tier tables live in ``_tables``; each scorer is a pure function of one
query result so it can be tested without a graph.
"""

from codeweight.weights.git_signals import intent_git_score, risk_git_score
from codeweight.weights.intent import IntentWeightCalculator
from codeweight.weights.risk import RiskWeightCalculator

__all__ = [
    "IntentWeightCalculator",
    "RiskWeightCalculator",
    "intent_git_score",
    "risk_git_score",
]
