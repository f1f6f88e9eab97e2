"""AI Agents package."""

from finvue.agents.advisor import (
    FinancialAdvisorAgent,
    fallback_advice,
    parse_advice,
    summarize_transactions,
)

__all__ = [
    "FinancialAdvisorAgent",
    "fallback_advice",
    "parse_advice",
    "summarize_transactions",
]
