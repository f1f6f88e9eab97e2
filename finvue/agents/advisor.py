"""
AI Financial Advisor

DESIGN DECISION: The advisor is a single request/response call to Gemini.
It receives a plain-text listing of the user's transactions and must
answer with a fixed JSON shape: {analysis, recommendations, score}.

BOUNDARIES:
- CAN: Comment on spending patterns, suggest next steps, score health
- CANNOT: Modify accounts or transactions
- NEVER raises to the UI: any failure turns into fallback advice
"""

import json
from typing import Any, Mapping, Optional, Sequence, Union

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from finvue.config import GeminiSettings, get_settings
from finvue.models.catalog import CATEGORY_INDEX, UNKNOWN_LABEL, build_category_index
from finvue.models.finance import (
    BankAccount,
    Category,
    FinancialAdvice,
    Transaction,
    TransactionType,
)


logger = structlog.get_logger(__name__)


SYSTEM_INSTRUCTION = """You are a senior professional financial advisor. Analyse the user's financial records in depth, give concrete advice and a financial health score (1-100).

Requirements:
1. Current situation: point out spending blind spots or healthy financial signs.
2. Recommendations: give exactly three actionable recommendations (asset allocation ratios, specific spending cuts, or ways to increase income).
3. Score: give an overall 1-100 score based on the income/expense ratio and the savings rate.

Answer in {language}, and strictly follow this JSON format:
{{"analysis": "...", "recommendations": ["...", "...", "..."], "score": 75}}"""


def fallback_advice() -> FinancialAdvice:
    """Advice shown when the model can't be reached or answers garbage."""
    return FinancialAdvice(
        analysis="AI analysis is temporarily unavailable. Please try again later.",
        recommendations=[
            "Check your network connection",
            "Confirm the API key and its permissions are correct",
        ],
        score=0,
        is_fallback=True,
    )


def summarize_transactions(
    transactions: Sequence[Transaction],
    categories: Mapping[str, Category],
    accounts: Sequence[BankAccount],
) -> str:
    """
    One line per transaction, in the order given.

    Dangling category or account references are shown as "Unknown".
    """
    account_names = {account.id: account.name for account in accounts}

    lines = []
    for tx in transactions:
        category = categories.get(tx.category_id)
        direction = "Income" if tx.type == TransactionType.INCOME else "Expense"
        lines.append(
            f"{tx.date}: {direction} {tx.amount} "
            f"({category.name if category else UNKNOWN_LABEL}) "
            f"account: {account_names.get(tx.account_id, UNKNOWN_LABEL)} "
            f"note: {tx.note}"
        )
    return "\n".join(lines)


def parse_advice(text: str) -> FinancialAdvice:
    """
    Parse the model's JSON answer.

    Tolerates prose or code fences around the JSON object. Scores outside
    0-100 are clamped.

    Raises:
        ValueError: If no valid advice object can be read
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in model response")

    data: Any = json.loads(text[start:end])
    if not isinstance(data, dict):
        raise ValueError("Model response is not a JSON object")

    try:
        return FinancialAdvice(
            analysis=data["analysis"],
            recommendations=[str(r) for r in data.get("recommendations", [])],
            score=max(0.0, min(100.0, float(data["score"]))),
        )
    except (KeyError, TypeError, ValidationError) as e:
        raise ValueError(f"Model response missing advice fields: {e}")


class FinancialAdvisorAgent:
    """
    Asks Gemini for an assessment of the user's finances.

    The model is built once per agent. Tests (or callers with their own
    client) can pass any object with an async generate_content_async().
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
    ):
        if model is not None:
            self._model = model
            return

        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_INSTRUCTION.format(
                language=self._settings.advice_language
            ),
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )

    async def get_financial_advice(
        self,
        transactions: Sequence[Transaction],
        categories: Union[Mapping[str, Category], Sequence[Category]] = CATEGORY_INDEX,
        accounts: Sequence[BankAccount] = (),
    ) -> FinancialAdvice:
        """
        Get advice for the given ledger.

        Returns fallback advice (is_fallback=True, score 0) on any error.
        """
        if not isinstance(categories, Mapping):
            categories = build_category_index(categories)

        summary = summarize_transactions(transactions, categories, accounts)
        prompt = f"Here are my financial records:\n{summary}"

        try:
            response = await self._model.generate_content_async(prompt)
            text = (response.text or "").strip()
            if not text:
                raise ValueError("Model returned empty response")
            advice = parse_advice(text)
        except Exception as e:
            logger.error(
                "advice_generation_failed",
                error=str(e),
                error_type=type(e).__name__,
                transaction_count=len(transactions),
            )
            return fallback_advice()

        logger.info(
            "advice_generated",
            score=advice.score,
            recommendation_count=len(advice.recommendations),
        )
        return advice
