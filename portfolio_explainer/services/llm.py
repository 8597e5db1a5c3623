"""LLM-backed narrative steps: diversification ideas, risk warning, explanation."""

import json
import logging
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..models import ExplainState, PortfolioStats
from .diff import build_diff_section

logger = logging.getLogger(__name__)

DIVERSIFICATION_SYSTEM_PROMPT = """You are a portfolio diversification analyst. Follow these rules:
1. NEVER give direct buy/sell instructions
2. Suggest educational scenarios and example tickers
3. Tailor suggestions to risk level (HIGH/MEDIUM/LOW)
4. Keep output to 6-10 bullets max
5. Use markdown with clear headings"""

DIVERSIFICATION_USER_PROMPT = """Risk Level: {risk_level}
Risk Factors: {risk_factors}

Portfolio Stats:
```json
{stats_json}
```

Suggested diversifier candidates:
{candidates}

Provide diversification ideas in markdown with these sections:
## Reduce Concentration
## Add Defensive Balance
## Diversify by Region/Factor
## Optional Growth Satellites (if appropriate)"""

WARNING_PROMPT = """You are a cautious portfolio risk explainer.

The portfolio has riskLevel: {risk_level}.
Risk factors:
{risk_factors}

Write a short, direct warning in 2-3 sentences:
- Explain why these factors might be risky in practical terms.
- Do NOT give specific trade instructions.
- Talk like you're explaining to a smart friend who doesn't know finance jargon."""

EXPLAINER_PROMPT = """You are a portfolio analysis assistant.

Your role is to EDUCATE the user about their portfolio's structure, risks, and diversification concepts.
You are NOT a financial advisor and you must NOT give direct investment instructions.

## CHANGES SINCE LAST SNAPSHOT
{diff_section}

Rules for using this section:
- If it says "No prior snapshot to compare", do NOT reference past changes.
- Only mention changes explicitly listed above.
- Do NOT invent or assume any changes.

## PORTFOLIO STATS (FACTUAL DATA)
{stats_json}

## RISK EVALUATION
- Risk Level: {risk_level}
- Risk Factors: {risk_factors}
{warning_section}
## RECENT NEWS (CITED EVIDENCE)
{evidence_section}

## HARD CONSTRAINTS (IMPORTANT)
- Do NOT use words like "buy", "sell", "allocate X%", "should buy", or "must".
- Do NOT give timing advice or price targets.
- Do NOT provide specific trade instructions.
- Use neutral, educational language such as:
  "consider exploring", "examples include", "can provide exposure to".
- Limit example tickers to a MAXIMUM of 5 total.
- Do NOT repeat raw JSON or restate numbers unnecessarily.
- Only reference news items listed above.

## YOUR TASK
Write your response in EXACTLY 3 sections, using clear headings:

1) **Portfolio Overview**
   - Describe concentration, diversification, and asset allocation.
   - Reference top positions and major asset classes.
   - If relevant, briefly mention notable changes since the last snapshot.

2) **Risk Assessment**
   - Explain the main risk factors in plain English.
   - Connect risks to concentration, asset mix, or recent changes.
   - Keep this understandable to a non-expert.

3) **Scenario-Based Diversification Ideas**
   - Suggestions MUST depend on the risk level:
     - HIGH risk: emphasize reducing concentration, stabilizing exposure,
       defensive sectors, diversification away from a single sector.
     - MEDIUM risk: emphasize broader diversification across sectors and regions.
     - LOW risk: mention optional growth-oriented or opportunistic exposures.
   - Each idea should include a category, a short explanation of WHY it helps,
     and 1-2 example tickers.
   - Keep ideas conceptual and educational.

Now produce the response."""


def _stats_json(stats: Optional[PortfolioStats]) -> str:
    if stats is None:
        return "{}"
    return json.dumps(stats.model_dump(), indent=2)


def _risk_level(state: ExplainState) -> str:
    return state.risk_level.value if state.risk_level else "UNKNOWN"


def _evidence_section(state: ExplainState, max_items: int = 10) -> str:
    if state.research_brief is None or not state.research_brief.citations:
        return "No recent news available."
    lines = []
    for citation in state.research_brief.citations[:max_items]:
        publisher = f" ({citation.publisher})" if citation.publisher else ""
        lines.append(f"- {citation.title}{publisher}: {citation.url}")
    return "\n".join(lines)


class LLMService:
    """Chat-completion wrapper; the client is injected, never created per call."""

    def __init__(self, client: Any, settings: Settings):
        self.client = client
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMService":
        from openai import AsyncOpenAI

        client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )
        return cls(client, settings)

    async def _complete(
        self,
        step: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> str:
        model = self.settings.step_models[step]
        logger.info(f"Calling {model} for {step.lower()} step")

        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=self.settings.llm_timeout,
        )

        content = response.choices[0].message.content
        if not content:
            raise ValueError(f"Empty response from {step.lower()} step")

        logger.debug(f"Raw response from {step.lower()}: {len(content)} chars")
        return content.strip()

    async def diversification_ideas(self, state: ExplainState) -> str:
        candidates = "\n".join(
            f"- {c.ticker} ({c.category.value}): {c.rationale}"
            for c in state.diversifier_candidates
        ) or "- none"
        user_prompt = DIVERSIFICATION_USER_PROMPT.format(
            risk_level=_risk_level(state),
            risk_factors="; ".join(state.risk_factors) or "none",
            stats_json=_stats_json(state.stats),
            candidates=candidates,
        )
        return await self._complete(
            "DIVERSIFICATION",
            [
                {"role": "system", "content": DIVERSIFICATION_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.4,
            max_tokens=500,
        )

    async def warning(self, state: ExplainState) -> Optional[str]:
        """Short plain-language warning; ``None`` when there is nothing to warn about."""
        if state.risk_level is None or not state.risk_factors:
            return None
        prompt = WARNING_PROMPT.format(
            risk_level=_risk_level(state),
            risk_factors="\n".join(f"- {f}" for f in state.risk_factors),
        )
        return await self._complete(
            "WARNING",
            [{"role": "user", "content": prompt}],
            temperature=0.2,
            max_tokens=200,
        )

    async def explain(self, state: ExplainState) -> str:
        warning_section = f"- Warning: {state.warning}\n" if state.warning else ""
        prompt = EXPLAINER_PROMPT.format(
            diff_section=build_diff_section(state.portfolio_diff),
            stats_json=_stats_json(state.stats),
            risk_level=_risk_level(state),
            risk_factors="; ".join(state.risk_factors) or "None detected",
            warning_section=warning_section,
            evidence_section=_evidence_section(state),
        )
        return await self._complete(
            "EXPLAINER",
            [{"role": "user", "content": prompt}],
            temperature=0.3,
            max_tokens=400,
        )
