"""Explainer pipeline: an explicit state machine over immutable state patches."""

import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config import Settings
from .models import ExplainState, RiskLevel
from .services.evidence import EvidenceConfig, build_research_brief, fetch_evidence
from .services.llm import LLMService
from .services.market_data import MarketDataService, refresh_holding_prices
from .services.news import NewsProvider, create_news_provider
from .services.risk import assess_risk
from .services.run_log import RunLogger
from .services.scope import compute_scope, select_diversifier_candidates
from .services.stats import compute_stats

logger = logging.getLogger(__name__)

StatePatch = Dict[str, Any]


class Step(str, Enum):
    PRICE_UPDATE = "price_update"
    STATS = "stats"
    RISK = "risk"
    SCOPE = "scope"
    EVIDENCE = "evidence"
    DIVERSIFY = "diversify"
    WARNING = "warning"
    EXPLAIN = "explain"
    DONE = "done"


# Unconditional edges; DIVERSIFY is resolved in next_step
TRANSITIONS: Dict[Step, Step] = {
    Step.PRICE_UPDATE: Step.STATS,
    Step.STATS: Step.RISK,
    Step.RISK: Step.SCOPE,
    Step.SCOPE: Step.EVIDENCE,
    Step.EVIDENCE: Step.DIVERSIFY,
    Step.WARNING: Step.EXPLAIN,
    Step.EXPLAIN: Step.DONE,
}


def next_step(step: Step, state: ExplainState) -> Step:
    """Transition function; the warning branch runs only for HIGH risk."""
    if step == Step.DIVERSIFY:
        return Step.WARNING if state.risk_level == RiskLevel.HIGH else Step.EXPLAIN
    return TRANSITIONS[step]


def apply_patch(state: ExplainState, patch: Optional[StatePatch]) -> ExplainState:
    if not patch:
        return state
    return state.model_copy(update=patch)


class ExplainerPipeline:
    """Runs the fixed step sequence with injected collaborators."""

    def __init__(
        self,
        llm: LLMService,
        news_provider: Optional[NewsProvider],
        market_data: Optional[MarketDataService] = None,
        evidence_config: Optional[EvidenceConfig] = None,
        run_logger: Optional[RunLogger] = None,
    ):
        self.llm = llm
        self.news_provider = news_provider
        self.market_data = market_data
        self.evidence_config = evidence_config or EvidenceConfig()
        self.run_logger = run_logger or RunLogger()
        self._handlers: Dict[Step, Callable[[ExplainState], Awaitable[StatePatch]]] = {
            Step.PRICE_UPDATE: self.price_update_step,
            Step.STATS: self.stats_step,
            Step.RISK: self.risk_step,
            Step.SCOPE: self.scope_step,
            Step.EVIDENCE: self.evidence_step,
            Step.DIVERSIFY: self.diversify_step,
            Step.WARNING: self.warning_step,
            Step.EXPLAIN: self.explain_step,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExplainerPipeline":
        """Wire the pipeline from environment settings."""
        market_data = None
        if settings.alpaca_api_key and settings.alpaca_secret_key:
            market_data = MarketDataService(
                api_key=settings.alpaca_api_key,
                secret_key=settings.alpaca_secret_key,
            )
        else:
            logger.info("Alpaca keys not set; live price refresh disabled")

        evidence_config = EvidenceConfig.from_settings(settings)
        evidence_config.validate()

        return cls(
            llm=LLMService.from_settings(settings),
            news_provider=create_news_provider(settings),
            market_data=market_data,
            evidence_config=evidence_config,
            run_logger=RunLogger(settings.run_log_path, enabled=settings.log_runs),
        )

    async def price_update_step(self, state: ExplainState) -> StatePatch:
        if not state.use_live_prices:
            return {}
        if self.market_data is None:
            logger.warning("Live prices requested but no market data service configured")
            return {}
        holdings = await refresh_holding_prices(state.holdings, self.market_data)
        return {"holdings": holdings}

    async def stats_step(self, state: ExplainState) -> StatePatch:
        return {"stats": compute_stats(state.holdings)}

    async def risk_step(self, state: ExplainState) -> StatePatch:
        risk_level, risk_factors = assess_risk(state.stats)
        return {"risk_level": risk_level, "risk_factors": risk_factors}

    async def scope_step(self, state: ExplainState) -> StatePatch:
        candidates = select_diversifier_candidates(state.holdings, state.risk_level)
        scope = compute_scope(state.stats, candidates)
        return {"diversifier_candidates": candidates, "scope": scope}

    async def evidence_step(self, state: ExplainState) -> StatePatch:
        bundle = await fetch_evidence(state.scope, self.news_provider, self.evidence_config)
        brief = build_research_brief(bundle, state.scope)
        return {"evidence_bundle": bundle, "research_brief": brief}

    async def diversify_step(self, state: ExplainState) -> StatePatch:
        return {"diversification_ideas": await self.llm.diversification_ideas(state)}

    async def warning_step(self, state: ExplainState) -> StatePatch:
        return {"warning": await self.llm.warning(state)}

    async def explain_step(self, state: ExplainState) -> StatePatch:
        return {"explanation": await self.llm.explain(state)}

    async def run(self, state: ExplainState) -> ExplainState:
        """Drive the state machine from PRICE_UPDATE to DONE."""
        start_time = time.monotonic()
        visited: List[Step] = []
        step = Step.PRICE_UPDATE

        while step != Step.DONE:
            logger.info(f"Running pipeline step {step.value}")
            patch = await self._handlers[step](state)
            state = apply_patch(state, patch)
            visited.append(step)
            step = next_step(step, state)

        duration = time.monotonic() - start_time
        logger.info(
            f"Pipeline completed in {duration:.1f}s "
            f"({' -> '.join(s.value for s in visited)})"
        )

        self.run_logger.log_run({
            "steps": [s.value for s in visited],
            "duration_seconds": duration,
            "risk_level": state.risk_level.value if state.risk_level else None,
            "risk_factors": state.risk_factors,
            "scope": state.scope.model_dump() if state.scope else None,
            "evidence_meta": (
                state.evidence_bundle.meta.model_dump() if state.evidence_bundle else None
            ),
            "has_warning": state.warning is not None,
        })
        return state
