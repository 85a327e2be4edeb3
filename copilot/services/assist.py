"""Prepare everything the answer generator needs for one user question.

Solution resolution plus document routing runs concurrently with knowledge
retrieval. A question that matches no solution still retrieves knowledge by
embedding alone. A bare answer to a follow-up question keeps the solution
recorded in the conversation's intake state.
"""

import asyncio
import logging
from typing import Sequence

from pydantic import BaseModel, Field

from copilot.knowledge.context import build_messages, format_context
from copilot.knowledge.models import RetrievalOptions, RetrievedChunk
from copilot.knowledge.retriever import KnowledgeRetriever
from copilot.models.knowledge import Audience
from copilot.solutions.intake import next_question, start_intake
from copilot.solutions.matcher import SolutionMatcher
from copilot.solutions.models import CanonicalSolution, IntakeState
from copilot.solutions.normalizer import normalize
from copilot.storage.resolver import DocumentRouter, RouteResult

logger = logging.getLogger(__name__)


class NextQuestion(BaseModel):
    slot: str
    question: str
    options: list[str] = Field(default_factory=list)


class AssistContext(BaseModel):
    """Everything assembled for one question."""

    question: str
    normalized: str
    solution_key: str | None = None
    solution_summary: str | None = None
    folder: str | None = None
    intake: IntakeState
    next_question: NextQuestion | None = None
    route: RouteResult | None = None
    chunks: list[RetrievedChunk] = Field(default_factory=list)
    context: str
    messages: list[dict[str, str]] = Field(default_factory=list)


class AssistService:
    """Orchestrates matcher, router and retriever for a question."""

    def __init__(
        self,
        matcher: SolutionMatcher,
        retriever: KnowledgeRetriever | None = None,
        router: DocumentRouter | None = None,
        match_count: int = 6,
        context_chars: int = 3000,
    ):
        self.matcher = matcher
        self.retriever = retriever
        self.router = router
        self.match_count = match_count
        self.context_chars = context_chars

    async def _route(
        self,
        question: str,
        include_internal: bool,
        solution: CanonicalSolution | None,
    ) -> RouteResult | None:
        if self.router is None:
            return None
        try:
            return await self.router.route(question, include_internal=include_internal, solution=solution)
        except Exception as e:
            logger.error(f"Document routing failed, continuing without documents: {type(e).__name__}: {e}")
            return None

    def _resolve(self, question: str, intake: IntakeState | None) -> CanonicalSolution | None:
        solution = self.matcher.resolve(question)
        if solution is None and intake is not None:
            solution = self.matcher.by_securing(intake.securing)
        return solution

    async def _retrieve(self, question: str, options: RetrievalOptions) -> list[RetrievedChunk]:
        if self.retriever is None:
            logger.warning("Knowledge retriever not configured, answering without knowledge")
            return []
        return await self.retriever.retrieve(question, options)

    def _intake(
        self,
        question: str,
        solution: CanonicalSolution | None,
        intake: IntakeState | None,
    ) -> tuple[IntakeState, NextQuestion | None]:
        state = intake.model_copy(deep=True) if intake else IntakeState()
        state.absorb(question)
        if solution is None:
            return state, None

        if state.securing != solution.securing:
            # New topic: the recorded securing path follows the latest solution
            state.securing = None
        start_intake(solution, state)
        step = next_question(solution, state)
        if step is None:
            return state, None
        return state, NextQuestion(slot=step.slot, question=step.question, options=list(step.options))

    async def prepare(
        self,
        question: str,
        intake: IntakeState | None = None,
        history: Sequence[dict[str, str]] = (),
        audience: Audience = Audience.INTERNAL,
        options: RetrievalOptions | None = None,
    ) -> AssistContext:
        options = options or RetrievalOptions(match_count=self.match_count)
        include_internal = Audience(audience) is not Audience.EXTERNAL

        solution = self._resolve(question, intake)
        route, chunks = await asyncio.gather(
            self._route(question, include_internal, solution),
            self._retrieve(question, options),
        )

        state, follow_up = self._intake(question, solution, intake)

        logger.info(
            f"Prepared context: solution={solution.key if solution else None}, "
            f"chunks={len(chunks)}, "
            f"probe={route.probe.status.value if route and route.probe else None}"
        )

        return AssistContext(
            question=question,
            normalized=normalize(question),
            solution_key=solution.key if solution else None,
            solution_summary=solution.summary if solution else None,
            folder=route.folder if route and route.folder else (solution.folder if solution else None),
            intake=state,
            next_question=follow_up,
            route=route,
            chunks=chunks,
            context=format_context(chunks, max_length=self.context_chars),
            messages=build_messages(
                question,
                chunks,
                history=history,
                max_context_chars=self.context_chars,
            ),
        )
