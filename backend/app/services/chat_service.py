from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.agents.answer_agent import AnswerAgent
from rag.errors import UpstreamSearchFailure
from rag.observability import CollectingObserver, DiagnosticRecord, MultiObserver
from rag.retriever import FilteredRetriever
from rag.selection import SelectionAbsent, SelectionGate, SelectionParam
from rag.types import UNFILTERED, FilteredResultSet, OnlyDocuments, RetrievalScope, SourceInfo

logger = logging.getLogger(__name__)


@dataclass
class SearchOutcome:
    query: str
    scope: RetrievalScope
    results: FilteredResultSet
    diagnostics: List[DiagnosticRecord] = field(default_factory=list)


@dataclass
class ChatOutcome:
    question: str
    answer: str
    search: SearchOutcome
    logs: List[Dict[str, Any]] = field(default_factory=list)


class ChatService:
    def __init__(
        self,
        retriever: FilteredRetriever,
        *,
        answer_agent: AnswerAgent | None = None,
        gate: SelectionGate | None = None,
        require_selection: bool = False,
        default_top_k: int = 5,
    ) -> None:
        self.retriever = retriever
        self.answer_agent = answer_agent or AnswerAgent()
        self.gate = gate or SelectionGate()
        self.require_selection = require_selection
        self.default_top_k = default_top_k

    def resolve_scope(self, param: SelectionParam) -> RetrievalScope:
        """Turn the boundary selection into a retrieval scope; raises NoSelection."""
        if isinstance(param, SelectionAbsent):
            if not self.require_selection:
                return UNFILTERED
            return OnlyDocuments(self.gate.require(None))
        return OnlyDocuments(self.gate.require(param.selection))

    async def search(self, query: str, top_k: int | None, param: SelectionParam) -> SearchOutcome:
        scope = self.resolve_scope(param)
        collector = CollectingObserver()
        results = await self.retriever.retrieve(
            query,
            self.default_top_k if top_k is None else top_k,
            scope,
            observer=MultiObserver([self.retriever.observer, collector]),
        )
        return SearchOutcome(query=query, scope=scope, results=results, diagnostics=collector.records)

    async def chat(self, question: str, top_k: int | None, param: SelectionParam) -> ChatOutcome:
        found = await self.search(question, top_k, param)
        # LLM clients block; keep them off the event loop.
        result = await asyncio.to_thread(self.answer_agent.run, question=question, chunks=found.results.chunks)
        logger.info(
            "chat answered: sources=%d scope=%s",
            len(found.results),
            found.scope.describe(),
        )
        return ChatOutcome(question=question, answer=str(result.data["answer"]), search=found, logs=result.logs)

    async def documents(self) -> List[SourceInfo]:
        index = self.retriever.index
        try:
            return await index.list_sources()
        except Exception as e:
            logger.error("listing sources failed on %s: %s", index.name, e, exc_info=True)
            raise UpstreamSearchFailure(index.name, e) from e
