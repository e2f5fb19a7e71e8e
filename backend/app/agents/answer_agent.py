from __future__ import annotations

from typing import Sequence

from app.agents.llm import LLMClient, get_llm_client
from app.agents.types import AgentResult
from rag.context import build_context
from rag.types import ContentChunk

NO_SOURCES_ANSWER = (
    "I could not find anything relevant to this question in the selected documents. "
    "Try rephrasing it or selecting other documents."
)


class AnswerAgent:
    name = "AnswerAgent"

    def __init__(self, llm: LLMClient | None = None, *, context_max_chars: int = 12000) -> None:
        self._llm = llm
        self.context_max_chars = context_max_chars

    @property
    def llm(self) -> LLMClient:
        if self._llm is None:
            self._llm = get_llm_client()
        return self._llm

    def run(self, *, question: str, chunks: Sequence[ContentChunk]) -> AgentResult:
        if not chunks:
            return AgentResult(
                data={"answer": NO_SOURCES_ANSWER, "context": ""},
                logs=[
                    {
                        "agent": self.name,
                        "action": "no_sources",
                        "summary": "no chunks left after filtering; LLM not called",
                        "output_preview": None,
                    }
                ],
            )

        context = build_context(chunks, max_chars=self.context_max_chars)
        system = (
            "You answer questions using only the provided document excerpts. "
            "Cite the document name for every claim. If the excerpts do not contain "
            "the answer, say so instead of guessing."
        )
        prompt = f"""Question: {question}

Document excerpts (grouped by document):
{context}
"""
        answer = self.llm.complete(system=system, prompt=prompt)
        logs = [
            {
                "agent": self.name,
                "action": "answer",
                "summary": f"answered from {len(chunks)} chunks",
                "output_preview": answer[:500],
            }
        ]
        return AgentResult(data={"answer": answer, "context": context}, logs=logs)
