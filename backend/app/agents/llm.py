from __future__ import annotations

import asyncio
from typing import Any, Dict

from app.core.config import settings


class LLMClient:
    def complete(self, *, system: str, prompt: str) -> str:
        raise NotImplementedError


class MockLLMClient(LLMClient):
    def complete(self, *, system: str, prompt: str) -> str:
        # Deterministic placeholder so the app works without any LLM.
        return (
            "[MOCK answer]\n"
            f"{prompt.strip()[:800]}\n"
            "\n(set MOCK_LLM=0 and the LLM_* environment variables to use a real model)"
        )


class AutoGenLLMClient(LLMClient):
    """OpenAI-compatible chat completion through AutoGen 0.4+."""

    def __init__(self) -> None:
        if not settings.llm_api_key:
            raise RuntimeError("LLM_API_KEY is missing")
        try:
            from autogen_agentchat.agents import AssistantAgent  # type: ignore
            from autogen_ext.models.openai import OpenAIChatCompletionClient  # type: ignore
        except Exception as e:  # pragma: no cover
            raise RuntimeError("AutoGen is not installed (need autogen-agentchat and autogen-ext[openai])") from e

        self._AssistantAgent = AssistantAgent
        self._ClientCls = OpenAIChatCompletionClient

    def _model_client(self):
        from autogen_core.models import ModelInfo  # type: ignore

        model_kwargs: Dict[str, Any] = {
            "model": settings.llm_model,
            "api_key": settings.llm_api_key,
            "temperature": settings.llm_temperature,
        }
        if settings.llm_base_url:
            model_kwargs["base_url"] = settings.llm_base_url
        # Non-OpenAI model IDs behind compatible gateways need explicit ModelInfo.
        model_kwargs["model_info"] = ModelInfo(
            family="unknown",
            vision=False,
            function_calling=False,
            json_output=False,
            structured_output=False,
        )
        return self._ClientCls(**model_kwargs)

    def complete(self, *, system: str, prompt: str) -> str:
        model_client = self._model_client()
        agent = self._AssistantAgent(
            name="AnswerAssistant",
            system_message=system,
            model_client=model_client,
        )

        async def _run() -> str:
            try:
                result = await agent.run(task=prompt)
            finally:
                await model_client.close()
            messages = getattr(result, "messages", None)
            if messages:
                last = messages[-1]
                content = getattr(last, "content", None)
                if content is not None:
                    return str(content)
                return str(last)
            return str(result)

        # Called from a worker thread, so there is no running loop here.
        return asyncio.run(_run())


def get_llm_client() -> LLMClient:
    if settings.mock_llm or not settings.llm_api_key:
        return MockLLMClient()
    return AutoGenLLMClient()
