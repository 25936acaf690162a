"""LLM-backed summarizer."""
from logging import Logger
from typing import Sequence

from scitrera_app_framework import get_logger, Variables

from ...models import Memory
from ..llm import LLMService, EXT_LLM_SERVICE
from .base import Summarizer, SummarizerPluginBase

SUMMARIZER_PROFILE = "consolidation"
SUMMARY_MAX_TOKENS = 512

SYSTEM_PROMPT = """You consolidate an AI agent's memory notes.
Merge the notes below into one concise memory that keeps every distinct fact,
decision and instruction. Drop repetition. Do not invent information.
Reply with the consolidated memory text only."""


def format_memories_for_prompt(memories: Sequence[Memory]) -> str:
    lines = []
    for memory in memories:
        tags = f" [{', '.join(memory.tags)}]" if memory.tags else ""
        lines.append(f"- ({memory.type}){tags} {memory.content}")
    return "\n".join(lines)


class LLMSummarizer(Summarizer):
    """Summarizes through the LLM service's ``consolidation`` profile."""

    def __init__(self, llm_service: LLMService, v: Variables = None, profile: str = SUMMARIZER_PROFILE):
        self.llm_service = llm_service
        self.profile = profile
        self.logger = get_logger(v, name=self.__class__.__name__)

    async def summarize(self, memories: Sequence[Memory]) -> str:
        if not memories:
            raise ValueError("Nothing to summarize")

        self.logger.debug("Summarizing %d memories (profile=%s)", len(memories), self.profile)
        summary = await self.llm_service.synthesize(
            prompt=format_memories_for_prompt(memories),
            system=SYSTEM_PROMPT,
            max_tokens=SUMMARY_MAX_TOKENS,
            profile=self.profile,
        )
        summary = (summary or "").strip()
        if not summary:
            raise ValueError("LLM returned an empty summary")
        return summary


class DefaultSummarizerPlugin(SummarizerPluginBase):
    PROVIDER_NAME = 'default'

    def initialize(self, v: Variables, logger: Logger) -> Summarizer:
        llm_service: LLMService = self.get_extension(EXT_LLM_SERVICE, v)
        return LLMSummarizer(llm_service=llm_service, v=v)
