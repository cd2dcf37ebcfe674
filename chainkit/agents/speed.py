## Model speed comparison
"""
Runs one short plain-text prompt against several models and reports wall-clock
latency per model, fastest first. Models that fail (not pulled, server down)
are listed separately with a user-facing reason.
"""
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from chainkit.agents.llm.base import LLMClient, ModelOptions
from chainkit.agents.llm.client import get_llm_client
from chainkit.logging_config import setup_logging
from chainkit.pipeline.core import LLMPipeline
from chainkit.pipeline.errors import PipelineError, describe_error
from chainkit.pipeline.prompt import PromptTemplate

logger = setup_logging(__name__)

DEFAULT_PROMPT = PromptTemplate.from_messages([
    ("system", "You are a helpful assistant."),
    ("user", "Say hello briefly"),
])

REALTIME_SECONDS = 2.0
GOOD_SECONDS = 5.0
SAMPLE_CHARS = 50


@dataclass
class ModelTiming:
    model: str
    duration: float  # seconds
    success: bool
    description: str = ""
    sample: str = ""
    error: str = ""


@dataclass
class SpeedReport:
    results: list[ModelTiming] = field(default_factory=list)

    @property
    def ranked(self) -> list[ModelTiming]:
        return sorted((r for r in self.results if r.success), key=lambda r: r.duration)

    @property
    def failed(self) -> list[ModelTiming]:
        return [r for r in self.results if not r.success]

    @property
    def fastest(self) -> ModelTiming | None:
        ranked = self.ranked
        return ranked[0] if ranked else None

    def verdict(self) -> str | None:
        """realtime / good / slow for the fastest model, None if nothing succeeded."""
        fastest = self.fastest
        if fastest is None:
            return None
        if fastest.duration < REALTIME_SECONDS:
            return "realtime"
        if fastest.duration < GOOD_SECONDS:
            return "good"
        return "slow"


def time_model(model: str, client: LLMClient, prompt: PromptTemplate = DEFAULT_PROMPT,
               temperature: float = 0.7, clock: Callable[[], float] = time.perf_counter) -> ModelTiming:
    pipeline = LLMPipeline(prompt, client, options=ModelOptions(model=model, temperature=temperature))

    start = clock()
    try:
        text = pipeline.invoke()
    except PipelineError as e:
        return ModelTiming(model, clock() - start, False, error=describe_error(e))
    duration = clock() - start

    sample = text if len(text) <= SAMPLE_CHARS else text[:SAMPLE_CHARS] + "..."
    return ModelTiming(model, duration, True, sample=sample)


def compare_models(models: Sequence[str | tuple[str, str]], client: LLMClient | None = None, *,
                   prompt: PromptTemplate = DEFAULT_PROMPT,
                   clock: Callable[[], float] = time.perf_counter) -> SpeedReport:
    """``models`` holds names or (name, description) pairs; each is called once, in order."""
    client = client or get_llm_client()
    report = SpeedReport()

    for entry in models:
        name, description = (entry, "") if isinstance(entry, str) else entry
        timing = time_model(name, client, prompt, clock=clock)
        timing.description = description
        if timing.success:
            logger.info(f"{name}: {timing.duration * 1000:.0f}ms")
        else:
            logger.warning(f"{name}: failed ({timing.error})")
        report.results.append(timing)

    return report
