from chainkit.agents.llm.base import LLMClient, ModelOptions
from chainkit.agents.llm.client import get_llm_client
from chainkit.pipeline.core import LLMPipeline
from chainkit.pipeline.prompt import PromptTemplate

TUTOR_PROMPT = PromptTemplate.from_messages([
    ("system", "You are a helpful AI engineering tutor."),
    ("user", "Explain {topic} in 2 sentences."),
])


def build_tutor_pipeline(client: LLMClient | None = None, temperature: float = 0.7) -> LLMPipeline:
    return LLMPipeline(TUTOR_PROMPT, client or get_llm_client(),
                       options=ModelOptions(temperature=temperature))


def explain_topic(topic: str, client: LLMClient | None = None) -> str:
    return build_tutor_pipeline(client).invoke({"topic": topic})
