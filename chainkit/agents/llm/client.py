from chainkit.settings import settings
from chainkit.agents.llm.base import LLMClient
from chainkit.agents.llm.ollama import OllamaOpenAIClient
from chainkit.agents.llm.groq import GroqOpenAIClient

def get_llm_client(model: str | None = None) -> LLMClient:
    if settings.LLM_PROVIDER == "groq":
        if not settings.GROQ_API_KEY:
            raise ValueError("LLM_PROVIDER=groq but GROQ_API_KEY is not set")
        return GroqOpenAIClient(
            api_key=settings.GROQ_API_KEY,
            base_url=settings.GROQ_BASE_URL,
            model=model or settings.GROQ_MODEL,
            timeout=settings.llm_timeout_seconds,
        )

    return OllamaOpenAIClient(
        base_url = settings.ollama_base_url,
        model = model or settings.ollama_model,
        timeout = settings.llm_timeout_seconds,
    )
