## Hinglish translator built on the LLM pipeline
import threading
from typing import Callable, Sequence

from chainkit.agents.llm.base import LLMClient, ModelOptions
from chainkit.agents.llm.client import get_llm_client
from chainkit.agents.schemas import HINGLISH_SCHEMA, HinglishTranslation
from chainkit.logging_config import setup_logging
from chainkit.pipeline.core import LLMPipeline
from chainkit.pipeline.prompt import MessagesPlaceholder, PromptTemplate
from chainkit.pipeline.retry import RetryPolicy

logger = setup_logging(__name__)

SYSTEM_TRANSLATOR = """You are a Hinglish translator for the Indian market and a warm, curious friend.
Convert Hinglish (Romanized Hindi mixed with English) to proper Hindi and English.
- Casual chat: reply like a friend, with warmth
- Translation needed: give it naturally, plus cultural context
- Share 1-2 interesting facts when relevant (etymology, history, cultural parallels)
Always give a confidence score between 0 and 1.

{format_instructions}"""

SYSTEM_STREAM = """You're a curious friend chatting. Listen and respond naturally, \
with interesting context when it fits. Translate as needed."""

SYSTEM_CHAT = """You are a warm, curious friend who loves chatting about life, culture and languages.
You know Indian culture and Hinglish expressions well and enjoy sharing interesting facts.

You're texting with a friend. Be:
- Warm and supportive
- Curious about their stories
- Brief but engaging, like a real text conversation
- Happy to translate or explain Hinglish when asked (with origin and cultural context)
If they seem down, be encouraging. If they seem excited, celebrate with them."""

CHAT_TEMPERATURE = 0.8


class HinglishTranslator:
    def __init__(self, client: LLMClient | None = None, *, options: ModelOptions | None = None,
                 retry_policy: RetryPolicy | None = None):
        self.client = client or get_llm_client()
        options = options or ModelOptions(temperature=0.3)
        self.retry_policy = retry_policy or RetryPolicy.from_settings()

        self.translate_pipeline = LLMPipeline(
            PromptTemplate.from_messages([
                ("system", SYSTEM_TRANSLATOR),
                ("user", "{hinglish_text}"),
            ]),
            self.client,
            schema=HINGLISH_SCHEMA,
            options=options,
            retry_policy=self.retry_policy,
        )
        self.stream_pipeline = LLMPipeline(
            PromptTemplate.from_messages([
                ("system", SYSTEM_STREAM),
                ("user", "{text}"),
            ]),
            self.client,
            options=options,
        )
        self.chat_pipeline = LLMPipeline(
            PromptTemplate.from_messages([
                ("system", SYSTEM_CHAT),
                MessagesPlaceholder("history"),
                ("user", "{message}"),
            ]),
            self.client,
            options=options.model_copy(update={"temperature": CHAT_TEMPERATURE}),
        )

    def translate(self, text: str, *, cancel: threading.Event | None = None) -> HinglishTranslation:
        logger.info(f"Translating: {text!r}")
        values = self.translate_pipeline.invoke({"hinglish_text": text}, cancel=cancel)
        return HinglishTranslation(**values)

    def translate_with_retry(self, text: str, *, cancel: threading.Event | None = None) -> HinglishTranslation:
        values = self.translate_pipeline.invoke_with_retry({"hinglish_text": text}, cancel=cancel)
        return HinglishTranslation(**values)

    def translate_stream(self, text: str, on_token: Callable[[str], None] | None = None, *,
                         cancel: threading.Event | None = None) -> str:
        return self.stream_pipeline.stream({"text": text}, on_token, cancel=cancel)

    def chat(self, message: str, history: Sequence[tuple[str, str]] = (), *,
             cancel: threading.Event | None = None) -> str:
        return self.chat_pipeline.invoke({"message": message, "history": list(history)}, cancel=cancel)
