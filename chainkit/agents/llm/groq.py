from typing import Iterator, Sequence

import httpx
import openai
from openai import OpenAI

from chainkit.agents.llm.base import LLMClient, ModelOptions, to_openai_messages
from chainkit.agents.llm.ollama import map_httpx_error
from chainkit.logging_config import setup_logging
from chainkit.pipeline.errors import ModelRequestError, PipelineError, TransportError, TransportFault
from chainkit.pipeline.prompt import Message

logger = setup_logging(__name__)


def map_openai_error(exc: openai.OpenAIError) -> PipelineError:
    if isinstance(exc, openai.APITimeoutError):
        return TransportError(TransportFault.TIMEOUT, f"Request timed out: {exc}")
    if isinstance(exc, openai.APIConnectionError):
        if isinstance(exc.__cause__, httpx.HTTPError):
            return map_httpx_error(exc.__cause__)
        return TransportError(TransportFault.CONN_REFUSED, f"Connection failed: {exc}")
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500 or exc.status_code == 429:
            return TransportError(TransportFault.SERVER, f"Server error {exc.status_code}: {exc.message}")
        return ModelRequestError(exc.status_code, exc.message)
    return TransportError(TransportFault.SERVER, f"{type(exc).__name__}: {exc}")


class GroqOpenAIClient(LLMClient):
    def __init__(self, *, api_key: str, base_url: str, model: str, timeout: float = 120.0,
                 http_client: httpx.Client | None = None):
        # retries belong to the pipeline, not the SDK
        self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout,
                             max_retries=0, http_client=http_client)
        self.model = model

    def _kwargs(self, messages: Sequence[Message], options: ModelOptions) -> dict:
        kwargs = {
            "model": self.resolve_model(options),
            "temperature": options.temperature,
            "messages": to_openai_messages(messages),
        }
        if options.max_tokens is not None:
            kwargs["max_tokens"] = options.max_tokens
        return kwargs

    def send(self, messages: Sequence[Message], options: ModelOptions) -> str:
        kwargs = self._kwargs(messages, options)
        try:
            resp = self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise map_openai_error(e) from e

        if not resp.choices:
            raise TransportError(TransportFault.SERVER, "Malformed response (no choices)")
        content = resp.choices[0].message.content or ""
        chars_in = sum(len(m.content) for m in messages)
        logger.info(f"[LLM] model={kwargs['model']} chars_in={chars_in} chars_out={len(content)}")
        return content

    def send_streaming(self, messages: Sequence[Message], options: ModelOptions) -> Iterator[str]:
        kwargs = self._kwargs(messages, options)
        chars_out = 0
        try:
            stream = self.client.chat.completions.create(stream=True, **kwargs)
            for chunk in stream:
                if not chunk.choices:
                    continue
                piece = chunk.choices[0].delta.content
                if piece:
                    chars_out += len(piece)
                    yield piece
        except openai.OpenAIError as e:
            raise map_openai_error(e) from e

        logger.info(f"[LLM] model={kwargs['model']} chars_out={chars_out} (stream)")
