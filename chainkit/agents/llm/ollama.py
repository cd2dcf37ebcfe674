import json
from typing import Iterator, Sequence

import httpx

from chainkit.agents.llm.base import LLMClient, ModelOptions, to_openai_messages
from chainkit.logging_config import setup_logging
from chainkit.pipeline.errors import ModelRequestError, PipelineError, TransportError, TransportFault
from chainkit.pipeline.prompt import Message

logger = setup_logging(__name__)

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "no address associated",
    "temporary failure in name resolution",
)


def map_httpx_error(exc: Exception) -> PipelineError:
    """Translate an httpx failure into the pipeline error taxonomy."""
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(TransportFault.TIMEOUT, f"Request timed out: {exc}")
    if isinstance(exc, httpx.ConnectError):
        msg = str(exc).lower()
        if any(marker in msg for marker in _DNS_MARKERS):
            return TransportError(TransportFault.NOT_FOUND, f"Host not found: {exc}")
        return TransportError(TransportFault.CONN_REFUSED, f"Connection refused: {exc}")
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status >= 500 or status == 429:
            return TransportError(TransportFault.SERVER, f"Server error {status}")
        return ModelRequestError(status, _error_detail(exc.response))
    if isinstance(exc, (httpx.NetworkError, httpx.RemoteProtocolError)):
        return TransportError(TransportFault.RESET, f"Connection lost: {exc}")
    return TransportError(TransportFault.SERVER, f"{type(exc).__name__}: {exc}")


def _error_detail(response: httpx.Response) -> str:
    try:
        err = response.json().get("error", response.text)
    except (ValueError, AttributeError):
        return response.text
    if isinstance(err, dict):
        return err.get("message", str(err))
    return str(err)


def _completion_content(data) -> str:
    """Assistant text of a chat completion body; any other shape is a server fault."""
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices, list):
        raise TransportError(TransportFault.SERVER, f"Malformed response (no choices): {data!r:.200}")
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise TransportError(TransportFault.SERVER, f"Malformed response (no message): {data!r:.200}")
    content = message.get("content") or ""
    if not isinstance(content, str):
        raise TransportError(TransportFault.SERVER, f"Malformed response (non-text content): {data!r:.200}")
    return content


def _chunk_pieces(chunk) -> list[str]:
    if not isinstance(chunk, dict):
        raise TransportError(TransportFault.SERVER, f"Malformed stream chunk: {chunk!r:.200}")
    if "error" in chunk:
        raise TransportError(TransportFault.SERVER, f"Stream error: {chunk['error']}")
    choices = chunk.get("choices") or []
    if not isinstance(choices, list):
        raise TransportError(TransportFault.SERVER, f"Malformed stream chunk: {chunk!r:.200}")
    pieces = []
    for choice in choices:
        delta = choice.get("delta") if isinstance(choice, dict) else None
        piece = delta.get("content") if isinstance(delta, dict) else None
        if isinstance(piece, str):
            pieces.append(piece)
    return pieces


class OllamaOpenAIClient(LLMClient):
    def __init__(self, base_url: str, model: str, *, timeout: float = 120.0,
                 transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    def _http(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def _payload(self, messages: Sequence[Message], options: ModelOptions, stream: bool) -> dict:
        # Ollama OpenAI-compatible endpoint
        # POST {base_url}/chat/completions with OpenAI message format
        payload = {
            "model": self.resolve_model(options),
            "messages": to_openai_messages(messages),
            "temperature": options.temperature,
            "stream": stream,
        }
        if options.max_tokens is not None:
            payload["max_tokens"] = options.max_tokens
        if options.context_window is not None:
            payload["options"] = {"num_ctx": options.context_window}
        return payload

    @property
    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            # OpenAI-compatible clients require an api key field; Ollama ignores it
            "Authorization": "Bearer ollama",
        }

    def send(self, messages: Sequence[Message], options: ModelOptions) -> str:
        url = f"{self.base_url}/chat/completions"
        payload = self._payload(messages, options, stream=False)

        try:
            with self._http() as client:
                r = client.post(url, json=payload, headers=self._headers)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise map_httpx_error(e) from e
        except ValueError as e:
            raise TransportError(TransportFault.SERVER, f"Invalid JSON from server: {e}") from e

        content = _completion_content(data)
        chars_in = sum(len(m.content) for m in messages)
        logger.info(f"[LLM] model={payload['model']} chars_in={chars_in} chars_out={len(content)}")
        return content

    def send_streaming(self, messages: Sequence[Message], options: ModelOptions) -> Iterator[str]:
        url = f"{self.base_url}/chat/completions"
        payload = self._payload(messages, options, stream=True)
        chars_out = 0

        try:
            with self._http() as client:
                with client.stream("POST", url, json=payload, headers=self._headers) as r:
                    if r.is_error:
                        r.read()
                    r.raise_for_status()

                    # server-sent events: "data: {...}" lines, terminated by "data: [DONE]"
                    for line in r.iter_lines():
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break
                        for piece in _chunk_pieces(json.loads(data)):
                            if piece:
                                chars_out += len(piece)
                                yield piece
        except httpx.HTTPError as e:
            raise map_httpx_error(e) from e
        except json.JSONDecodeError as e:
            raise TransportError(TransportFault.SERVER, f"Invalid stream chunk: {e}") from e

        logger.info(f"[LLM] model={payload['model']} chars_out={chars_out} (stream)")
