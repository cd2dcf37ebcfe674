## LLM pipeline: render prompt -> call model client -> parse response
"""
One shared path (render, call, parse) with three ways to run it:

* ``invoke``            single call, plain text or validated dict
* ``stream``            plain-text only, increments pushed to a sink in arrival order
* ``invoke_with_retry`` ``invoke`` wrapped in a RetryPolicy

The pipeline keeps no per-call state on ``self``, so one instance can be
shared between threads. Nothing is cached; every call hits the model.
"""
import socket
import threading
import time
from typing import Any, Callable, Iterator, Mapping

from chainkit.agents.llm.base import LLMClient, ModelOptions
from chainkit.logging_config import setup_logging
from chainkit.pipeline.errors import (
    PipelineCancelled,
    PipelineError,
    RetriesExhaustedError,
    TransportError,
    TransportFault,
)
from chainkit.pipeline.parser import StructuredParser, TextParser
from chainkit.pipeline.prompt import Message, PromptTemplate, render
from chainkit.pipeline.retry import RetryPolicy, RetryState
from chainkit.pipeline.schema import StructuredSchema
from chainkit.settings import settings

logger = setup_logging(__name__)

FORMAT_INSTRUCTIONS = "format_instructions"


def map_os_error(exc: OSError) -> PipelineError | None:
    """Builtin socket errors raised by a bare client; None if not a transport fault."""
    if isinstance(exc, socket.gaierror):
        return TransportError(TransportFault.NOT_FOUND, f"Host not found: {exc}")
    if isinstance(exc, ConnectionRefusedError):
        return TransportError(TransportFault.CONN_REFUSED, f"Connection refused: {exc}")
    if isinstance(exc, TimeoutError):
        return TransportError(TransportFault.TIMEOUT, f"Request timed out: {exc}")
    if isinstance(exc, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        return TransportError(TransportFault.RESET, f"Connection lost: {exc}")
    return None


def _check_cancel(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise PipelineCancelled("Cancelled by caller")


class LLMPipeline:
    def __init__(
        self,
        template: PromptTemplate,
        client: LLMClient,
        *,
        schema: StructuredSchema | None = None,
        options: ModelOptions | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self.client = client
        self.options = options or ModelOptions(temperature=settings.llm_temperature)
        self.retry_policy = retry_policy
        self.schema = schema

        if schema is not None:
            self.parser = StructuredParser(schema)
            # fill {format_instructions} from the schema unless the caller already did
            if FORMAT_INSTRUCTIONS in template.input_variables:
                template = template.partial(**{FORMAT_INSTRUCTIONS: schema.format_instructions()})
        else:
            self.parser = TextParser()
        self.template = template

    @property
    def structured(self) -> bool:
        return self.parser.structured

    def render(self, bindings: Mapping[str, Any] | None = None) -> list[Message]:
        return render(self.template, bindings)

    def _send(self, messages: list[Message]) -> str:
        try:
            return self.client.send(messages, self.options)
        except OSError as e:
            mapped = map_os_error(e)
            if mapped is None:
                raise
            raise mapped from e

    def invoke(self, bindings: Mapping[str, Any] | None = None, *,
               cancel: threading.Event | None = None) -> str | dict[str, Any]:
        _check_cancel(cancel)
        messages = self.render(bindings)
        raw = self._send(messages)
        # a cancel that arrives mid-call still discards the answer
        _check_cancel(cancel)
        return self.parser.parse(raw)

    def iter_tokens(self, bindings: Mapping[str, Any] | None = None, *,
                    cancel: threading.Event | None = None) -> Iterator[str]:
        if self.structured:
            raise TypeError("Streaming is only supported for plain-text pipelines; use invoke()")

        _check_cancel(cancel)
        messages = self.render(bindings)
        increments = None
        try:
            increments = self.client.send_streaming(messages, self.options)
            for piece in increments:
                _check_cancel(cancel)
                yield piece
        except OSError as e:
            mapped = map_os_error(e)
            if mapped is None:
                raise
            raise mapped from e
        finally:
            close = getattr(increments, "close", None)
            if close is not None:
                close()

    def stream(self, bindings: Mapping[str, Any] | None = None,
               on_token: Callable[[str], None] | None = None, *,
               cancel: threading.Event | None = None) -> str:
        """Deliver each increment to ``on_token`` as it arrives; return the concatenation."""
        if self.structured:
            raise TypeError("Streaming is only supported for plain-text pipelines; use invoke()")

        pieces: list[str] = []
        for piece in self.iter_tokens(bindings, cancel=cancel):
            if on_token is not None:
                on_token(piece)
            pieces.append(piece)
        return "".join(pieces)

    def invoke_with_retry(self, bindings: Mapping[str, Any] | None = None,
                          retry_policy: RetryPolicy | None = None, *,
                          cancel: threading.Event | None = None) -> str | dict[str, Any]:
        policy = retry_policy or self.retry_policy or RetryPolicy.from_settings()
        state = RetryState(max_attempts=policy.max_attempts)

        while True:
            logger.debug(f"[pipeline] attempt {state.attempt}/{state.max_attempts}")
            try:
                return self.invoke(bindings, cancel=cancel)
            except PipelineCancelled:
                raise
            except PipelineError as err:
                state.record_failure(err)

                # deterministic failures surface as-is, never wrapped
                if not err.retryable:
                    raise

                if not policy.should_retry(err, state.attempt, state.max_attempts):
                    raise RetriesExhaustedError(err, state.attempt, state.errors) from err

                delay = policy.delay_before_next_attempt(state.attempt)
                logger.debug(f"[pipeline] attempt {state.attempt} failed ({err}); retrying in {delay:.2f}s")
                if cancel is not None:
                    if cancel.wait(delay):
                        raise PipelineCancelled("Cancelled by caller during retry delay") from err
                elif delay > 0:
                    time.sleep(delay)
                state.advance()
