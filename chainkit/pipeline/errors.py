## Pipeline error taxonomy
"""
Every failure raised by the pipeline is a PipelineError subclass with a
closed ErrorKind. Callers match on the class (or on ``err.kind``), never on
message text.

Only TransportError is retryable. Template, parse and validation failures
are deterministic and come back identically on every attempt.
"""
from enum import Enum

from chainkit.pipeline.schema import SchemaViolation


class ErrorKind(str, Enum):
    TEMPLATE = "template"
    UNPARSEABLE_OUTPUT = "unparseable_output"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    MODEL_REQUEST = "model_request"
    RETRIES_EXHAUSTED = "retries_exhausted"
    CANCELLED = "cancelled"


class TransportFault(str, Enum):
    CONN_REFUSED = "conn_refused"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    RESET = "reset"
    SERVER = "server"


class PipelineError(Exception):
    kind: ErrorKind

    @property
    def retryable(self) -> bool:
        return False


class TemplateError(PipelineError):
    kind = ErrorKind.TEMPLATE


class UnparseableOutputError(PipelineError):
    kind = ErrorKind.UNPARSEABLE_OUTPUT

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


class OutputValidationError(PipelineError):
    kind = ErrorKind.VALIDATION

    def __init__(self, violation: SchemaViolation):
        super().__init__(violation.describe())
        self.violation = violation


class TransportError(PipelineError):
    kind = ErrorKind.TRANSPORT

    def __init__(self, fault: TransportFault, message: str):
        super().__init__(message)
        self.fault = fault

    @property
    def retryable(self) -> bool:
        return True


class ModelRequestError(PipelineError):
    """The server answered but rejected the request (unknown model, bad payload)."""
    kind = ErrorKind.MODEL_REQUEST

    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code


class RetriesExhaustedError(PipelineError):
    kind = ErrorKind.RETRIES_EXHAUSTED

    def __init__(self, last_error: PipelineError, attempts: int,
                 history: list[PipelineError] | None = None):
        super().__init__(f"Failed after {attempts} attempts: {last_error}")
        self.last_error = last_error
        self.attempts = attempts
        self.history = list(history) if history else [last_error]


class PipelineCancelled(PipelineError):
    kind = ErrorKind.CANCELLED


_TRANSPORT_MESSAGES = {
    TransportFault.CONN_REFUSED: "Cannot connect to the model server. Is Ollama running? Start it with: ollama serve",
    TransportFault.NOT_FOUND: "Model server host not found. Check the configured base URL.",
    TransportFault.TIMEOUT: "Request timed out. The model might be busy or still loading.",
    TransportFault.RESET: "Connection to the model server was lost. Please try again.",
    TransportFault.SERVER: "The model server reported an internal error. Please try again.",
}


def describe_error(err: Exception) -> str:
    """User-facing message; connectivity problems and bad answers never share wording."""
    if isinstance(err, RetriesExhaustedError):
        return f"{describe_error(err.last_error)} (gave up after {err.attempts} attempts)"
    if isinstance(err, TransportError):
        return _TRANSPORT_MESSAGES[err.fault]
    if isinstance(err, ModelRequestError):
        return f"The model server rejected the request ({err}). Check the model name with: ollama list"
    if isinstance(err, UnparseableOutputError):
        return "The model did not answer in the expected JSON format. Try again or use a stronger model."
    if isinstance(err, OutputValidationError):
        return f"The model's answer did not match the expected shape: {err.violation.describe()}"
    if isinstance(err, TemplateError):
        return f"Prompt is missing input: {err}"
    if isinstance(err, PipelineCancelled):
        return "Request cancelled."
    return str(err)
