## Base Model Client Interface
from abc import ABC, abstractmethod
from typing import Iterator, Sequence

from pydantic import BaseModel, ConfigDict, Field

from chainkit.pipeline.prompt import Message


class ModelOptions(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model: str | None = None  # None -> the client's configured model
    temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, ge=1)
    context_window: int | None = Field(default=None, ge=1)


class LLMClient(ABC):
    """
    The external model collaborator.

    Implementations translate their SDK / HTTP failures into
    chainkit.pipeline.errors types (TransportError, ModelRequestError) so the
    pipeline never sees library exceptions.
    """
    model: str

    @abstractmethod
    def send(self, messages: Sequence[Message], options: ModelOptions) -> str:
        raise NotImplementedError

    @abstractmethod
    def send_streaming(self, messages: Sequence[Message], options: ModelOptions) -> Iterator[str]:
        raise NotImplementedError

    def resolve_model(self, options: ModelOptions) -> str:
        return options.model or self.model


def to_openai_messages(messages: Sequence[Message]) -> list[dict]:
    return [{"role": m.role, "content": m.content} for m in messages]
