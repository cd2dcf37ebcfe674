## Prompt templates: role-tagged fragments with {name} placeholders
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, NamedTuple, Sequence

from chainkit.pipeline.errors import TemplateError

ROLES = ("system", "user", "assistant")
_ROLE_ALIASES = {"human": "user", "ai": "assistant"}

# {{ and }} are literal braces; {identifier} is a placeholder; anything else is literal text
_TOKEN = re.compile(r"\{\{|\}\}|\{([A-Za-z_][A-Za-z0-9_]*)\}")


class Message(NamedTuple):
    role: str
    content: str


def normalize_role(role: str) -> str:
    r = _ROLE_ALIASES.get(role, role)
    if r not in ROLES:
        raise TemplateError(f"Unknown message role: {role!r}")
    return r


@dataclass(frozen=True)
class MessagesPlaceholder:
    """Expands to a list of (role, text) pairs supplied at render time."""
    name: str
    optional: bool = True


@dataclass(frozen=True)
class Fragment:
    role: str
    text: str

    @property
    def placeholders(self) -> list[str]:
        return [m.group(1) for m in _TOKEN.finditer(self.text) if m.group(1)]

    def substitute(self, values: Mapping[str, Any]) -> str:
        def repl(m: re.Match) -> str:
            tok = m.group(0)
            if tok == "{{":
                return "{"
            if tok == "}}":
                return "}"
            return str(values[m.group(1)])

        # single pass, substituted values are never re-scanned
        return _TOKEN.sub(repl, self.text)


@dataclass(frozen=True)
class PromptTemplate:
    messages: tuple[Fragment | MessagesPlaceholder, ...]
    partials: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "messages", tuple(self.messages))
        object.__setattr__(self, "partials", MappingProxyType(dict(self.partials)))
        if not self.messages:
            raise TemplateError("Prompt template needs at least one message")

    @classmethod
    def from_messages(cls, messages: Iterable[tuple[str, str] | MessagesPlaceholder]) -> "PromptTemplate":
        frags = []
        for m in messages:
            if isinstance(m, MessagesPlaceholder):
                frags.append(m)
            else:
                role, text = m
                frags.append(Fragment(normalize_role(role), text))
        return cls(tuple(frags))

    @property
    def placeholders(self) -> list[str]:
        """Every variable name in the template, in order of first appearance."""
        seen: list[str] = []
        for m in self.messages:
            names = [m.name] if isinstance(m, MessagesPlaceholder) else m.placeholders
            for n in names:
                if n not in seen:
                    seen.append(n)
        return seen

    @property
    def input_variables(self) -> list[str]:
        return [n for n in self.placeholders if n not in self.partials]

    def partial(self, **values: Any) -> "PromptTemplate":
        known = set(self.placeholders)
        for name in values:
            if name not in known:
                raise TemplateError(f"Template has no placeholder named '{name}'")
            if name in self.partials:
                raise TemplateError(f"Partial '{name}' is already bound")
        return PromptTemplate(self.messages, {**self.partials, **values})


def render(template: PromptTemplate, bindings: Mapping[str, Any] | None = None) -> list[Message]:
    bindings = bindings or {}

    rebound = [n for n in bindings if n in template.partials]
    if rebound:
        raise TemplateError(f"Cannot rebind partial values: {rebound}")

    values = {**template.partials, **bindings}
    optional_history = {
        m.name for m in template.messages
        if isinstance(m, MessagesPlaceholder) and m.optional
    }
    missing = [n for n in template.placeholders if n not in values and n not in optional_history]
    if missing:
        err = TemplateError(f"Missing values for placeholders: {missing}")
        err.missing = missing
        raise err

    out: list[Message] = []
    for m in template.messages:
        if isinstance(m, MessagesPlaceholder):
            out.extend(_history(m.name, values.get(m.name) or ()))
        else:
            out.append(Message(m.role, m.substitute(values)))
    return out


def _history(name: str, items: Sequence) -> list[Message]:
    msgs = []
    for item in items:
        try:
            role, text = item
        except (TypeError, ValueError):
            raise TemplateError(f"History '{name}' must hold (role, text) pairs, got {item!r}") from None
        msgs.append(Message(normalize_role(role), str(text)))
    return msgs
