## Response parsers: raw model text -> plain string or validated dict
import json
from typing import Any

from chainkit.pipeline.errors import OutputValidationError, UnparseableOutputError
from chainkit.pipeline.schema import SchemaViolation, StructuredSchema


class TextParser:
    structured = False

    def parse(self, raw_text: str) -> str:
        return raw_text.strip()


class StructuredParser:
    structured = True

    def __init__(self, schema: StructuredSchema):
        self.schema = schema

    def format_instructions(self) -> str:
        return self.schema.format_instructions()

    def parse(self, raw_text: str) -> dict[str, Any]:
        candidate = decode_json(raw_text)
        result = self.schema.validate(candidate)
        if isinstance(result, SchemaViolation):
            raise OutputValidationError(result)
        return result


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        # drop the opening fence line (``` or ```json)
        newline = stripped.find("\n")
        stripped = "" if newline == -1 else stripped[newline + 1:]
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def extract_first_json_object(text: str) -> str | None:
    """
    Extract the first complete top-level JSON object using brace counting.
    Braces inside string literals are ignored.
    Returns the first balanced { ... } substring, or None if not found.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


def decode_json(raw_text: str) -> Any:
    """Decode model output as JSON, tolerating code fences and chatter around one object."""
    text = _strip_code_fence(raw_text)

    # 1) Whole answer is JSON
    try:
        return json.loads(text)
    except ValueError:
        pass

    # 2) JSON object embedded in prose
    embedded = extract_first_json_object(text)
    if embedded:
        try:
            return json.loads(embedded)
        except ValueError:
            pass

    preview = raw_text.strip()[:80]
    raise UnparseableOutputError(f"Model output is not valid JSON: {preview!r}", raw_text)
