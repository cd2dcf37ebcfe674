## Schemas for structured agent output
from pydantic import BaseModel, Field
from typing import List, Optional

from chainkit.pipeline.schema import FieldKind, FieldSpec, StructuredSchema

HINGLISH_SCHEMA = StructuredSchema((
    FieldSpec("translated_text", FieldKind.STRING,
              description="the translation in proper Hindi and English"),
    FieldSpec("detected_language", FieldKind.STRING,
              description="e.g. Hinglish, Hindi, English"),
    FieldSpec("confidence", FieldKind.NUMBER, minimum=0, maximum=1,
              description="how sure you are about the translation"),
    FieldSpec("alternative_translations", FieldKind.ARRAY, item_kind=FieldKind.STRING,
              optional=True),
    FieldSpec("cultural_notes", FieldKind.STRING, optional=True,
              description="cultural context, etymology or an interesting fact"),
))

class HinglishTranslation(BaseModel):
    translated_text: str
    detected_language: str
    confidence: float = Field(ge=0, le=1)
    alternative_translations: List[str] = Field(default_factory=list)
    cultural_notes: Optional[str] = None
