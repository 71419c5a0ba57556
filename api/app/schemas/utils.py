"""
Utility functions and base classes for schema validation.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for sync wire schemas: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


PARTS_OF_SPEECH = (
    'noun', 'verb', 'adjective', 'adverb', 'pronoun',
    'preposition', 'conjunction', 'interjection',
)

GENDERS = ('masculine', 'feminine', 'neutral')


def normalize_part_of_speech(v: Optional[str]) -> Optional[str]:
    """
    Normalize a part_of_speech value to lowercase.

    Empty values become None.

    Raises:
        ValueError: If the value is not a known part of speech
    """
    if v is None:
        return None
    if not isinstance(v, str):
        raise ValueError(f"part_of_speech must be a string. Got: {v!r}")

    v_normalized = v.strip().lower()
    if not v_normalized:
        return None

    if v_normalized in PARTS_OF_SPEECH:
        return v_normalized

    raise ValueError(f"part_of_speech must be one of: {', '.join(PARTS_OF_SPEECH)}. Got: {v}")


def normalize_gender(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    if not isinstance(v, str):
        raise ValueError(f"gender must be a string. Got: {v!r}")
    if not v.strip():
        return None
    v_normalized = v.strip().lower()
    if v_normalized not in GENDERS:
        raise ValueError(f"gender must be one of: {', '.join(GENDERS)}, or null. Got: {v}")
    return v_normalized
