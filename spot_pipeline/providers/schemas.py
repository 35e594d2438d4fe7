"""
Response schemas for the text-inference provider.

Model output is free text that embeds one JSON value, sometimes wrapped in
code fences or surrounded by prose. `parse_response` validates the embedded
JSON values in order and returns the first that matches the schema; anything
else is a ParseError. No attempt is made to repair malformed JSON.
"""

import json
from typing import Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError, field_validator

from spot_pipeline.errors import ParseError
from spot_pipeline.years import year_from_era

T = TypeVar("T", bound=BaseModel)

_decoder = json.JSONDecoder()


class LocaleText(BaseModel):
    """Name and description for one locale."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)


class TranslationResponse(RootModel[dict[str, LocaleText]]):
    """{"ja": {"name": ..., "description": ...}, "en": {...}, ...}"""


class CategoryResponse(RootModel[dict[str, Optional[str]]]):
    """{"<id>": "nature", "<id>": null, ...}"""


class YearEstimate(BaseModel):
    """Year as era plus non-negative magnitude."""
    model_config = ConfigDict(extra="ignore")

    era: str
    year: int = Field(ge=0)

    @field_validator("era", mode="before")
    @classmethod
    def normalize_era(cls, v):
        era = str(v).strip().upper().replace(".", "")
        if era in ("BC", "BCE"):
            return "BC"
        if era in ("AD", "CE"):
            return "AD"
        raise ValueError(f"unknown era {v!r}")

    def to_signed(self) -> int:
        return year_from_era(self.era, self.year)


class YearResponse(RootModel[dict[str, Union[YearEstimate, int, str, None]]]):
    """{"<id>": {"era": "BC", "year": 2500}, "<id>": 1603, "<id>": "300 BC", "<id>": null}"""


def iter_json(text: str):
    """Yield every top-level JSON object or array embedded in `text`, in order."""
    index = 0
    while index < len(text):
        if text[index] not in "{[":
            index += 1
            continue
        try:
            value, end = _decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            index += 1
            continue
        yield value
        index = end


def extract_json(text: str):
    """
    Return the first JSON object or array embedded in `text`.

    Raises:
        ParseError: if no JSON value can be decoded
    """
    if not text:
        raise ParseError("Empty response")

    for value in iter_json(text):
        return value

    raise ParseError(f"No JSON payload in response: {text[:120]!r}")


def parse_response(text: str, schema: type[T]) -> T:
    """
    Validate the first embedded JSON value that matches `schema`.

    Values that come before the payload, such as a bracketed reference in
    leading prose, are skipped when they do not validate.

    Raises:
        ParseError: if no JSON value is present or none matches `schema`
    """
    if not text:
        raise ParseError("Empty response")

    error = None
    for payload in iter_json(text):
        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            if error is None:
                error = e

    if error is None:
        raise ParseError(f"No JSON payload in response: {text[:120]!r}")
    raise ParseError(f"{schema.__name__} validation failed: {error.error_count()} error(s)") from error
