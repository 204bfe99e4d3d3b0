"""
Pull structured JSON out of free-form LLM text.

Models often wrap the requested JSON in prose or code fences. The parser
looks for the first position where a complete JSON value of the wanted
kind decodes, and gives up otherwise; the caller's fallback is the
safety net, not parser cleverness.
"""

import json
from typing import Any, Literal, TypeVar

from pydantic import TypeAdapter, ValidationError

from medinventory.services.errors import MalformedResponseError

T = TypeVar("T")

_decoder = json.JSONDecoder()

_OPENERS = {"array": "[", "object": "{"}


def extract_json(text: str, kind: Literal["array", "object"]) -> Any:
    """
    Decode the first JSON array or object embedded in text.

    Raises:
        MalformedResponseError: If no decodable value of that kind exists
    """
    opener = _OPENERS[kind]
    start = text.find(opener)
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
            return value
        except json.JSONDecodeError:
            start = text.find(opener, start + 1)

    raise MalformedResponseError(f"Invalid response format: no JSON {kind} found")


def parse_response(
    text: str,
    adapter: TypeAdapter[T],
    kind: Literal["array", "object"],
) -> T:
    """
    Extract JSON from text and validate it against adapter's type.

    Raises:
        MalformedResponseError: On missing JSON or failed validation
    """
    data = extract_json(text, kind)

    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedResponseError(
            f"Response did not match expected shape: {e.error_count()} errors"
        ) from e
