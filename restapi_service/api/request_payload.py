"""Request Payload — assembles body, path params and query into a RequestPayload.

Invariants:
    - Missing pieces become empty dicts, never None
    - A key repeated in a query string or form body becomes a list of values
    - Only JSON and urlencoded bodies are decoded; other content types yield {}
    - Malformed JSON, or a JSON top level that is not an object or array,
      raises MalformedBodyError (interceptor answers 400)
"""

import json
from typing import Any, Iterable
from urllib.parse import parse_qsl

from starlette.requests import Request

from restapi_service.core.domain_types import RequestPayload

JSON_MEDIA_TYPE = "application/json"
FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


class MalformedBodyError(ValueError):
    """Request body could not be decoded for its declared content type."""


def collapse_pairs(pairs: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """[("a", "1"), ("a", "2"), ("b", "3")] -> {"a": ["1", "2"], "b": "3"}"""
    collapsed: dict[str, Any] = {}
    for key, value in pairs:
        if key not in collapsed:
            collapsed[key] = value
        elif isinstance(collapsed[key], list):
            collapsed[key].append(value)
        else:
            collapsed[key] = [collapsed[key], value]
    return collapsed


def media_type_of(request: Request) -> str:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower()


def decode_body(raw: bytes, media_type: str) -> Any:
    if not raw:
        return {}
    if media_type == JSON_MEDIA_TYPE or media_type.endswith("+json"):
        try:
            body = json.loads(raw)
        except ValueError as e:
            raise MalformedBodyError(f"Invalid JSON body: {e}") from e
        if not isinstance(body, (dict, list)):
            raise MalformedBodyError("JSON body must be an object or an array")
        return body
    if media_type == FORM_MEDIA_TYPE:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedBodyError(f"Invalid form body: {e}") from e
        return collapse_pairs(parse_qsl(text, keep_blank_values=True))
    return {}


async def build_payload(request: Request) -> RequestPayload:
    """Read the request once and shape it for the controller."""
    body = decode_body(await request.body(), media_type_of(request))
    return RequestPayload(
        payload=body if body is not None else {},
        params=dict(request.path_params),
        query=collapse_pairs(request.query_params.multi_items()),
    )
