"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error.

    Required keys must be present as non-empty strings.
    """

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=False)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        required_keys = list(required_keys)
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )
        not_strings = [key for key in required_keys if not isinstance(data[key], str)]
        if not_strings:
            raise BadRequest(
                "Fields must be strings: {}.".format(", ".join(sorted(not_strings)))
            )

    return data


def _parse_int(raw: str | None, name: str, default: int | None) -> int | None:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f"{name} must be an integer.")
    if value < 0:
        raise BadRequest(f"{name} must not be negative.")
    return value


def parse_pagination(req: Request) -> tuple[int, int]:
    """Return ``(limit, offset)`` from the query string."""

    limit = _parse_int(req.args.get("limit"), "limit", DEFAULT_PAGE_SIZE)
    offset = _parse_int(req.args.get("offset"), "offset", 0)
    return min(limit, MAX_PAGE_SIZE), offset
