"""
Failure kinds raised by the stores.

Every failure carries a `kind` so the HTTP layer can pick a status code
without the stores knowing anything about HTTP.
"""

import functools
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError


class StoreError(Exception):
    kind = "internal"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationFailure(StoreError):
    kind = "validation"


class NotFoundFailure(StoreError):
    kind = "not_found"

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class ConflictFailure(StoreError):
    kind = "conflict"


class IOFailure(StoreError):
    kind = "io"


class ParseFailure(StoreError):
    kind = "parse"


class InternalFailure(StoreError):
    kind = "internal"


def field_errors(exc, skip=("body", "query", "path")) -> List[Dict[str, str]]:
    """Flatten pydantic errors into [{field, message}], one entry per problem."""
    out = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in skip]
        out.append({"field": ".".join(loc) or "__root__", "message": err.get("msg", "invalid value")})
    return out


def validation_failure(message: str, exc: ValidationError) -> ValidationFailure:
    details = field_errors(exc)
    fields = ", ".join(dict.fromkeys(d["field"] for d in details))
    return ValidationFailure(f"{message}: {fields}", details)


def store_operation(logger: logging.Logger):
    """Let StoreError through untouched, wrap anything else as InternalFailure."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except StoreError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error in {func.__qualname__}")
                raise InternalFailure("Internal storage error") from e

        return wrapper

    return decorator
