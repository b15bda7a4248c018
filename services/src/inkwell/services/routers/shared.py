"""Shared helpers used across router modules."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from ..errors import InkwellError
from ..http import raise_filesystem_error
from ..service_errors import service_error_for

__all__ = ["translate_errors"]


@contextmanager
def translate_errors(**context: Any) -> Iterator[None]:
    """Re-raise domain and filesystem errors as ``ServiceError`` responses."""

    try:
        yield
    except InkwellError as exc:
        raise service_error_for(exc) from exc
    except OSError as exc:
        raise_filesystem_error(exc, message="Document could not be accessed.", details=dict(context))
