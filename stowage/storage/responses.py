"""
Response envelopes returned by every storage driver

The `raw` field always holds the backend-native result (or error, for a
negative `exists`). It is an opaque diagnostic payload: its shape differs
between drivers, so never branch on it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

T = TypeVar("T")

#-----------------------------------------------------------------------------

@dataclass(frozen=True)
class Response:
    raw: Any


@dataclass(frozen=True)
class ContentResponse(Generic[T]):
    content : T
    raw     : Any


@dataclass(frozen=True)
class ExistsResponse:
    exists  : bool
    raw     : Any


@dataclass(frozen=True)
class SignedUrlResponse:
    signed_url  : str
    raw         : Any


@dataclass(frozen=True)
class StatResponse:
    size        : int
    modified    : datetime
    raw         : Any

#-----------------------------------------------------------------------------
