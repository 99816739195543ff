from __future__ import annotations

import abc
import typing as t

from etagger._core.models import Request

__all__ = ("ResponseSink", "Handler")


class ResponseSink(abc.ABC):
    """
    Transport-facing side of an HTTP response.

    Status and headers can be changed until the sink is committed, which
    happens on the first body write or on ``flush``. Sinks that can report
    already set headers back also implement ``SupportsHeaderLookup``.
    """

    charset: str = "utf-8"

    @property
    @abc.abstractmethod
    def status_code(self) -> int: ...

    @abc.abstractmethod
    def set_status(self, status_code: int) -> None: ...

    @abc.abstractmethod
    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing every value already set under the name."""

    @abc.abstractmethod
    def add_header(self, name: str, value: str) -> None: ...

    @property
    @abc.abstractmethod
    def is_committed(self) -> bool: ...

    @abc.abstractmethod
    def write(self, data: bytes) -> None: ...

    def write_text(self, text: str) -> None:
        self.write(text.encode(self.charset))

    @abc.abstractmethod
    def flush(self) -> None:
        """Commit the status and headers, and push out any pending body bytes."""

    def unwrap(self) -> ResponseSink | None:
        """Return the sink this one decorates, if any."""
        return None


class Handler(t.Protocol):
    def __call__(self, request: Request, response: ResponseSink) -> None: ...
