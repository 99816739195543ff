from __future__ import annotations

import typing as tp

from etagger._async._sinks import AsyncResponseSink
from etagger._core._headers import Headers

__all__ = ("MockAsyncResponseSink",)


class MockAsyncResponseSink(AsyncResponseSink):
    """
    In-memory response sink that records everything written to it.

    It commits on the first body write or flush, after which status and
    header changes are ignored, like a real transport. It supports header
    lookup.
    """

    def __init__(self, status_code: int = 200) -> None:
        self._status_code = status_code
        self.headers = Headers()
        self.body = bytearray()
        self.committed = False
        self.writes: tp.List[bytes] = []

    @property
    def status_code(self) -> int:
        return self._status_code

    def set_status(self, status_code: int) -> None:
        if not self.committed:
            self._status_code = status_code

    def set_header(self, name: str, value: str) -> None:
        if not self.committed:
            self.headers[name] = value

    def add_header(self, name: str, value: str) -> None:
        if not self.committed:
            self.headers.add(name, value)

    def get_header(self, name: str) -> tp.Optional[str]:
        return self.headers.get(name)

    @property
    def is_committed(self) -> bool:
        return self.committed

    async def write(self, data: bytes) -> None:
        self.committed = True
        self.writes.append(data)
        self.body.extend(data)

    async def flush(self) -> None:
        self.committed = True
