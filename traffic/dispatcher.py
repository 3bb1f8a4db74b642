"""
Public request entry point: batching, id assignment and correlation.

Every request travels as a batch. A single call is wrapped in a list on
the way out and unwrapped on the way back unless the caller asked for
batch form.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from core.errors        import ApplicationError, CorrelationError, TransportError
from traffic.connection import Connection

logger = logging.getLogger("Compassmax.Dispatcher")


@dataclass
class Call:
    """One ``{service, method, args, id}`` record."""

    service: str
    method:  str
    args:    list = field(default_factory=list)
    id:      int | None = None

    def __post_init__(self):
        if not isinstance(self.service, str) or not self.service:
            raise TypeError("argument 'service' must be type str")
        if not isinstance(self.method, str) or not self.method:
            raise TypeError("argument 'method' must be type str")
        if isinstance(self.args, (str, bytes)) or not isinstance(self.args, Iterable):
            raise TypeError("argument 'args' must be type list")
        self.args = list(self.args)
        if self.id is not None and (isinstance(self.id, bool)
                                    or not isinstance(self.id, int)):
            raise TypeError("argument 'id' must be type int")

    @classmethod
    def from_mapping(cls, data: Mapping) -> "Call":
        return cls(
            service=data.get("service"),
            method=data.get("method"),
            args=data.get("args", []),
            id=data.get("id"),
        )

    def to_record(self) -> dict:
        return {
            "service": self.service,
            "method":  self.method,
            "args":    self.args,
            "id":      self.id,
        }


def as_calls(calls) -> list[Call]:
    """Normalise a call, a mapping, or a sequence of either to a list."""
    if isinstance(calls, (Call, Mapping)):
        calls = [calls]
    batch = []
    for item in calls:
        if isinstance(item, Call):
            batch.append(replace(item))
        elif isinstance(item, Mapping):
            batch.append(Call.from_mapping(item))
        else:
            raise TypeError(f"Cannot send {type(item).__name__} as a call")
    if not batch:
        raise ValueError("A batch needs at least one call")
    return batch


def correlate(calls: list[Call], response: Any) -> dict[int, dict]:
    """
    Map each sent id to its result.

    The response ids must equal the sent ids exactly, otherwise the
    whole batch is rejected with ``CorrelationError``.
    """
    if not isinstance(response, list) or \
            not all(isinstance(r, dict) for r in response):
        raise CorrelationError("Response is not a list of result records")
    if not all(isinstance(r.get("id"), int) and not isinstance(r["id"], bool)
               for r in response):
        raise CorrelationError("Response record without an integer id")

    sent     = Counter(c.id for c in calls)
    received = Counter(r.get("id") for r in response)
    if sent != received:
        missing = sorted(set(sent) - set(received))
        extra   = sorted(set(received) - set(sent), key=repr)
        raise CorrelationError(
            f"Response ids do not match request ids "
            f"(missing: {missing}, unexpected: {extra})"
        )
    return {r["id"]: r for r in response}


class RequestDispatcher:
    """
    Sends calls over one ``Connection``, one request at a time.

    Concurrent ``send`` calls queue on an internal lock because the wire
    protocol cannot tell two in-flight messages apart.
    """

    def __init__(self, connection: Connection):
        self.connection = connection
        self._lock      = asyncio.Lock()

    async def send(self, calls, as_batch: bool = False):
        batch = as_calls(calls)
        if not as_batch and len(batch) != 1:
            raise ValueError("as_batch=False requires exactly one call")
        taken = Counter(c.id for c in batch if c.id is not None)
        duplicates = sorted(i for i, n in taken.items() if n > 1)
        if duplicates:
            raise ValueError(f"Duplicate call ids in batch: {duplicates}")
        async with self._lock:
            return await self._send_batch(batch, as_batch)

    async def _send_batch(self, batch: list[Call], as_batch: bool):
        connection = self.connection
        identifier = connection.identifier
        try:
            if not connection.is_open:
                await connection.open()
            self._assign_ids(batch)
            response = await connection.request([c.to_record() for c in batch])
            by_id = correlate(batch, response)
        except CorrelationError as exc:
            error = exc.with_context(calls=batch, identifier=identifier)
            connection.close(error)
            raise error from exc
        except TransportError as exc:
            raise exc.with_context(calls=batch, identifier=identifier) from exc

        results = []
        for call in batch:
            result = by_id[call.id]
            if result.get("error"):
                logger.debug("Call %s.%s (id %s) failed: %s", call.service,
                             call.method, call.id, result["error"])
                result = ApplicationError.from_result(
                    result, call=call, identifier=identifier,
                )
            results.append(result)

        if as_batch:
            return results
        if isinstance(results[0], ApplicationError):
            raise results[0]
        return results[0]

    def _assign_ids(self, batch: list[Call]):
        used = {c.id for c in batch if c.id is not None}
        for call in batch:
            if call.id is None:
                request_id = self.connection.next_request_id()
                while request_id in used:
                    request_id = self.connection.next_request_id()
                call.id = request_id
                used.add(request_id)
