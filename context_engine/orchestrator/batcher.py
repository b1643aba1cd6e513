"""
Call batcher -- coalesces concurrent calls into one handler invocation.

Every caller registers its payload in a shared pending map and yields to the
event loop once.  The caller holding the lowest pending sequence id is elected
coordinator: it waits out a short debounce window so that siblings started in
the same burst can register too, drains the map in one step, runs the batch
handler and resolves every registration with its positional result.

Callers that lose the election simply await their own future.  Registrations
that arrive after a drain form the next batch.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

BatchHandler = Callable[[list[Any]], Awaitable[Sequence[Any]]]


@dataclass
class BatchRegistration:
    sequence_id: int
    payload: Any
    future: asyncio.Future


class CallBatcher:
    """
    Parameters
    ----------
    handler:
        ``async handler(payloads) -> results`` returning exactly one result
        per payload, in the same order.
    debounce:
        Seconds the coordinator waits before draining.
    """

    def __init__(self, handler: BatchHandler, *, debounce: float = 0.05) -> None:
        self._handler = handler
        self.debounce = debounce
        self._pending: dict[int, BatchRegistration] = {}
        self._seq = itertools.count(1)
        self._coordinator: asyncio.Task | None = None
        self._replacements: set[asyncio.Task] = set()
        self.batches_formed = 0

    def next_sequence_id(self) -> int:
        return next(self._seq)

    @property
    def pending(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def register(self, payload: Any, sequence_id: int | None = None) -> Any:
        """
        Submit *payload* and wait for its result.

        Raises whatever the batch handler raised for the batch this
        registration ended up in.
        """
        if sequence_id is None:
            sequence_id = self.next_sequence_id()
        if sequence_id in self._pending:
            raise ValueError(f"Sequence id {sequence_id} is already pending")

        reg = BatchRegistration(
            sequence_id, payload, asyncio.get_running_loop().create_future()
        )
        self._pending[sequence_id] = reg

        try:
            # Let siblings from the same burst register before the election.
            await asyncio.sleep(0)
            # A running coordinator may already have drained this registration.
            if (
                self._coordinator is None
                and self._pending.get(sequence_id) is reg
                and sequence_id == min(self._pending)
            ):
                self._coordinator = asyncio.current_task()
                await self._coordinate()
            return await reg.future
        except asyncio.CancelledError:
            self._abandon(reg)
            raise

    # ------------------------------------------------------------------
    # Coordination
    # ------------------------------------------------------------------

    async def _coordinate(self) -> None:
        try:
            await asyncio.sleep(self.debounce)
        finally:
            self._coordinator = None

        batch = [self._pending[k] for k in sorted(self._pending)]
        self._pending.clear()
        if not batch:
            return

        self.batches_formed += 1
        logger.debug(
            "Batch %d formed with %d call(s)", self.batches_formed, len(batch)
        )
        await self._run(batch)

    async def _run(self, batch: list[BatchRegistration]) -> None:
        try:
            results = list(await self._handler([r.payload for r in batch]))
            if len(results) != len(batch):
                raise ValueError(
                    f"Batch handler returned {len(results)} result(s) "
                    f"for {len(batch)} payload(s)"
                )
        except asyncio.CancelledError:
            for r in batch:
                if not r.future.done():
                    r.future.cancel()
            raise
        except Exception as exc:
            for r in batch:
                if not r.future.done():
                    r.future.set_exception(exc)
            return

        for r, result in zip(batch, results):
            if not r.future.done():
                r.future.set_result(result)

    def _abandon(self, reg: BatchRegistration) -> None:
        """Forget a cancelled registration, handing its batch to a new coordinator."""
        if self._pending.get(reg.sequence_id) is reg:
            del self._pending[reg.sequence_id]
        if self._pending and self._coordinator is None:
            task = asyncio.ensure_future(self._coordinate())
            self._coordinator = task
            self._replacements.add(task)
            task.add_done_callback(self._replacements.discard)
