from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from joint_paths.core.engine.ledger import PositionLedger
from joint_paths.core.storage.ledger_store import LedgerStore

Compensation = Callable[[], Awaitable[Any]]


class AtomicOperation:
    """All-or-nothing boundary around one lifecycle call.

    The body works on a staged copy of the ledger. On a clean exit the copy is
    committed with a compare-and-swap on ``version``. On any exception the copy
    is dropped, registered compensations run newest first, and the original
    exception propagates with a note for each compensation that failed.

    External effects that have no compensation (an executed swap, a transfer)
    are not undone.
    """

    def __init__(self, store: LedgerStore, joint_id: str, operation: str) -> None:
        self.store = store
        self.joint_id = joint_id
        self.operation = operation
        self.logger = logger.bind(joint=joint_id, operation=operation)
        self._compensations: list[tuple[str, Compensation]] = []
        self._expected_version: int | None = None
        self.ledger: PositionLedger | None = None
        self.committed: PositionLedger | None = None

    async def __aenter__(self) -> AtomicOperation:
        loaded = self.store.load(self.joint_id)
        self._expected_version = loaded.version
        self.ledger = loaded.model_copy(deep=True)
        return self

    def compensate(self, description: str, action: Compensation) -> None:
        self._compensations.append((description, action))

    async def __aexit__(self, exc_type, exc, tb) -> bool:  # noqa: ARG002
        if exc is None:
            self.committed = self.store.save(
                self.ledger, expected_version=self._expected_version
            )
            self._compensations.clear()
            return False

        self.ledger = None
        await self._rollback(exc)
        return False

    async def _rollback(self, exc: BaseException) -> None:
        if self._compensations:
            self.logger.warning(
                f"{self.operation} failed ({exc}); running {len(self._compensations)} compensation(s)"
            )
        while self._compensations:
            description, action = self._compensations.pop()
            try:
                await action()
                self.logger.warning(f"Compensated: {description}")
            except Exception as comp_exc:
                self.logger.error(f"Compensation '{description}' failed: {comp_exc}")
                exc.add_note(f"compensation '{description}' failed: {comp_exc}")
