# casedesk/services/status_service.py
"""
Case status control: the one-field update with remote confirmation.

The displayed status only changes after the entity store confirms the write,
so a failed update needs no rollback.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Union

from starlette.concurrency import run_in_threadpool

from casedesk.enums import CaseStatus
from casedesk.errors import ControlBusyError, RemoteUpdateError
from casedesk.services.entity_store import EntityStore
from casedesk.services.toast_service import Notifier

logger = logging.getLogger("casedesk.cases")

StatusCallback = Callable[[CaseStatus], None]

UPDATE_FAILED_MESSAGE = "Failed to update case status"


class StatusControl:
    """
    Status selector for a single case.

    While an update is in flight the control is disabled and further changes
    raise ``ControlBusyError``; there is never more than one request per
    control.
    """

    def __init__(
        self,
        case_id: str,
        current_status: Union[CaseStatus, str],
        *,
        store: EntityStore,
        notifier: Notifier,
        on_status_updated: Optional[StatusCallback] = None,
    ) -> None:
        self.case_id = case_id
        self.current_status = CaseStatus(current_status)
        self._store = store
        self._notifier = notifier
        self._on_status_updated = on_status_updated
        self._busy = False
        self.confirmed_at: Optional[float] = None

    @property
    def disabled(self) -> bool:
        return self._busy

    @property
    def options(self):
        return list(CaseStatus)

    async def change(
        self,
        new_status: Union[CaseStatus, str],
        *,
        notifier: Optional[Notifier] = None,
        on_status_updated: Optional[StatusCallback] = None,
    ) -> bool:
        """
        Persist ``new_status`` for this case.

        ``notifier`` and ``on_status_updated`` override the ones given at
        construction for this call only.

        Returns:
            True if the store was updated, False for a same-value no-op

        Raises:
            ControlBusyError: an update is already in flight
            RemoteUpdateError: the store rejected the write
        """
        status = CaseStatus(new_status)
        if status == self.current_status:
            return False
        if self._busy:
            raise ControlBusyError(self.case_id)

        notifier = notifier or self._notifier
        callback = on_status_updated or self._on_status_updated

        self._busy = True
        try:
            response = await run_in_threadpool(
                self._store.update, "cases", {"status": status.value}, id=self.case_id
            )
        finally:
            self._busy = False

        if response.error is not None:
            logger.error(f"Error updating case status for {self.case_id}: {response.error.message}")
            notifier.error(UPDATE_FAILED_MESSAGE)
            raise RemoteUpdateError(UPDATE_FAILED_MESSAGE, cause=response.error)

        self.current_status = status
        self.confirmed_at = time.monotonic()
        notifier.success(f"Case status updated to {status.value}")
        if callback is not None:
            callback(status)
        return True


class StatusControlRegistry:
    """One control per case, so busy state survives across requests"""

    def __init__(self, store: EntityStore, notifier: Notifier) -> None:
        self._store = store
        self._notifier = notifier
        self._controls: Dict[str, StatusControl] = {}

    def control_for(
        self,
        case_id: str,
        current_status: Union[CaseStatus, str],
        read_at: Optional[float] = None,
    ) -> StatusControl:
        """
        The control for ``case_id``, created on first use.

        ``read_at`` is the ``time.monotonic()`` taken before ``current_status``
        was read. An idle control adopts the read only when it has confirmed
        no write yet or the read started after its last confirmed write.
        """
        control = self._controls.get(case_id)
        if control is None:
            control = StatusControl(case_id, current_status, store=self._store, notifier=self._notifier)
            self._controls[case_id] = control
        elif not control.disabled and (
            control.confirmed_at is None or (read_at is not None and read_at > control.confirmed_at)
        ):
            control.current_status = CaseStatus(current_status)
        return control

    def is_busy(self, case_id: str) -> bool:
        control = self._controls.get(case_id)
        return control is not None and control.disabled
