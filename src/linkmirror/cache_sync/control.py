# SPDX-License-Identifier: MIT
"""Request/response control surface in front of the sync scheduler."""

from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from ..enums import MessageType, SyncStatus
from ..logging_config import get_detail_logger
from ..models import ControlRequest, ControlResponse, SyncComplete
from .scheduler import SyncScheduler


detail_logger = get_detail_logger()


class SyncController:
    """Dispatches control requests to the scheduler.

    Every request gets a ControlResponse; malformed or unknown requests come
    back as `success=False` with an error message rather than raising.
    """

    def __init__(self, scheduler: SyncScheduler):
        self.scheduler = scheduler

    async def handle(self, request: ControlRequest | dict[str, Any]) -> ControlResponse:
        if not isinstance(request, ControlRequest):
            try:
                request = ControlRequest.model_validate(request)
            except ValidationError as e:
                detail_logger.warning(f"Rejected control request {request!r}: {e}")
                return ControlResponse(success=False, error=_describe_invalid(request))

        detail_logger.debug(f"Handling control request {request.type.value}")

        if request.type is MessageType.SYNC_NOW:
            state = await self.scheduler.sync_now()
            if state.status is SyncStatus.ERROR:
                return ControlResponse(success=False, error=state.message, status=state)
            return ControlResponse(success=True, status=state)

        if request.type is MessageType.GET_STATUS:
            return ControlResponse(success=True, status=self.scheduler.get_status())

        if request.type is MessageType.START_PERIODIC_SYNC:
            interval = request.interval or self.scheduler.app_config.sync.interval_minutes
            state = await self.scheduler.start_periodic(interval)
            return ControlResponse(success=True, status=state)

        if request.type is MessageType.STOP_PERIODIC_SYNC:
            self.scheduler.stop_periodic()
            return ControlResponse(success=True, status=self.scheduler.get_status())

        return ControlResponse(
            success=False, error=f"Unsupported message type: {request.type.value}"
        )

    def on_sync_complete(
        self, listener: Callable[[dict[str, Any]], Any]
    ) -> Callable[[], None]:
        """Forward SYNC_COMPLETE notifications to `listener` as plain messages."""

        def forward(event: SyncComplete) -> Any:
            return listener(event.model_dump(mode="json"))

        return self.scheduler.subscribe(forward)


def _describe_invalid(request: Any) -> str:
    if isinstance(request, dict) and "type" in request:
        valid = {t.value for t in MessageType}
        if request["type"] not in valid:
            return f"Unknown message type: {request['type']}"
    return "Invalid control request"
