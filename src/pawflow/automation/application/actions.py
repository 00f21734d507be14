"""
Workflow Actions
================

Registry of action handlers keyed by ``action_type``.

A handler receives the action's config document and the run's trigger
payload and returns a JSON-serializable result. Missing input is reported
as a ``{"skipped": reason}`` result, never as an error; only genuine
failures (storage, notification gateway) raise and fail the run.

New action types are added with ``ActionRegistry.register``.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

from pawflow.config import ActionType
from pawflow.automation.domain import Document, skip
from pawflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

ActionHandler = Callable[[Document, Document], Awaitable[Dict[str, Any]]]


# ========== Collaborator Interfaces ==========

class INotificationGateway(ABC):
    """Delivery contract offered by the notifications module."""

    @abstractmethod
    async def send_notification(
        self,
        user_id: str,
        title: str,
        body: str,
        category: str = "system",
        metadata: Optional[dict] = None
    ) -> None:
        """Create a notification for ``user_id`` and fan it out over channels."""


class IAppointmentRepository(ABC):
    """Write access to appointments owned by the booking module."""

    @abstractmethod
    async def set_status(self, appointment_id: str, status: str) -> int:
        """Overwrite an appointment's status; returns affected rows."""


# ========== Registry ==========

class ActionRegistry:
    """Maps action types to handlers; unknown types are skipped."""

    def __init__(self):
        self._handlers: Dict[str, ActionHandler] = {}

    def register(self, action_type: str, handler: ActionHandler) -> None:
        self._handlers[action_type] = handler

    async def execute(
        self,
        action_type: str,
        config: Document,
        payload: Document
    ) -> Dict[str, Any]:
        handler = self._handlers.get(action_type)
        if handler is None:
            logger.info("Action type not implemented, skipping", extra={"action_type": action_type})
            return skip(f"Action {action_type} not implemented")
        return await handler(config, payload)


# ========== Handlers ==========

class SendNotificationAction:
    """Notify the configured user, or the customer/user named in the payload."""

    DEFAULT_TITLE = "Automation"
    DEFAULT_BODY = "An automation workflow sent this notification."
    DEFAULT_CATEGORY = "system"

    def __init__(self, gateway: INotificationGateway):
        self._gateway = gateway

    async def __call__(self, config: Document, payload: Document) -> Dict[str, Any]:
        user_id = config.get_str("user_id") or payload.first_str("customer_id", "user_id")
        if not user_id:
            return skip("Missing target user id")

        await self._gateway.send_notification(
            user_id=user_id,
            title=config.get_str("title") or payload.get_str("title") or self.DEFAULT_TITLE,
            body=config.get_str("body") or payload.get_str("message") or self.DEFAULT_BODY,
            category=config.get_str("category") or self.DEFAULT_CATEGORY,
            metadata={"workflow": config.get("workflowName"), "payload": payload.to_dict()},
        )
        return {"sent": True}


class UpdateStatusAction:
    """
    Move the payload's appointment to ``config.next_status``.

    The update is unconditional: an unknown appointment id affects no rows
    and still reports success.
    """

    def __init__(self, appointments: IAppointmentRepository):
        self._appointments = appointments

    async def __call__(self, config: Document, payload: Document) -> Dict[str, Any]:
        appointment_id = payload.get_str("appointment_id")
        next_status = config.get_str("next_status")
        if not appointment_id or not next_status:
            return skip("Missing appointment or status")

        await self._appointments.set_status(appointment_id, next_status)
        return {"updated": True}


def build_action_registry(
    gateway: INotificationGateway,
    appointments: IAppointmentRepository
) -> ActionRegistry:
    """Registry with every implemented action type."""
    registry = ActionRegistry()
    registry.register(ActionType.SEND_NOTIFICATION, SendNotificationAction(gateway))
    registry.register(ActionType.UPDATE_STATUS, UpdateStatusAction(appointments))
    return registry
