"""Schema for events handed to the notification collaborator."""

from typing import Literal
from uuid import UUID

from pydantic import Field

from craguard.schemas.common import CamelModel

NotificationType = Literal["new_cve_discovered", "vulnerability_assigned", "deadline_approaching"]


class NotificationEvent(CamelModel):
    """One notification trigger. Delivery is handled outside this service."""

    user_id: int
    title: str = Field(..., min_length=1)
    message: str
    type: NotificationType
    vulnerability_id: UUID | None = None
    project_id: UUID | None = None
