# tr_core/audit/services.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction

from tr_core.audit.models import AuditEvent

logger = logging.getLogger(__name__)


class AuditService:
    """
    Central audit writer.

    Called after the primary mutation has committed. A failed append never
    undoes or fails the primary operation; it is logged at error level and
    needs manual reconciliation.
    """

    @staticmethod
    def append(
        *,
        event_type: str,
        actor,
        tenant_id: UUID,
        action: str,
        target_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        campus_id: Optional[str] = None,
        record_subject_name: str = "",
    ) -> Optional[AuditEvent]:
        try:
            with transaction.atomic():
                return AuditEvent.objects.create(
                    event_type=event_type,
                    actor_id=actor.id,
                    actor_email=actor.email or "",
                    actor_role=actor.role,
                    target_id=str(target_id) if target_id is not None else None,
                    action=action,
                    details=details or {},
                    tenant_id=tenant_id,
                    campus_id=campus_id,
                    record_subject_name=record_subject_name or "",
                )
        except Exception:
            logger.error(
                "audit_append_failed event_type=%s tenant_id=%s target_id=%s actor_id=%s",
                event_type,
                tenant_id,
                target_id,
                getattr(actor, "id", None),
                exc_info=True,
            )
            return None
