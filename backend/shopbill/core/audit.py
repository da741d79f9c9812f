"""
Audit logging for money-affecting operations.

Every invoice mutation and every change to a business's numbering settings is
written as one JSON line to the "audit" logger. Handlers decide where the
lines go; nothing is stored in the database.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Optional, Dict

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _default(value: Any) -> str:
    # Decimal, date and datetime values
    return str(value)


class AuditLog:
    """Central audit logging for invoice lifecycle events."""

    @staticmethod
    def log_action(
        action: str,  # "create", "replace", "status", "delete", "update"
        resource_type: str,  # "invoice", "business"
        resource_id: int,
        business_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a committed mutation.

        Usage:
            AuditLog.log_action("create", "invoice", 12, business_id=1, changes={"number": "INV-0007"})
            AuditLog.log_action("status", "invoice", 12, business_id=1, changes={"status": ["ISSUED", "PAID"]})
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": f"{resource_type}.{action}",
            "resource_id": resource_id,
        }
        if business_id is not None:
            log_entry["business_id"] = business_id
        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=_default))

    @staticmethod
    def log_rejected(
        action: str,
        resource_type: str,
        resource_id: Optional[int],
        reason: str,
    ):
        """
        Log a mutation refused by a business rule (for example a blocked
        status transition in strict mode).
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_severity": "WARNING",
            "event_type": f"{resource_type}.{action}.rejected",
            "resource_id": resource_id,
            "reason": reason,
        }

        audit_logger.warning(json.dumps(log_entry))
