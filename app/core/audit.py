"""
Audit logging for class/student/teacher/subject changes.

Best-effort: a failed audit write is logged and never fails the change it describes.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.remote.base import RemoteStore

logger = logging.getLogger(__name__)

AUDIT_TABLE = "audit_logs"


def changed_fields(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> List[str]:
    before = before or {}
    after = after or {}
    return sorted(k for k in set(before) | set(after) if before.get(k) != after.get(k))


async def log_audit(
    remote: RemoteStore,
    school_id: str,
    entity_type: str,
    entity_id: str,
    action: str,
    *,
    user_id: str,
    user_name: str,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """Append one audit log entry. Returns its id, or None when the write failed."""
    audit_id = f"AUDIT_{uuid.uuid4().hex[:15]}"
    changes: Dict[str, Any] = {}
    if before is not None:
        changes["before"] = before
    if after is not None:
        changes["after"] = after
    if before is not None and after is not None:
        changes["fields_changed"] = changed_fields(before, after)

    result = await remote.insert(
        AUDIT_TABLE,
        {
            "id": audit_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "user_id": user_id,
            "user_name": user_name,
            "school_id": school_id,
            "changes": changes,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
    if result.error:
        logger.warning("Audit log for %s %s not written: %s", entity_type, entity_id, result.error.message)
        return None
    return audit_id
