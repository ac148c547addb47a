from app.core.models.pending_operation import PendingOperation
from app.core.models.local_state import LocalStateEntry
from app.core.models.local_record import LocalRecord

__all__ = [
    "PendingOperation",
    "LocalStateEntry",
    "LocalRecord",
]
