"""
Database package for Frontdesk.

All functions are re-exported here so callers can simply:

    from frontdesk.core.db import assign_card, list_logs
"""

# Base - enums, connection, initialization
from .base import (
    SCHEMA,
    RequestStatus,
    CardStatus,
    LogAction,
    ALLOWED_REQUEST_COLUMNS,
    ALLOWED_LOG_COLUMNS,
    get_db,
    get_db_path,
    init_db,
    migrate_db,
)

# Requests
from .requests import (
    create_request,
    get_request,
    list_requests,
    update_request_status,
    delete_request,
)

# Cards
from .cards import (
    CardStateError,
    CardAlreadyAssignedError,
    CardNotAssignedError,
    get_card,
    assign_card,
    unassign_card,
)

# Logs
from .logs import (
    user_identifier,
    create_log,
    get_latest_assignment_log,
    list_logs,
    get_log_summary,
)

__all__ = [
    "SCHEMA",
    "RequestStatus",
    "CardStatus",
    "LogAction",
    "ALLOWED_REQUEST_COLUMNS",
    "ALLOWED_LOG_COLUMNS",
    "get_db",
    "get_db_path",
    "init_db",
    "migrate_db",
    "create_request",
    "get_request",
    "list_requests",
    "update_request_status",
    "delete_request",
    "CardStateError",
    "CardAlreadyAssignedError",
    "CardNotAssignedError",
    "get_card",
    "assign_card",
    "unassign_card",
    "user_identifier",
    "create_log",
    "get_latest_assignment_log",
    "list_logs",
    "get_log_summary",
]
