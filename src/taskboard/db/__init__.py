"""Database module for Taskboard.

Provides async SQLModel operations with PostgreSQL.
"""

from __future__ import annotations

from taskboard.db.activities import list_card_activities, record_activity
from taskboard.db.backend import DatabaseActivityLog, DatabaseBoardBackend
from taskboard.db.checklists import add_checklist_item, set_checklist_item_completed
from taskboard.db.bootstrap import (
    ensure_database_exists,
    get_expected_tables,
    is_db_configured,
    run_alembic_upgrade,
    verify_schema,
)
from taskboard.db.cards import (
    create_board,
    create_label,
    delete_card,
    get_board,
    insert_card,
    list_board_labels,
    list_boards,
    load_board_cards,
    update_card_fields,
    write_positions,
)
from taskboard.db.engine import close_db, get_engine, get_session, init_db
from taskboard.db.models import (
    Board,
    BoardCard,
    BoardLabel,
    CardActivity,
    CardAttachment,
    CardChecklistItem,
)

__all__ = [
    "Board",
    "BoardCard",
    "BoardLabel",
    "CardActivity",
    "CardAttachment",
    "CardChecklistItem",
    "DatabaseActivityLog",
    "DatabaseBoardBackend",
    "add_checklist_item",
    "close_db",
    "create_board",
    "create_label",
    "delete_card",
    "ensure_database_exists",
    "get_board",
    "get_engine",
    "get_expected_tables",
    "get_session",
    "init_db",
    "insert_card",
    "is_db_configured",
    "list_board_labels",
    "list_boards",
    "list_card_activities",
    "load_board_cards",
    "record_activity",
    "run_alembic_upgrade",
    "set_checklist_item_completed",
    "update_card_fields",
    "verify_schema",
    "write_positions",
]
