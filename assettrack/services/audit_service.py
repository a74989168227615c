"""
Audit service — records asset mutations and queries asset history.

Every asset creation, update, transition, relationship change, archive,
and deletion passes through ``log_change`` so that a complete history is
kept per asset.  ``log_change`` only adds the entry to the session: the
calling service commits it together with the change it describes, so an
entry is never recorded without its change (or vice versa).
"""

import logging
from datetime import datetime
from typing import Any

from flask import request
from sqlalchemy import asc, desc

from assettrack.extensions import db
from assettrack.models.audit import AssetLog, LogAction

logger = logging.getLogger(__name__)


# -- Write audit entries ---------------------------------------------------


def log_change(
    asset_id: int,
    action: LogAction,
    message: str,
    user_id: int | None = None,
    **details: Any,
) -> AssetLog:
    """
    Record a change to one asset (no commit).

    Args:
        asset_id: The asset the entry is attributed to.
        action:   The ``LogAction`` kind.
        message:  Human-readable summary stored under ``details.message``.
        user_id:  ID of the acting user, or None for system changes.
        details:  Extra JSON-serializable payload (``previous``/``new``
                  for transitions, ``changes`` for edits, ...).

    Returns:
        The new AssetLog, flushed so it has an ID.
    """
    payload: dict[str, Any] = {"message": message}
    payload.update(details)

    # Capture the client address when running inside a request.
    try:
        if request.remote_addr:
            payload.setdefault("ip_address", request.remote_addr)
    except RuntimeError:
        # Outside of a request context (CLI, tests, imports).
        pass

    entry = AssetLog(
        asset_id=asset_id,
        user_id=user_id,
        action_type=LogAction(action).value,
        details=payload,
    )
    db.session.add(entry)
    db.session.flush()

    logger.info(
        "Audit: %s asset:%s by user %s",
        entry.action_type,
        asset_id,
        user_id,
    )
    return entry


# -- Query audit logs ------------------------------------------------------


def get_asset_logs(asset_id: int, newest_first: bool = False) -> list[AssetLog]:
    """
    Return every entry for one asset in write order.

    Entries are ordered by id, which is strictly increasing, so two
    entries written in the same instant keep their relative order.
    """
    order = desc(AssetLog.id) if newest_first else asc(AssetLog.id)
    return AssetLog.query.filter(AssetLog.asset_id == asset_id).order_by(order).all()


def get_audit_logs(
    page: int = 1,
    per_page: int = 50,
    asset_id: int | None = None,
    user_id: int | None = None,
    action_type: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
):
    """
    Query the log across assets with optional filters and pagination.

    Returns:
        A Flask-SQLAlchemy pagination object with ``.items``, ``.pages``,
        ``.total``, etc., newest entries first.
    """
    query = AssetLog.query.order_by(desc(AssetLog.id))

    if asset_id is not None:
        query = query.filter(AssetLog.asset_id == asset_id)
    if user_id is not None:
        query = query.filter(AssetLog.user_id == user_id)
    if action_type:
        query = query.filter(AssetLog.action_type == action_type)
    if start_date:
        query = query.filter(AssetLog.timestamp >= start_date)
    if end_date:
        query = query.filter(AssetLog.timestamp <= end_date)

    return query.paginate(page=page, per_page=per_page, error_out=False)
