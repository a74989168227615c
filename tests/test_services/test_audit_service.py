"""
Tests for audit_service and the append-only AssetLog model.
"""

import pytest

from assettrack.exceptions import IntegrityError
from assettrack.extensions import db
from assettrack.models.audit import AssetLog, LogAction
from assettrack.services import audit_service


class TestAuditLog:

    def test_entries_are_returned_in_write_order(self, db_session):
        for action in (LogAction.CREATE, LogAction.UPDATE, LogAction.ARCHIVE):
            audit_service.log_change(7, action, f"{action.value} happened")
        db_session.commit()

        entries = audit_service.get_asset_logs(7)
        assert [e.action for e in entries] == [
            LogAction.CREATE,
            LogAction.UPDATE,
            LogAction.ARCHIVE,
        ]
        newest = audit_service.get_asset_logs(7, newest_first=True)
        assert newest[0].action is LogAction.ARCHIVE

    def test_message_and_details_are_stored(self, db_session, user):
        entry = audit_service.log_change(
            3, LogAction.UPDATE_STATUS, "Status changed", user_id=user.id, previous=1, new=2
        )
        db_session.commit()

        assert entry.details == {"message": "Status changed", "previous": 1, "new": 2}
        assert entry.user_id == user.id

    def test_unknown_action_reads_back_as_other(self, db_session):
        db_session.add(AssetLog(asset_id=1, action_type="TELEPORTED", details={}))
        db_session.commit()

        entry = audit_service.get_asset_logs(1)[0]
        assert entry.action is LogAction.OTHER
        assert entry.action_type == "TELEPORTED"

    def test_entries_cannot_be_modified(self, db_session):
        entry = audit_service.log_change(5, LogAction.CREATE, "Created")
        db_session.commit()

        entry.details = {"message": "rewritten"}
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

    def test_entries_cannot_be_deleted(self, db_session):
        entry = audit_service.log_change(5, LogAction.CREATE, "Created")
        db_session.commit()

        db_session.delete(entry)
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()
        assert AssetLog.query.count() == 1

    def test_paginated_query_filters_by_action(self, db_session):
        for asset_id in (1, 2, 3):
            audit_service.log_change(asset_id, LogAction.CREATE, "Created")
        audit_service.log_change(2, LogAction.DELETE, "Deleted")
        db.session.commit()

        page = audit_service.get_audit_logs(action_type="CREATE", per_page=2)
        assert page.total == 3
        assert [e.asset_id for e in page.items] == [3, 2]
