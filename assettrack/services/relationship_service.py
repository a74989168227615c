"""
Relationship service — typed, directed edges between assets.

Every change to an edge is recorded twice in the audit log, once on
each endpoint, phrased from that endpoint's point of view: the source
sees the forward label ("Part of 'Rack 4'") and the target sees the
inverse label ("Has part 'Server 12'").
"""

import logging
from dataclasses import dataclass
from typing import Any

from assettrack.exceptions import ConflictError, NotFoundError, ValidationError
from assettrack.extensions import db
from assettrack.models.asset import Asset
from assettrack.models.audit import LogAction
from assettrack.models.relationship import Relationship, RelationshipType
from assettrack.services import asset_service, audit_service
from assettrack.utils import utcnow

logger = logging.getLogger(__name__)

OUTGOING = "outgoing"
INCOMING = "incoming"


@dataclass(frozen=True)
class RelationshipView:
    """
    An edge as seen from one of its endpoints.

    Attributes:
        relationship: The underlying edge.
        direction:    ``"outgoing"`` if the viewing asset is the source,
                      ``"incoming"`` if it is the target.
        label:        Forward label for outgoing edges, inverse label
                      for incoming ones.
        other_asset:  The asset at the other end.
    """

    relationship: Relationship
    direction: str
    label: str
    other_asset: Asset

    @property
    def other_asset_id(self) -> int:
        return self.other_asset.id

    def to_dict(self) -> dict:
        payload = self.relationship.to_dict()
        payload.update(
            {
                "direction": self.direction,
                "label": self.label,
                "other_asset_id": self.other_asset.id,
                "other_asset_name": self.other_asset.name,
                "other_asset_identifier": self.other_asset.unique_identifier,
            }
        )
        return payload


def parse_type(raw: Any) -> RelationshipType:
    """Resolve a relationship type from its value (e.g., "part_of")."""
    try:
        return RelationshipType(str(raw).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in RelationshipType)
        raise ValidationError(
            f"Unknown relationship type {raw!r} (allowed: {allowed}).",
            field="relationship_type",
            value=raw,
        ) from exc


def get_relationship_by_id(edge_id: int) -> Relationship | None:
    return db.session.get(Relationship, edge_id)


def require_relationship(edge_id: int, workspace_id: int | None = None) -> Relationship:
    """Return the edge or raise NotFoundError (also for another workspace's edge)."""
    edge = get_relationship_by_id(edge_id)
    if edge is None or (
        workspace_id is not None and edge.workspace_id != workspace_id
    ):
        raise NotFoundError(
            f"Relationship ID {edge_id} not found.",
            field="relationship_id",
            value=edge_id,
        )
    return edge


def connect(
    source_id: int,
    target_id: int,
    relationship_type: RelationshipType | str,
    notes: str | None = None,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> Relationship:
    """
    Create the edge ``source --type--> target``.

    Raises:
        ValidationError: Unknown type, an edge from an asset to itself,
                         or endpoints in different workspaces.
        NotFoundError:   Either endpoint does not exist (or is outside
                         ``workspace_id`` when one is given).
        ConflictError:   The same (source, target, type) edge exists.
    """
    rel_type = parse_type(relationship_type)
    if source_id == target_id:
        raise ValidationError(
            "An asset cannot be related to itself.",
            field="target_asset_id",
            value=target_id,
        )
    source = asset_service.require_asset(source_id, workspace_id)
    target = asset_service.require_asset(target_id, workspace_id)
    if source.workspace_id != target.workspace_id:
        raise ValidationError(
            "Related assets must belong to the same workspace.",
            field="target_asset_id",
            value=target_id,
        )
    _check_triple_free(source_id, target_id, rel_type)

    try:
        edge = Relationship(
            workspace_id=source.workspace_id,
            source_asset=source,
            target_asset=target,
            relationship_type=rel_type,
            notes=notes,
        )
        db.session.add(edge)
        db.session.flush()
        _log_both_ends(
            edge,
            source,
            target,
            LogAction.RELATIONSHIP_CREATED,
            "Relationship created",
            user_id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Connected asset ID %d %s asset ID %d", source_id, rel_type.value, target_id
    )
    return edge


def update_relationship(
    edge_id: int,
    relationship_type: RelationshipType | str | None = None,
    notes: str | None = None,
    user_id: int | None = None,
    workspace_id: int | None = None,
) -> Relationship:
    """
    Change an edge's type and/or notes.

    Both endpoints get a RELATIONSHIP_UPDATED entry carrying the
    previous type.  Nothing is written when nothing changes.

    Raises:
        NotFoundError:   Unknown edge.
        ValidationError: Unknown type.
        ConflictError:   The new (source, target, type) edge already exists.
    """
    edge = require_relationship(edge_id, workspace_id)
    previous_type = edge.relationship_type
    new_type = parse_type(relationship_type) if relationship_type is not None else previous_type
    new_notes = notes if notes is not None else edge.notes

    if new_type is previous_type and new_notes == edge.notes:
        return edge
    if new_type is not previous_type:
        _check_triple_free(edge.source_asset_id, edge.target_asset_id, new_type)

    try:
        edge.relationship_type = new_type
        edge.notes = new_notes
        edge.updated_at = utcnow()
        _log_both_ends(
            edge,
            edge.source_asset,
            edge.target_asset,
            LogAction.RELATIONSHIP_UPDATED,
            "Relationship updated",
            user_id,
            previous_type=previous_type.value,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Updated relationship ID %d", edge_id)
    return edge


def disconnect(
    edge_id: int, user_id: int | None = None, workspace_id: int | None = None
) -> None:
    """Hard-delete an edge, recording the removal on both endpoints."""
    edge = require_relationship(edge_id, workspace_id)

    try:
        _log_both_ends(
            edge,
            edge.source_asset,
            edge.target_asset,
            LogAction.RELATIONSHIP_DELETED,
            "Relationship removed",
            user_id,
        )
        db.session.delete(edge)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Deleted relationship ID %d", edge_id)


def list_for(
    asset_id: int,
    include_reverse: bool = True,
    workspace_id: int | None = None,
) -> list[RelationshipView]:
    """
    Return the edges touching an asset, outgoing first, each in id order.

    With ``include_reverse=False`` only edges where the asset is the
    source are returned.
    """
    asset_service.require_asset(asset_id, workspace_id)

    views = [
        RelationshipView(
            relationship=edge,
            direction=OUTGOING,
            label=edge.relationship_type.label,
            other_asset=edge.target_asset,
        )
        for edge in Relationship.query.filter(Relationship.source_asset_id == asset_id)
        .order_by(Relationship.id)
        .all()
    ]
    if include_reverse:
        views.extend(
            RelationshipView(
                relationship=edge,
                direction=INCOMING,
                label=edge.relationship_type.inverse_label,
                other_asset=edge.source_asset,
            )
            for edge in Relationship.query.filter(
                Relationship.target_asset_id == asset_id
            )
            .order_by(Relationship.id)
            .all()
        )
    return views


# -- Internal helpers -------------------------------------------------------


def _check_triple_free(
    source_id: int, target_id: int, rel_type: RelationshipType
) -> None:
    existing = Relationship.query.filter(
        Relationship.source_asset_id == source_id,
        Relationship.target_asset_id == target_id,
        Relationship.relationship_type == rel_type,
    ).first()
    if existing is not None:
        raise ConflictError(
            f"Asset {source_id} is already '{rel_type.label}' asset {target_id}.",
            field="relationship_type",
            value=rel_type.value,
        )


def _log_both_ends(
    edge: Relationship,
    source: Asset,
    target: Asset,
    action: LogAction,
    verb: str,
    user_id: int | None,
    **details: Any,
) -> None:
    rel_type = edge.relationship_type
    audit_service.log_change(
        asset_id=source.id,
        action=action,
        message=f"{verb}: {rel_type.label} '{target.name}'",
        user_id=user_id,
        relationship_id=edge.id,
        relationship_type=rel_type.value,
        direction=OUTGOING,
        other_asset_id=target.id,
        **details,
    )
    audit_service.log_change(
        asset_id=target.id,
        action=action,
        message=f"{verb}: {rel_type.inverse_label} '{source.name}'",
        user_id=user_id,
        relationship_id=edge.id,
        relationship_type=rel_type.value,
        direction=INCOMING,
        other_asset_id=source.id,
        **details,
    )
