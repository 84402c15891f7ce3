"""Venue orchestration: creation, verification and the venue-edit queue.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: IVenueProvider, INotificationProvider, AuditLogService.
#
# Venue edits follow a review queue:
#
#   user proposes  ──►  pending  ──► approved  (fields applied to venue)
#                                └─► rejected  (reason recorded)
#
# Admins skip the queue and their changes are applied directly.  A user
# holds at most one pending edit per venue; proposing again replaces it.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import structlog

from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.interfaces.venue_provider import IVenueProvider
from psychic_homily.models.user import User
from psychic_homily.models.venue import (
    PendingVenueEdit,
    Venue,
    VenueChanges,
    VenueCity,
    VenueCreate,
    VenueEditStatus,
)
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.utils.errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
    VenueEditNotFoundError,
    VenueNotFoundError,
)

logger = structlog.get_logger(logger_name=__name__)

_MAX_PAGE_SIZE = 200


def _clamp(limit: int, default: int = 50) -> int:
    return default if limit <= 0 else min(limit, _MAX_PAGE_SIZE)


def _require_admin(actor: User) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError("admin access required", code="ADMIN_REQUIRED")


class VenueService:
    """Venue CRUD plus the pending-edit review workflow."""

    def __init__(
        self,
        venue_store: IVenueProvider,
        *,
        notifier: INotificationProvider | None = None,
        audit_log: AuditLogService | None = None,
    ) -> None:
        self._venue_store = venue_store
        self._notifier = notifier
        self._audit_log = audit_log

    # ── Venues ─────────────────────────────────────────────────────────

    async def create_venue(self, data: VenueCreate, actor: User) -> Venue:
        venue = await self._venue_store.create_venue(
            data, submitted_by=actor.id, verified=actor.is_admin
        )
        logger.info("venue_created", venue_id=venue.id, verified=venue.verified)
        if self._notifier is not None:
            await self._notifier.notify_new_venue(venue, actor.email)
        return venue

    async def find_or_create_venue(
        self,
        name: str,
        city: str,
        state: str,
        *,
        address: str | None = None,
        zipcode: str | None = None,
        submitted_by: int | None = None,
        is_admin: bool = False,
    ) -> tuple[Venue, bool]:
        if not name.strip() or not city.strip():
            raise ValidationError("venue name and city are required", code="VENUE_REQUIRED")
        return await self._venue_store.find_or_create_venue(
            name,
            city,
            state,
            address=address,
            zipcode=zipcode,
            submitted_by=submitted_by,
            verified=is_admin,
        )

    async def get_venue(self, venue_id: int) -> Venue:
        venue = await self._venue_store.get_venue(venue_id)
        if venue is None:
            raise VenueNotFoundError(venue_id)
        return venue

    async def get_venue_by_slug(self, slug: str) -> Venue:
        venue = await self._venue_store.get_venue_by_slug(slug)
        if venue is None:
            raise VenueNotFoundError(slug)
        return venue

    async def list_venues(
        self,
        *,
        city: str | None = None,
        state: str | None = None,
        verified: bool | None = True,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Venue], int]:
        return await self._venue_store.list_venues(
            city=city, state=state, verified=verified, limit=_clamp(limit), offset=max(0, offset)
        )

    async def search_venues(self, query: str, limit: int = 20) -> list[Venue]:
        query = (query or "").strip()
        if not query:
            return []
        return await self._venue_store.search_venues(query, _clamp(limit, 20))

    async def get_venue_cities(self) -> list[VenueCity]:
        return await self._venue_store.get_venue_cities()

    async def get_unverified_venues(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[Venue], int]:
        return await self._venue_store.list_venues(
            verified=False, limit=_clamp(limit), offset=max(0, offset)
        )

    async def verify_venue(self, venue_id: int, actor: User) -> Venue:
        _require_admin(actor)
        venue = await self.get_venue(venue_id)
        if venue.verified:
            raise InvalidTransitionError("venue is already verified", current_status="verified")
        if not await self._venue_store.verify_venue(venue_id):
            raise InvalidTransitionError("venue is already verified", current_status="verified")
        await self._audit("verify_venue", actor, "venue", venue_id, {"name": venue.name})
        return await self.get_venue(venue_id)

    # ── Pending edits ──────────────────────────────────────────────────

    async def create_pending_edit(
        self, venue_id: int, actor: User, changes: VenueChanges
    ) -> tuple[Venue, PendingVenueEdit | None]:
        """Propose changes to a venue.

        Returns ``(venue, edit)``.  For admins the changes are applied
        immediately and ``edit`` is None; everyone else gets a pending
        edit and an unchanged venue.
        """
        fields = changes.non_null()
        if not fields:
            raise ValidationError("no changes provided", code="EMPTY_CHANGES")
        venue = await self.get_venue(venue_id)

        if actor.is_admin:
            updated = await self._venue_store.update_venue(venue_id, fields)
            if updated is None:
                raise VenueNotFoundError(venue_id)
            logger.info("venue_updated_directly", venue_id=venue_id, fields=sorted(fields))
            await self._audit("edit_venue", actor, "venue", venue_id, {"fields": sorted(fields)})
            return updated, None

        edit = await self._venue_store.upsert_pending_edit(venue_id, actor.id, changes)
        if self._notifier is not None:
            await self._notifier.notify_pending_venue_edit(edit, venue, actor.email)
        return venue, edit

    async def get_pending_edit_for_venue(
        self, venue_id: int, user_id: int
    ) -> PendingVenueEdit | None:
        return await self._venue_store.get_pending_edit_for_venue(venue_id, user_id)

    async def get_pending_edits(
        self, limit: int = 50, offset: int = 0
    ) -> tuple[list[PendingVenueEdit], int]:
        return await self._venue_store.list_pending_edits(_clamp(limit), max(0, offset))

    async def _require_pending_edit(self, edit_id: int) -> PendingVenueEdit:
        edit = await self._venue_store.get_pending_edit(edit_id)
        if edit is None:
            raise VenueEditNotFoundError(edit_id)
        if edit.status != VenueEditStatus.PENDING:
            raise InvalidTransitionError(
                f"venue edit is already {edit.status.value}", current_status=edit.status.value
            )
        return edit

    async def approve_edit(self, edit_id: int, actor: User) -> Venue:
        _require_admin(actor)
        edit = await self._require_pending_edit(edit_id)
        venue = await self._venue_store.approve_edit(edit_id, actor.id)
        if venue is None:
            raise InvalidTransitionError("venue edit is no longer pending")
        await self._audit(
            "approve_venue_edit",
            actor,
            "venue_edit",
            edit_id,
            {"venue_id": edit.venue_id, "fields": sorted(edit.changes.non_null())},
        )
        return venue

    async def reject_edit(self, edit_id: int, actor: User, reason: str) -> PendingVenueEdit:
        _require_admin(actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("a rejection reason is required", code="REASON_REQUIRED")
        edit = await self._require_pending_edit(edit_id)
        if not await self._venue_store.reject_edit(edit_id, actor.id, reason):
            raise InvalidTransitionError("venue edit is no longer pending")
        await self._audit(
            "reject_venue_edit",
            actor,
            "venue_edit",
            edit_id,
            {"venue_id": edit.venue_id, "reason": reason},
        )
        rejected = await self._venue_store.get_pending_edit(edit_id)
        if rejected is None:
            raise VenueEditNotFoundError(edit_id)
        return rejected

    async def cancel_edit(self, edit_id: int, actor: User) -> None:
        edit = await self._require_pending_edit(edit_id)
        if edit.submitted_by != actor.id:
            raise PermissionDeniedError("only the submitter may cancel this edit")
        if not await self._venue_store.delete_pending_edit(edit_id, actor.id):
            raise VenueEditNotFoundError(edit_id)
        logger.info("venue_edit_cancelled", edit_id=edit_id)

    async def _audit(
        self, action: str, actor: User, entity_type: str, entity_id: int, metadata: dict
    ) -> None:
        if self._audit_log is not None:
            await self._audit_log.log_action(actor.id, action, entity_type, entity_id, metadata)
