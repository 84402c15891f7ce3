"""Show orchestration: submission, duplicate detection and moderation.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services (business logic orchestration).
# Depends on: IShowProvider, IVenueProvider, IUserProvider,
#             INotificationProvider, AuditLogService, AdvisoryLockRegistry.
#
# ShowService owns the rules around a show's lifecycle:
#
#   1. SUBMISSION: validate the draft, choose the initial status
#      (private / approved / pending), then create it under an advisory
#      lock keyed by (venue, day) so two identical submissions cannot
#      both pass duplicate detection.
#   2. DUPLICATE DETECTION: the provider compares headliners of shows
#      already at the venue that day.  User submissions are refused with
#      DuplicateShowError; discovery imports are kept as pending rows
#      pointing at the original via duplicate_of_show_id.
#   3. MODERATION: a small state machine (see _TRANSITIONS) where every
#      step is a guarded status UPDATE in the provider.  A transition that
#      loses a race reports InvalidTransitionError, never a silent no-op.
#   4. FAN-OUT: admin transitions write an audit entry; every transition
#      sends a Discord embed.  Neither can fail the request.
#
# Listings use cursor pagination for the public upcoming feed (stable
# under inserts) and limit/offset for admin queues.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.interfaces.show_provider import IShowProvider
from psychic_homily.interfaces.user_provider import IUserProvider
from psychic_homily.interfaces.venue_provider import IVenueProvider
from psychic_homily.models.show import (
    Show,
    ShowCity,
    ShowDraft,
    ShowSource,
    ShowStatus,
    ShowUpdate,
    UpcomingShowsPage,
)
from psychic_homily.models.user import User
from psychic_homily.services.audit_log_service import AuditLogService
from psychic_homily.utils.concurrency import AdvisoryLockRegistry
from psychic_homily.utils.dates import ensure_utc, start_of_today, utc_day_bounds
from psychic_homily.utils.errors import (
    DuplicateShowError,
    InvalidTransitionError,
    PermissionDeniedError,
    ShowNotFoundError,
    ValidationError,
    VenueNotFoundError,
)
from psychic_homily.utils.text_normalizer import headliners_match, normalize_name

logger = structlog.get_logger(logger_name=__name__)

# ── Constants ─────────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
_MAX_TITLE_LENGTH = 255


@dataclass(frozen=True)
class _Transition:
    from_statuses: tuple[ShowStatus, ...]
    to_status: ShowStatus
    admin_only: bool


_TRANSITIONS: dict[str, _Transition] = {
    "approve": _Transition((ShowStatus.PENDING, ShowStatus.REJECTED), ShowStatus.APPROVED, True),
    "reject": _Transition((ShowStatus.PENDING,), ShowStatus.REJECTED, True),
    "unpublish": _Transition((ShowStatus.APPROVED,), ShowStatus.PRIVATE, False),
    "make_private": _Transition((ShowStatus.PENDING,), ShowStatus.PRIVATE, False),
    "publish": _Transition((ShowStatus.PRIVATE,), ShowStatus.APPROVED, False),
}


# ── Cursor encoding ───────────────────────────────────────────────────

def encode_cursor(event_date: datetime, show_id: int) -> str:
    """Opaque cursor for the row *after which* the next page starts."""
    raw = f"{int(ensure_utc(event_date).timestamp())}:{show_id}"
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime, int]:
    """Inverse of :func:`encode_cursor`; raises ValidationError on garbage."""
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        seconds, show_id = raw.split(":", 1)
        return datetime.fromtimestamp(int(seconds), tz=timezone.utc), int(show_id)
    except (binascii.Error, UnicodeDecodeError, ValueError, OverflowError) as exc:
        raise ValidationError("invalid cursor", code="INVALID_CURSOR") from exc


def _clamp(limit: int, default: int = DEFAULT_PAGE_SIZE) -> int:
    if limit <= 0:
        return default
    return min(limit, MAX_PAGE_SIZE)


class ShowService:
    """Orchestrates show submission and moderation.

    All dependencies are constructor-injected; the notifier and audit log
    are optional so unit tests can exercise the core rules alone.
    """

    def __init__(
        self,
        show_store: IShowProvider,
        venue_store: IVenueProvider,
        *,
        user_store: IUserProvider | None = None,
        notifier: INotificationProvider | None = None,
        audit_log: AuditLogService | None = None,
        locks: AdvisoryLockRegistry | None = None,
        duplicate_fuzzy_threshold: float = 1.0,
        duplicate_window_days: int = 0,
        default_timezone: str = "America/Phoenix",
    ) -> None:
        self._show_store = show_store
        self._venue_store = venue_store
        self._user_store = user_store
        self._notifier = notifier
        self._audit_log = audit_log
        self._locks = locks or AdvisoryLockRegistry()
        self._fuzzy_threshold = duplicate_fuzzy_threshold
        self._window_days = duplicate_window_days
        self._default_timezone = default_timezone

    @property
    def default_timezone(self) -> str:
        return self._default_timezone

    # ── Submission ─────────────────────────────────────────────────────

    def headliners_match(self, existing: str, candidate: str) -> bool:
        return headliners_match(existing, candidate, self._fuzzy_threshold)

    async def create_show(self, draft: ShowDraft) -> Show:
        """Validate, de-duplicate and persist a new show.

        Raises
        ------
        ValidationError
            Missing venues/artists or an over-long title.
        DuplicateShowError
            A user submission whose headliner already plays that venue
            that day.
        """
        self._validate_draft(draft)
        if not draft.title.strip():
            draft = draft.model_copy(update={"title": self._default_title(draft)})

        status = await self._initial_status(draft)
        lock_keys = await self._lock_keys(draft)
        window = utc_day_bounds(draft.event_date, self._window_days)

        async with self._locks.hold_many(lock_keys):
            try:
                show = await self._show_store.create_show(
                    draft,
                    status,
                    duplicate_window=window,
                    headliner_matcher=self.headliners_match,
                )
            except DuplicateShowError as exc:
                logger.info(
                    "duplicate_show_detected",
                    existing_show_id=exc.existing_show_id,
                    source=draft.source.value,
                    headliner=draft.headliner_name(),
                )
                if draft.source != ShowSource.DISCOVERY:
                    raise
                flagged = draft.model_copy(
                    update={"duplicate_of_show_id": exc.existing_show_id}
                )
                show = await self._show_store.create_show(flagged, ShowStatus.PENDING)

        # Bulk imports are summarised by the import result, not one embed each.
        if self._notifier is not None and draft.source == ShowSource.USER:
            await self._notifier.notify_new_show(show, await self._email_for(show.submitted_by))
        return show

    @staticmethod
    def _validate_draft(draft: ShowDraft) -> None:
        if not draft.venues:
            raise ValidationError("at least one venue is required", code="VENUE_REQUIRED")
        if not draft.artists:
            raise ValidationError("at least one artist is required", code="ARTIST_REQUIRED")
        if len(draft.title) > _MAX_TITLE_LENGTH:
            raise ValidationError(
                f"title must be at most {_MAX_TITLE_LENGTH} characters", code="TITLE_TOO_LONG"
            )

    @staticmethod
    def _default_title(draft: ShowDraft) -> str:
        names = [a.name.strip() for a in draft.artists if a.name.strip()]
        return ", ".join(names)[:_MAX_TITLE_LENGTH] or "Untitled show"

    async def _initial_status(self, draft: ShowDraft) -> ShowStatus:
        if draft.is_private:
            return ShowStatus.PRIVATE
        if draft.submitter_is_admin or draft.source == ShowSource.DISCOVERY:
            # Imports come from an admin-triggered scrape of a known venue.
            return ShowStatus.APPROVED
        for ref in draft.venues:
            if ref.id is not None:
                venue = await self._venue_store.get_venue(ref.id)
            else:
                venue = await self._venue_store.find_venue_by_name(
                    ref.name, ref.city or draft.city or ""
                )
            if venue is None or not venue.verified:
                return ShowStatus.PENDING
        return ShowStatus.APPROVED

    async def _lock_keys(self, draft: ShowDraft) -> list[tuple[str, str]]:
        # Keyed on the UTC calendar day, same as the duplicate window in
        # utc_day_bounds.  A late local show can land on the next UTC day.
        day = ensure_utc(draft.event_date).strftime("%Y-%m-%d")
        keys: list[tuple[str, str]] = []
        for ref in draft.venues:
            name = ref.name
            if ref.id is not None:
                venue = await self._venue_store.get_venue(ref.id)
                if venue is None:
                    raise VenueNotFoundError(ref.id)
                name = venue.name
            keys.append((normalize_name(name), day))
        return keys

    async def _email_for(self, user_id: int | None) -> str | None:
        if user_id is None or self._user_store is None:
            return None
        user = await self._user_store.get_user(user_id)
        return user.email if user else None

    # ── Reads ──────────────────────────────────────────────────────────

    async def get_show(self, show_id: int, viewer: User | None = None) -> Show:
        show = await self._show_store.get_show(show_id)
        return self._visible_or_404(show, show_id, viewer)

    async def get_show_by_slug(self, slug: str, viewer: User | None = None) -> Show:
        show = await self._show_store.get_show_by_slug(slug)
        return self._visible_or_404(show, slug, viewer)

    @staticmethod
    def _visible_or_404(show: Show | None, ref: int | str, viewer: User | None) -> Show:
        if show is None:
            raise ShowNotFoundError(ref)
        if show.status == ShowStatus.APPROVED:
            return show
        # Non-public shows are only visible to their submitter and admins.
        if viewer is not None and (viewer.is_admin or show.is_owned_by(viewer.id)):
            return show
        raise ShowNotFoundError(ref)

    async def _require_show(self, show_id: int) -> Show:
        show = await self._show_store.get_show(show_id)
        if show is None:
            raise ShowNotFoundError(show_id)
        return show

    async def list_user_submissions(
        self, user_id: int, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> tuple[list[Show], int]:
        return await self._show_store.list_shows(
            submitted_by=user_id, limit=_clamp(limit), offset=max(0, offset)
        )

    async def get_upcoming_shows(
        self,
        *,
        timezone_name: str | None = None,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        include_non_approved: bool = False,
        city: str | None = None,
        state: str | None = None,
        now: datetime | None = None,
    ) -> UpcomingShowsPage:
        """One page of upcoming shows ordered by ``(event_date, id)``.

        "Upcoming" starts at midnight today in ``timezone_name`` so a show
        earlier this evening still lists.  The admin view
        (``include_non_approved``) shows every status except private.
        """
        limit = _clamp(limit)
        start = start_of_today(timezone_name or self._default_timezone, now)
        after = decode_cursor(cursor) if cursor else None
        if include_non_approved:
            statuses, excluded = None, [ShowStatus.PRIVATE]
        else:
            statuses, excluded = [ShowStatus.APPROVED], None

        rows = await self._show_store.get_upcoming_shows(
            start=start,
            statuses=statuses,
            exclude_statuses=excluded,
            after=after,
            limit=limit + 1,
            city=city,
            state=state,
        )
        has_more = len(rows) > limit
        shows = rows[:limit]
        next_cursor = encode_cursor(shows[-1].event_date, shows[-1].id) if has_more else None
        return UpcomingShowsPage(shows=shows, next_cursor=next_cursor, has_more=has_more)

    async def get_show_cities(
        self, timezone_name: str | None = None, now: datetime | None = None
    ) -> list[ShowCity]:
        start = start_of_today(timezone_name or self._default_timezone, now)
        return await self._show_store.get_show_cities(start)

    async def get_pending_shows(
        self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> tuple[list[Show], int]:
        return await self._show_store.list_shows(
            statuses=[ShowStatus.PENDING], limit=_clamp(limit), offset=max(0, offset)
        )

    async def get_rejected_shows(
        self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0, search: str | None = None
    ) -> tuple[list[Show], int]:
        return await self._show_store.list_shows(
            statuses=[ShowStatus.REJECTED],
            search=search or None,
            limit=_clamp(limit),
            offset=max(0, offset),
        )

    async def list_admin_shows(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
        *,
        status: ShowStatus | None = None,
        city: str | None = None,
        state: str | None = None,
    ) -> tuple[list[Show], int]:
        return await self._show_store.list_shows(
            statuses=[status] if status else None,
            city=city,
            state=state,
            limit=_clamp(limit),
            offset=max(0, offset),
        )

    # ── Owner edits ────────────────────────────────────────────────────

    @staticmethod
    def _require_owner_or_admin(show: Show, actor: User) -> None:
        if not (actor.is_admin or show.is_owned_by(actor.id)):
            raise PermissionDeniedError("only the submitter or an admin may modify this show")

    @staticmethod
    def _require_admin(actor: User) -> None:
        if not actor.is_admin:
            raise PermissionDeniedError("admin access required", code="ADMIN_REQUIRED")

    async def update_show(self, show_id: int, updates: ShowUpdate, actor: User) -> Show:
        show = await self._require_show(show_id)
        self._require_owner_or_admin(show, actor)

        fields = updates.model_dump(exclude_none=True)
        if "title" in fields:
            fields["title"] = fields["title"].strip()
            if not fields["title"]:
                raise ValidationError("title cannot be empty", code="TITLE_REQUIRED")
            if len(fields["title"]) > _MAX_TITLE_LENGTH:
                raise ValidationError(
                    f"title must be at most {_MAX_TITLE_LENGTH} characters",
                    code="TITLE_TOO_LONG",
                )
        if not fields:
            return show

        updated = await self._show_store.update_show(show_id, fields)
        if updated is None:
            raise ShowNotFoundError(show_id)
        if actor.is_admin and not show.is_owned_by(actor.id):
            await self._audit("edit_show", actor, show_id, {"fields": sorted(fields)})
        return updated

    async def delete_show(self, show_id: int, actor: User) -> None:
        show = await self._require_show(show_id)
        self._require_owner_or_admin(show, actor)
        if not await self._show_store.delete_show(show_id):
            raise ShowNotFoundError(show_id)
        if actor.is_admin and not show.is_owned_by(actor.id):
            await self._audit("delete_show", actor, show_id, {"title": show.title})

    # ── Moderation state machine ───────────────────────────────────────

    async def _transition(
        self,
        operation: str,
        show_id: int,
        actor: User,
        *,
        rejection_reason: str | None = None,
        clear_rejection_reason: bool = False,
    ) -> tuple[Show, ShowStatus]:
        rule = _TRANSITIONS[operation]
        show = await self._require_show(show_id)
        if rule.admin_only:
            self._require_admin(actor)
        else:
            self._require_owner_or_admin(show, actor)

        if show.status not in rule.from_statuses:
            raise InvalidTransitionError(
                f"cannot {operation.replace('_', ' ')} a show that is {show.status.value}",
                current_status=show.status.value,
            )

        changed = await self._show_store.transition_status(
            show_id,
            list(rule.from_statuses),
            rule.to_status,
            rejection_reason=rejection_reason,
            clear_rejection_reason=clear_rejection_reason,
        )
        if not changed:
            # Another request moved the show between our read and the update.
            current = await self._require_show(show_id)
            raise InvalidTransitionError(
                f"cannot {operation.replace('_', ' ')} a show that is {current.status.value}",
                current_status=current.status.value,
            )

        updated = await self._require_show(show_id)
        logger.info(
            "show_status_transition",
            show_id=show_id,
            operation=operation,
            from_status=show.status.value,
            to_status=rule.to_status.value,
            actor_id=actor.id,
        )
        return updated, show.status

    async def approve_show(self, show_id: int, actor: User, verify_venues: bool = False) -> Show:
        show, previous = await self._transition(
            "approve", show_id, actor, clear_rejection_reason=True
        )
        verified = 0
        if verify_venues:
            verified = await self._show_store.verify_show_venues(show_id)
            if verified:
                show = await self._require_show(show_id)
        logger.info("show_approved", show_id=show_id, venues_verified=verified)
        await self._audit(
            "approve_show",
            actor,
            show_id,
            {"previous_status": previous.value, "venues_verified": verified},
        )
        if self._notifier is not None:
            await self._notifier.notify_show_approved(show)
        return show

    async def reject_show(self, show_id: int, reason: str, actor: User) -> Show:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("a rejection reason is required", code="REASON_REQUIRED")
        show, previous = await self._transition(
            "reject", show_id, actor, rejection_reason=reason
        )
        logger.info("show_rejected", show_id=show_id)
        await self._audit(
            "reject_show", actor, show_id, {"previous_status": previous.value, "reason": reason}
        )
        if self._notifier is not None:
            await self._notifier.notify_show_rejected(show, reason)
        return show

    async def _owner_transition(self, operation: str, show_id: int, actor: User) -> Show:
        show, previous = await self._transition(operation, show_id, actor)
        if self._notifier is not None:
            await self._notifier.notify_show_status_change(
                show, previous.value, show.status.value, actor.email
            )
        return show

    async def unpublish_show(self, show_id: int, actor: User) -> Show:
        return await self._owner_transition("unpublish", show_id, actor)

    async def make_private(self, show_id: int, actor: User) -> Show:
        return await self._owner_transition("make_private", show_id, actor)

    async def publish_show(self, show_id: int, actor: User) -> Show:
        return await self._owner_transition("publish", show_id, actor)

    # ── Admin flags ────────────────────────────────────────────────────

    async def _set_flag(self, show_id: int, flag: str, value: bool, actor: User) -> Show:
        self._require_admin(actor)
        if not await self._show_store.set_flag(show_id, flag, value):
            raise ShowNotFoundError(show_id)
        await self._audit(f"set_{flag.removeprefix('is_')}", actor, show_id, {"value": value})
        return await self._require_show(show_id)

    async def set_sold_out(self, show_id: int, value: bool, actor: User) -> Show:
        return await self._set_flag(show_id, "is_sold_out", value, actor)

    async def set_cancelled(self, show_id: int, value: bool, actor: User) -> Show:
        return await self._set_flag(show_id, "is_cancelled", value, actor)

    async def _audit(self, action: str, actor: User, show_id: int, metadata: dict) -> None:
        if self._audit_log is not None:
            await self._audit_log.log_action(actor.id, action, "show", show_id, metadata)
