"""
Tests for EventService - event lifecycle.

Tests cover:
- Creation with invitations and notifications
- Organizer edits and the time-changed notification
- Cancellation as a tombstone
- Visibility and calendar listing
"""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.config import JITSI_BASE_URL
from app.domain.events.schemas import EventCreate, EventUpdate
from app.models import InvitationStatus
from app.services.notification_service import (
    EVENT_CANCELLED,
    EVENT_TIME_CHANGED,
    INVITATION_CREATED,
)
from app.shared.exceptions import InvalidTimezone, NotAuthorized, NotFound, ValidationError


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def organizer(user_factory):
    return user_factory("olivia@example.com", "Olivia", "Europe/Madrid")


@pytest.fixture
def guest(user_factory):
    return user_factory("gus@example.com", "Gus", "America/New_York")


class TestCreateEvent:
    """Event creation."""

    def test_creates_pending_invitation_per_distinct_participant(
        self, event_service, organizer, guest, published
    ):
        data = EventCreate(
            title="Planning",
            startInstant=utc(2025, 10, 22, 9),
            endInstant=utc(2025, 10, 22, 10),
            participants=["GUS@example.com", "gus@example.com", "olivia@example.com", "new@example.com"],
        )
        event = event_service.create_event(data, organizer)

        assert event.organizer_id == organizer.id
        assert event.organizer_timezone == "Europe/Madrid"
        assert sorted(i.recipient_email for i in event.invitations) == ["gus@example.com", "new@example.com"]
        assert all(i.status == InvitationStatus.PENDING.value for i in event.invitations)
        assert [e.name for e in published] == [INVITATION_CREATED, INVITATION_CREATED]
        assert {e.recipients for e in published} == {("gus@example.com",), ("new@example.com",)}

    def test_explicit_organizer_timezone(self, event_factory, organizer):
        event = event_factory(
            organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), organizerTimezone="Asia/Tokyo"
        )
        assert event.organizer_timezone == "Asia/Tokyo"

    def test_invalid_organizer_timezone(self, event_factory, organizer):
        with pytest.raises(InvalidTimezone):
            event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), organizerTimezone="Nowhere/Land")

    def test_end_must_follow_start(self, event_factory, organizer):
        with pytest.raises(ValidationError):
            event_factory(organizer, utc(2025, 10, 22, 10), utc(2025, 10, 22, 10))

    def test_invalid_participant(self, event_factory, organizer):
        with pytest.raises(ValidationError):
            event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), participants=["nope"])

    def test_naive_times_are_utc(self, event_factory, organizer):
        event = event_factory(organizer, datetime(2025, 10, 22, 9), datetime(2025, 10, 22, 10))
        assert event.start_instant == utc(2025, 10, 22, 9)

    def test_meeting_link_generated_when_missing(self, event_factory, organizer, published):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), participants=["gus@example.com"])
        assert event.video_conference_link.startswith(JITSI_BASE_URL)
        assert len(event.video_conference_link) > len(JITSI_BASE_URL)
        assert published[0].payload["video_conference_link"] == event.video_conference_link

    def test_meeting_links_are_unique(self, event_factory, organizer):
        first = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        second = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        assert first.video_conference_link != second.video_conference_link

    def test_provided_meeting_link_kept(self, event_factory, organizer):
        event = event_factory(
            organizer,
            utc(2025, 10, 22, 9),
            utc(2025, 10, 22, 10),
            videoConferenceLink="https://zoom.example.com/j/42",
        )
        assert event.video_conference_link == "https://zoom.example.com/j/42"

    def test_meeting_link_must_be_url(self):
        with pytest.raises(PydanticValidationError):
            EventCreate(
                title="Bad link",
                startInstant=utc(2025, 10, 22, 9),
                endInstant=utc(2025, 10, 22, 10),
                videoConferenceLink="call me maybe",
            )


class TestUpdateEvent:
    """Organizer edits."""

    def test_time_edit_notifies_and_keeps_proposals(
        self, event_service, invitation_service, event_factory, organizer, guest, invitation_for, published
    ):
        from app.domain.invitations.schemas import ResponsePayload

        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), participants=[guest.email])
        invitation = invitation_for(event, guest.email)
        invitation_service.respond_to_invitation(
            invitation.id,
            guest,
            "propose",
            ResponsePayload(proposedStart=utc(2025, 10, 22, 14), proposedEnd=utc(2025, 10, 22, 15)),
        )
        published.clear()

        updated = event_service.update_event(
            event.id,
            EventUpdate(startInstant=utc(2025, 10, 22, 11), endInstant=utc(2025, 10, 22, 12)),
            organizer,
        )

        assert updated.start_instant == utc(2025, 10, 22, 11)
        assert updated.version > 1
        assert invitation.status == InvitationStatus.PROPOSED.value
        [notice] = published
        assert notice.name == EVENT_TIME_CHANGED
        assert notice.recipients == (guest.email,)
        assert notice.payload["reason"] == "organizer_edit"

    def test_title_only_edit_does_not_notify(self, event_service, event_factory, organizer, published):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        published.clear()
        updated = event_service.update_event(event.id, EventUpdate(title="Renamed"), organizer)
        assert updated.title == "Renamed"
        assert published == []

    def test_partial_time_edit_validated_against_existing_end(self, event_service, event_factory, organizer):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        with pytest.raises(ValidationError):
            event_service.update_event(event.id, EventUpdate(startInstant=utc(2025, 10, 22, 10, 30)), organizer)
        assert event.start_instant == utc(2025, 10, 22, 9)

    def test_explicit_meeting_link_replaces_existing(self, event_service, event_factory, organizer):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        updated = event_service.update_event(
            event.id, EventUpdate(videoConferenceLink="https://meet.example.com/team"), organizer
        )
        assert updated.video_conference_link == "https://meet.example.com/team"

    def test_missing_meeting_link_regenerated_on_edit(self, db, event_service, event_factory, organizer):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        event.video_conference_link = None
        db.commit()

        updated = event_service.update_event(event.id, EventUpdate(title="Renamed"), organizer)
        assert updated.video_conference_link.startswith(JITSI_BASE_URL)

    def test_existing_meeting_link_survives_edit(self, event_service, event_factory, organizer):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        link = event.video_conference_link
        updated = event_service.update_event(event.id, EventUpdate(title="Renamed"), organizer)
        assert updated.video_conference_link == link

    def test_only_organizer_edits(self, event_service, event_factory, organizer, guest):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), participants=[guest.email])
        with pytest.raises(NotAuthorized):
            event_service.update_event(event.id, EventUpdate(title="Mine now"), guest)


class TestDeleteEvent:
    """Cancellation."""

    def test_tombstone_and_notify(self, event_service, event_factory, organizer, guest, published):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), participants=[guest.email])
        published.clear()

        cancelled = event_service.delete_event(event.id, organizer)

        assert cancelled.is_cancelled
        assert cancelled.invitations
        assert [(e.name, e.recipients) for e in published] == [(EVENT_CANCELLED, (guest.email,))]
        with pytest.raises(NotFound):
            event_service.get_event(event.id, organizer)
        with pytest.raises(NotFound):
            event_service.delete_event(event.id, organizer)

    def test_only_organizer_deletes(self, event_service, event_factory, organizer, guest):
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), participants=[guest.email])
        with pytest.raises(NotAuthorized):
            event_service.delete_event(event.id, guest)


class TestVisibility:
    """Who may read an event."""

    def test_organizer_and_invitee_can_read(self, event_service, event_factory, organizer, guest, user_factory):
        stranger = user_factory("sam@example.com")
        event = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10), participants=[guest.email])

        assert event_service.get_event(event.id, organizer).id == event.id
        assert event_service.get_event(event.id, guest).id == event.id
        with pytest.raises(NotAuthorized):
            event_service.get_event(event.id, stranger)

    def test_missing_event(self, event_service, organizer):
        with pytest.raises(NotFound):
            event_service.get_event("missing", organizer)


class TestListEvents:
    """Calendar listing by local day, week and month."""

    def test_day_listing_in_viewer_timezone(self, event_service, event_factory, organizer, guest):
        # 23:30 UTC on Oct 21 is 19:30 on Oct 21 in New York but 01:30 on Oct 22 in Madrid
        late = event_factory(organizer, utc(2025, 10, 21, 23, 30), utc(2025, 10, 22, 0), participants=[guest.email])
        morning = event_factory(organizer, utc(2025, 10, 22, 14), utc(2025, 10, 22, 15), participants=[guest.email])

        madrid = event_service.list_events(organizer, unit="day", reference_date=date(2025, 10, 22))
        assert madrid.timezone == "Europe/Madrid"
        assert [e.id for e in madrid.events] == [late.id, morning.id]

        new_york = event_service.list_events(guest, unit="day", reference_date=date(2025, 10, 22))
        assert [e.id for e in new_york.events] == [morning.id]

        override = event_service.list_events(
            guest, unit="day", reference_date=date(2025, 10, 22), viewer_timezone="Europe/Madrid"
        )
        assert [e.id for e in override.events] == [late.id, morning.id]

    def test_explicit_range(self, event_service, event_factory, organizer):
        inside = event_factory(organizer, utc(2025, 11, 3, 9), utc(2025, 11, 3, 10))
        event_factory(organizer, utc(2025, 11, 10, 9), utc(2025, 11, 10, 10))

        listing = event_service.list_events(
            organizer, range_start=utc(2025, 11, 1), range_end=utc(2025, 11, 5)
        )
        assert [e.id for e in listing.events] == [inside.id]
        assert listing.range.start == utc(2025, 11, 1)

    def test_cancelled_and_foreign_events_hidden(
        self, event_service, event_factory, organizer, guest, user_factory
    ):
        stranger = user_factory("sam@example.com", timezone="Europe/Madrid")
        visible = event_factory(organizer, utc(2025, 10, 22, 9), utc(2025, 10, 22, 10))
        gone = event_factory(organizer, utc(2025, 10, 22, 11), utc(2025, 10, 22, 12))
        event_factory(stranger, utc(2025, 10, 22, 13), utc(2025, 10, 22, 14))
        event_service.delete_event(gone.id, organizer)

        listing = event_service.list_events(organizer, unit="week", reference_date=date(2025, 10, 22))
        assert [e.id for e in listing.events] == [visible.id]

    def test_month_listing_range(self, event_service, organizer):
        listing = event_service.list_events(organizer, unit="month", reference_date=date(2025, 3, 15))
        # Madrid switches from +01:00 to +02:00 on March 30th
        assert listing.range.start == utc(2025, 2, 28, 23)
        assert listing.range.end == utc(2025, 3, 31, 22)
