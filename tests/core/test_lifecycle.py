"""End-to-end complaint lifecycle scenarios on in-memory collaborators."""

import asyncio

import pytest

from civic_core_lib.auth import Actor, UserRole
from civic_core_lib.core import ComplaintLifecycle
from civic_core_lib.errors import (
    DependencyUnavailable,
    InvalidTransition,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from civic_core_lib.models import (
    Category,
    ComplaintDraft,
    ComplaintStatus,
    GeoPoint,
    Officer,
    PhotoUpload,
    Priority,
)
from civic_core_lib.repositories import InMemoryComplaintRepository, InMemoryMediaStore

from conftest import FAR_AWAY, HOSPITAL, north_of

OFFICER = Actor(user_id="road-c", role=UserRole.OFFICER)
ADMIN = Actor(user_id="admin-1", role=UserRole.ADMIN)
CITIZEN = Actor(user_id="citizen-1", role=UserRole.CITIZEN)


class FailingMediaStore(InMemoryMediaStore):
    async def store(self, key, content, content_type=None):
        raise ConnectionError("bucket unreachable")


class SlowAckComplaintRepository(InMemoryComplaintRepository):
    """Commits the update, then stalls past the caller's timeout."""

    async def update(self, complaint_id, patch):
        updated = await super().update(complaint_id, patch)
        await asyncio.sleep(1)
        return updated


def draft(category="road", location=FAR_AWAY, **extra):
    data = {
        "user_id": "citizen-1",
        "category": category,
        "description": "Large pothole on main road",
        "location": location.model_dump() if location is not None else None,
    }
    data.update(extra)
    return data


def assert_timeline_consistent(complaint):
    assert complaint.timeline[0].status == ComplaintStatus.SUBMITTED
    assert complaint.timeline[-1].status == complaint.status
    stamps = [entry.timestamp for entry in complaint.timeline]
    assert stamps == sorted(stamps)
    assert (complaint.resolved_at is not None) == (complaint.status == ComplaintStatus.RESOLVED)


class TestCreateComplaint:
    @pytest.mark.asyncio
    async def test_road_complaint_is_routed_to_least_loaded_officer(self, lifecycle, officers, complaints):
        result = await lifecycle.create_complaint(draft())

        complaint = result.complaint
        assert complaint.complaint_id.startswith("CMP")
        assert complaint.priority == Priority.NORMAL
        assert complaint.status == ComplaintStatus.ASSIGNED
        assert complaint.assigned_department == "roads"
        assert complaint.assigned_officer == "road-c"
        assert result.assigned_officer.officer_id == "road-c"
        assert result.warnings == []
        assert [e.status for e in complaint.timeline] == [ComplaintStatus.SUBMITTED, ComplaintStatus.ASSIGNED]
        assert complaint.timeline[0].note == "Complaint submitted"
        assert await complaints.get(complaint.complaint_id) == complaint
        assert (await officers.get("road-c")).assigned_count == 1
        assert_timeline_consistent(complaint)

    @pytest.mark.asyncio
    async def test_accepts_a_draft_model(self, lifecycle):
        result = await lifecycle.create_complaint(
            ComplaintDraft(user_id="citizen-2", category=Category.GARBAGE, description="Overflowing bin")
        )
        assert result.complaint.assigned_department == "sanitation"
        assert result.complaint.location is None

    @pytest.mark.asyncio
    async def test_near_hospital_is_high(self, lifecycle):
        result = await lifecycle.create_complaint(draft(location=north_of(HOSPITAL, 50)))

        assert result.complaint.priority == Priority.HIGH
        assert "Near City Hospital" in result.complaint.priority_reasons

    @pytest.mark.asyncio
    async def test_third_nearby_water_complaint_is_critical(self, lifecycle):
        first = await lifecycle.create_complaint(draft(category="water", location=FAR_AWAY))
        second = await lifecycle.create_complaint(draft(category="water", location=north_of(FAR_AWAY, 200)))
        third = await lifecycle.create_complaint(draft(category="water", location=north_of(FAR_AWAY, 400)))

        assert first.complaint.priority == Priority.NORMAL
        assert second.complaint.priority == Priority.NORMAL
        assert third.complaint.priority == Priority.CRITICAL
        assert third.complaint.priority_reasons == ["3 similar reports in area"]

    @pytest.mark.asyncio
    async def test_no_officer_available_is_a_warning(self, lifecycle, complaints):
        result = await lifecycle.create_complaint(draft(category="electricity"))

        assert result.complaint.status == ComplaintStatus.SUBMITTED
        assert result.assigned_officer is None
        assert result.warnings == ["No officers available; complaint remains unassigned"]
        stored = await complaints.get(result.complaint.complaint_id)
        assert stored.assigned_officer is None

    @pytest.mark.asyncio
    async def test_unmapped_category_is_a_warning(self, settings, complaints, officers, media, sink, clock):
        settings = settings.model_copy(update={
            "departments": [d for d in settings.departments if d.department_id != "water"]
        })
        lifecycle = ComplaintLifecycle(settings, complaints, officers, media, sink, clock=clock)

        result = await lifecycle.create_complaint(draft(category="water"))

        assert result.complaint.status == ComplaintStatus.SUBMITTED
        assert "No department found for category" in result.warnings[0]
        assert await complaints.get(result.complaint.complaint_id) is not None

    @pytest.mark.asyncio
    async def test_missing_category_is_rejected(self, lifecycle, complaints):
        data = draft()
        del data["category"]

        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_complaint(data)

        assert exc_info.value.context["fields"] == "category"
        assert await complaints.list_all() == []

    @pytest.mark.asyncio
    async def test_blank_description_is_rejected(self, lifecycle):
        with pytest.raises(ValidationError):
            await lifecycle.create_complaint(draft(description="   "))

    @pytest.mark.asyncio
    async def test_photo_is_stored_before_the_record(self, lifecycle, media):
        photo = PhotoUpload(filename="pothole.jpg", content=b"\xff\xd8jpeg", content_type="image/jpeg")

        result = await lifecycle.create_complaint(draft(), photo=photo)

        key = f"complaints/{result.complaint.complaint_id}/pothole.jpg"
        assert media.objects[key] == b"\xff\xd8jpeg"
        assert result.complaint.photo_ref == f"memory://{key}"

    @pytest.mark.asyncio
    async def test_photo_failure_aborts_creation(self, settings, complaints, officers, sink, clock):
        lifecycle = ComplaintLifecycle(settings, complaints, officers, FailingMediaStore(), sink, clock=clock)
        photo = PhotoUpload(filename="pothole.jpg", content=b"data")

        with pytest.raises(DependencyUnavailable):
            await lifecycle.create_complaint(draft(), photo=photo)

        assert await complaints.list_all() == []
        assert sink.sent == []

    @pytest.mark.asyncio
    async def test_citizen_and_officer_are_notified(self, lifecycle, sink):
        result = await lifecycle.create_complaint(draft())

        citizen_types = [n.type for n in sink.for_user("citizen-1")]
        assert citizen_types == ["complaint_submitted", "status_update"]
        officer_notes = sink.for_user("road-c")
        assert [n.type for n in officer_notes] == ["complaint_assigned"]
        assert officer_notes[0].data["complaintId"] == result.complaint.complaint_id

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_creation(self, lifecycle, sink, monkeypatch):
        async def broken(*args, **kwargs):
            raise ConnectionError("notification service down")

        monkeypatch.setattr(sink, "notify", broken)

        result = await lifecycle.create_complaint(draft())

        assert result.complaint.status == ComplaintStatus.ASSIGNED


class TestUpdateStatus:
    @pytest.mark.asyncio
    async def test_work_then_resolve_with_photo_reference(self, lifecycle, officers, clock):
        created = (await lifecycle.create_complaint(draft())).complaint

        clock.advance(hours=2)
        started = await lifecycle.update_status(created.complaint_id, "in_progress", "Crew dispatched", actor=OFFICER)
        clock.advance(hours=3)
        resolved = await lifecycle.update_status(
            created.complaint_id, ComplaintStatus.RESOLVED, "Pothole filled",
            resolution_photo="media://after.jpg", actor=OFFICER,
        )

        assert started.status == ComplaintStatus.IN_PROGRESS
        assert resolved.status == ComplaintStatus.RESOLVED
        assert resolved.resolved_at == clock.now
        assert resolved.resolution_photo_ref == "media://after.jpg"
        assert resolved.timeline[-1].note == "Pothole filled"
        assert len(resolved.timeline) == 4
        assert (await officers.get("road-c")).assigned_count == 0
        assert_timeline_consistent(resolved)

    @pytest.mark.asyncio
    async def test_resolution_photo_upload_is_stored(self, lifecycle, media):
        created = (await lifecycle.create_complaint(draft())).complaint
        photo = PhotoUpload(filename="after.jpg", content=b"after")

        resolved = await lifecycle.update_status(
            created.complaint_id, "resolved", "Fixed", resolution_photo=photo, actor=OFFICER
        )

        key = f"resolutions/{created.complaint_id}/after.jpg"
        assert media.objects[key] == b"after"
        assert resolved.resolution_photo_ref == f"memory://{key}"

    @pytest.mark.asyncio
    async def test_resolved_complaint_cannot_change(self, lifecycle, complaints):
        created = (await lifecycle.create_complaint(draft())).complaint
        resolved = await lifecycle.update_status(created.complaint_id, "resolved", "Fixed", actor=OFFICER)

        with pytest.raises(InvalidTransition):
            await lifecycle.update_status(created.complaint_id, "in_progress", "Reopen", actor=OFFICER)

        assert await complaints.get(created.complaint_id) == resolved

    @pytest.mark.asyncio
    async def test_submitted_cannot_jump_to_in_progress(self, lifecycle):
        created = (await lifecycle.create_complaint(draft(category="electricity"))).complaint

        with pytest.raises(InvalidTransition):
            await lifecycle.update_status(created.complaint_id, "in_progress", "Starting", actor=OFFICER)

    @pytest.mark.asyncio
    async def test_officer_can_escalate(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint

        escalated = await lifecycle.update_status(created.complaint_id, "escalated", "Needs heavy machinery")

        assert escalated.status == ComplaintStatus.ESCALATED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("note", ["", "   "])
    async def test_note_required(self, lifecycle, note):
        created = (await lifecycle.create_complaint(draft())).complaint
        with pytest.raises(ValidationError):
            await lifecycle.update_status(created.complaint_id, "in_progress", note, actor=OFFICER)

    @pytest.mark.asyncio
    async def test_status_must_be_officer_settable(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        with pytest.raises(ValidationError):
            await lifecycle.update_status(created.complaint_id, "submitted", "Back", actor=OFFICER)
        with pytest.raises(ValidationError):
            await lifecycle.update_status(created.complaint_id, "closed", "Done", actor=OFFICER)

    @pytest.mark.asyncio
    async def test_resolution_photo_only_when_resolving(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        with pytest.raises(ValidationError):
            await lifecycle.update_status(
                created.complaint_id, "in_progress", "Started", resolution_photo="media://x.jpg", actor=OFFICER
            )

    @pytest.mark.asyncio
    async def test_citizen_cannot_update_status(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        with pytest.raises(PermissionDenied):
            await lifecycle.update_status(created.complaint_id, "resolved", "Fixed myself", actor=CITIZEN)

    @pytest.mark.asyncio
    async def test_unknown_complaint(self, lifecycle):
        with pytest.raises(NotFoundError):
            await lifecycle.update_status("CMP-missing", "in_progress", "Started", actor=OFFICER)

    @pytest.mark.asyncio
    async def test_long_note_is_kept_whole(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        note = "Crew dispatched with patching material. " * 40

        updated = await lifecycle.update_status(created.complaint_id, "in_progress", note, actor=OFFICER)

        assert updated.timeline[-1].note == note.strip()

    @pytest.mark.asyncio
    async def test_resolution_photo_failure_leaves_complaint_untouched(
        self, lifecycle, settings, complaints, officers, sink, clock
    ):
        created = (await lifecycle.create_complaint(draft())).complaint
        failing = ComplaintLifecycle(settings, complaints, officers, FailingMediaStore(), sink, clock=clock)
        photo = PhotoUpload(filename="after.jpg", content=b"after")

        with pytest.raises(DependencyUnavailable):
            await failing.update_status(
                created.complaint_id, "resolved", "Fixed", resolution_photo=photo, actor=OFFICER
            )

        stored = await complaints.get(created.complaint_id)
        assert stored.status == ComplaintStatus.ASSIGNED
        assert stored.model_dump()["timeline"] == created.model_dump()["timeline"]
        assert stored.resolved_at is None
        assert stored.resolution_photo_ref is None
        assert (await officers.get("road-c")).assigned_count == 1

    @pytest.mark.asyncio
    async def test_timed_out_update_is_not_replayed(self, settings, officers, media, sink, clock, make_complaint):
        complaints = SlowAckComplaintRepository()
        seeded = make_complaint(status=ComplaintStatus.ASSIGNED, assigned_officer="road-c")
        await complaints.create(seeded)
        impatient = settings.model_copy(update={"dependency_timeout_s": 0.1, "dependency_retry_attempts": 3})
        lifecycle = ComplaintLifecycle(impatient, complaints, officers, media, sink, clock=clock)

        with pytest.raises(DependencyUnavailable):
            await lifecycle.update_status(seeded.complaint_id, "in_progress", "Crew sent", actor=OFFICER)

        stored = await complaints.get(seeded.complaint_id)
        assert [e.status for e in stored.timeline] == [
            ComplaintStatus.SUBMITTED, ComplaintStatus.ASSIGNED, ComplaintStatus.IN_PROGRESS,
        ]

    @pytest.mark.asyncio
    async def test_resolution_notification(self, lifecycle, sink):
        created = (await lifecycle.create_complaint(draft())).complaint
        await lifecycle.update_status(created.complaint_id, "resolved", "Fixed", actor=OFFICER)

        last = sink.for_user("citizen-1")[-1]
        assert last.type == "complaint_resolved"
        assert last.data == {
            "complaintId": created.complaint_id,
            "oldStatus": "assigned",
            "newStatus": "resolved",
        }


class TestManualAssignment:
    @pytest.mark.asyncio
    async def test_admin_can_assign_unassigned_complaint(self, lifecycle, officers):
        officers.add(Officer(officer_id="elec-a", name="Farah", department_id="electricity"))
        created = (await lifecycle.create_complaint(draft(category="electricity"))).complaint

        updated = await lifecycle.assign_manually(created.complaint_id, "electricity", "elec-a", actor=ADMIN)

        assert updated.status == ComplaintStatus.ASSIGNED
        assert updated.assigned_officer_name == "Farah"

    @pytest.mark.asyncio
    async def test_long_assignment_note(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        note = "x" * 1500

        updated = await lifecycle.assign_manually(created.complaint_id, "roads", "road-b", actor=ADMIN, note=note)

        assert updated.timeline[-1].note == note

    @pytest.mark.asyncio
    async def test_officer_cannot_assign_manually(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        with pytest.raises(PermissionDenied):
            await lifecycle.assign_manually(created.complaint_id, "roads", "road-b", actor=OFFICER)


class TestFeedback:
    @pytest.mark.asyncio
    async def test_feedback_once_on_resolved(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        await lifecycle.update_status(created.complaint_id, "resolved", "Fixed", actor=OFFICER)

        rated = await lifecycle.submit_feedback(created.complaint_id, 4, "Quick fix", actor=CITIZEN)

        assert rated.has_feedback
        assert rated.feedback_rating == 4
        assert rated.feedback_comment == "Quick fix"
        with pytest.raises(ValidationError):
            await lifecycle.submit_feedback(created.complaint_id, 5, actor=CITIZEN)

    @pytest.mark.asyncio
    async def test_feedback_requires_resolution(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        with pytest.raises(ValidationError):
            await lifecycle.submit_feedback(created.complaint_id, 3)

    @pytest.mark.asyncio
    async def test_rating_range(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        await lifecycle.update_status(created.complaint_id, "resolved", "Fixed", actor=OFFICER)
        with pytest.raises(ValidationError):
            await lifecycle.submit_feedback(created.complaint_id, 0)

    @pytest.mark.asyncio
    async def test_only_reporter_may_rate(self, lifecycle):
        created = (await lifecycle.create_complaint(draft())).complaint
        await lifecycle.update_status(created.complaint_id, "resolved", "Fixed", actor=OFFICER)
        with pytest.raises(PermissionDenied):
            await lifecycle.submit_feedback(
                created.complaint_id, 5, actor=Actor(user_id="someone-else")
            )


class TestReevaluateAndQueries:
    @pytest.mark.asyncio
    async def test_reevaluation_replaces_reasons(self, lifecycle, clock):
        created = (await lifecycle.create_complaint(draft(location=north_of(HOSPITAL, 50)))).complaint
        clock.advance(hours=60)

        updated = await lifecycle.reevaluate_priority(created.complaint_id)

        assert updated.priority == Priority.CRITICAL
        assert updated.priority_reasons == ["Near City Hospital", "Pending for 60 hours"]
        assert [e.model_dump() for e in updated.timeline] == [e.model_dump() for e in created.timeline]

    @pytest.mark.asyncio
    async def test_user_and_officer_listings(self, lifecycle, clock):
        urgent = (await lifecycle.create_complaint(draft(location=north_of(HOSPITAL, 20)))).complaint
        clock.advance(minutes=5)
        routine = (await lifecycle.create_complaint(draft())).complaint
        await lifecycle.create_complaint(draft(user_id="citizen-9"))

        mine = await lifecycle.list_user_complaints("citizen-1")
        assert [c.complaint_id for c in mine] == [routine.complaint_id, urgent.complaint_id]

        assert urgent.assigned_officer == routine.assigned_officer == "road-c"
        queue = await lifecycle.list_officer_complaints("road-c")
        assert [c.complaint_id for c in queue] == [urgent.complaint_id, routine.complaint_id]

    @pytest.mark.asyncio
    async def test_nearby_complaints_sorted_by_distance(self, lifecycle):
        far = (await lifecycle.create_complaint(draft(location=north_of(FAR_AWAY, 3000)))).complaint
        near = (await lifecycle.create_complaint(draft(location=north_of(FAR_AWAY, 100)))).complaint
        await lifecycle.create_complaint(draft(location=north_of(FAR_AWAY, 20000)))
        await lifecycle.create_complaint(draft(location=None))

        found = await lifecycle.nearby_complaints(GeoPoint(lat=FAR_AWAY.lat, lng=FAR_AWAY.lng), radius_km=5)

        assert [c.complaint_id for c in found] == [near.complaint_id, far.complaint_id]
