import uuid
from datetime import date, time

import pytest

from allobricolage.integrations.twilio_client import SMSDeliveryError
from allobricolage.models.booking import BookingStatus
from allobricolage.models.job import JobStatus
from allobricolage.models.notification import DeliveryStatus
from allobricolage.models.user import UserRole
from allobricolage.schemas.booking import BookingCreate
from allobricolage.services.booking_service import BookingService
from allobricolage.services.job_service import JobService
from allobricolage.services.lifecycle import InvalidTransitionError
from allobricolage.services.notification_service import NotificationService

from conftest import FakeSMS


async def test_booking_a_job_accepts_it_and_texts_the_technician(db, make_technician, make_user, make_job, make_booking, sms):
    tech = await make_technician()
    client = await make_user()
    job = await make_job(client_id=client.id)

    booking = await make_booking(tech, client_id=client.id, job_id=job.id)

    assert booking.status == BookingStatus.PENDING
    assert booking.estimated_cost == job.likely_cost == 310
    assert booking.client_phone == "+212662345678"
    assert job.status == JobStatus.ACCEPTED

    [(to, text)] = sms.sent
    assert to == "+212661234567"
    assert text.startswith("🔔 Nouvelle réservation AlloBricolage!")
    assert "💰 310 MAD" in text
    assert "👤 Amina" in text

    [notification] = await NotificationService(db).list_for_user(tech.user_id)
    assert notification.title == "🔔 Nouvelle réservation"
    assert notification.booking_id == booking.id
    assert notification.sms_status == DeliveryStatus.SENT
    assert notification.external_id == "SM1"


async def test_direct_booking_creates_a_job(db, make_technician, make_booking):
    tech = await make_technician(services=["electricite", "plomberie"], hourly_rate=200)

    booking = await make_booking(tech, job_id="direct")
    job = await JobService(db).get_by_id(booking.job_id)

    assert job.service == "electricite"
    assert job.city == "Casablanca"
    assert (job.min_cost, job.likely_cost, job.max_cost) == (160, 200, 260)
    assert job.status == JobStatus.ACCEPTED
    assert booking.estimated_cost == 200
    assert booking.match_score == 0.9
    assert booking.match_explanation == "Réservation confirmée avec Technicien 1"


async def test_a_job_can_only_be_booked_once(make_technician, make_job, make_booking):
    first = await make_technician()
    second = await make_technician()
    job = await make_job()

    await make_booking(first, job_id=job.id)
    with pytest.raises(InvalidTransitionError):
        await make_booking(second, job_id=job.id)


async def test_unknown_technician_or_job(make_technician, make_booking, bookings):
    tech = await make_technician()

    missing_tech = BookingCreate(
        technician_id=uuid.uuid4(),
        client_name="Amina",
        client_phone="0662345678",
        scheduled_date=date(2024, 4, 11),
        scheduled_time=time(10, 0),
    )
    assert await bookings.create(missing_tech) is None
    assert await make_booking(tech, job_id=uuid.uuid4()) is None


async def test_full_lifecycle_moves_the_job_along(db, make_technician, make_job, make_booking, bookings):
    tech = await make_technician()
    job = await make_job()
    booking = await make_booking(tech, job_id=job.id)

    await bookings.accept(booking.id)
    await bookings.start(booking.id)
    assert job.status == JobStatus.IN_PROGRESS

    done = await bookings.complete(booking.id, final_cost=350)

    assert done.status == BookingStatus.COMPLETED
    assert done.final_cost == 350
    assert done.accepted_at is not None and done.started_at is not None and done.completed_at is not None
    assert job.status == JobStatus.COMPLETED
    assert tech.completed_jobs == 1

    history = await JobService(db).history(job.id)
    assert {h.to_status for h in history} == {"pending", "accepted", "in_progress", "completed"}


async def test_complete_without_start(make_technician, make_job, make_booking, bookings):
    tech = await make_technician()
    job = await make_job()
    booking = await make_booking(tech, job_id=job.id)

    await bookings.accept(booking.id)
    await bookings.complete(booking.id)

    assert job.status == JobStatus.COMPLETED


async def test_terminal_bookings_reject_transitions(make_technician, make_job, make_booking, bookings):
    tech = await make_technician()
    booking = await make_booking(tech, job_id=(await make_job()).id)
    await bookings.accept(booking.id)
    await bookings.complete(booking.id)

    with pytest.raises(InvalidTransitionError):
        await bookings.cancel(booking.id)
    with pytest.raises(InvalidTransitionError):
        await bookings.start(booking.id)


async def test_cancelling_a_booking_cancels_its_job(make_technician, make_job, make_booking, bookings):
    tech = await make_technician()
    job = await make_job()
    booking = await make_booking(tech, job_id=job.id)

    cancelled = await bookings.cancel(booking.id, reason="Plus besoin")

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert job.status == JobStatus.CANCELLED


async def test_cancel_during_work_leaves_job_in_progress(make_technician, make_job, make_booking, bookings):
    tech = await make_technician()
    job = await make_job()
    booking = await make_booking(tech, job_id=job.id)
    await bookings.accept(booking.id)
    await bookings.start(booking.id)

    await bookings.cancel(booking.id)

    assert job.status == JobStatus.IN_PROGRESS


async def test_no_show(make_technician, make_job, make_booking, bookings):
    tech = await make_technician()
    job = await make_job()
    booking = await make_booking(tech, job_id=job.id)
    await bookings.accept(booking.id)

    no_show = await bookings.mark_no_show(booking.id)

    assert no_show.status == BookingStatus.NO_SHOW
    assert job.status == JobStatus.ACCEPTED
    assert await bookings.mark_no_show(uuid.uuid4()) is None


async def test_sms_failure_does_not_block_booking(db, clock, make_technician, make_job):
    tech = await make_technician()
    job = await make_job()
    failing = NotificationService(db, sms=FakeSMS(error=SMSDeliveryError("Twilio down")), clock=clock)
    service = BookingService(db, notifications=failing, clock=clock)

    booking = await service.create(BookingCreate(
        technician_id=tech.id,
        job_id=job.id,
        client_name="Amina",
        client_phone="0662345678",
        scheduled_date=date(2024, 4, 11),
        scheduled_time=time(10, 0),
    ))

    assert booking is not None
    [notification] = await NotificationService(db).list_for_user(tech.user_id)
    assert notification.sms_status == DeliveryStatus.FAILED
    assert notification.error_message == "Twilio down"


async def test_list_for_user(make_technician, make_user, make_booking, bookings):
    tech = await make_technician()
    other_tech = await make_technician()
    client = await make_user()
    admin = await make_user(role=UserRole.ADMIN)

    mine = await make_booking(tech, client_id=client.id, job_id="direct")
    await make_booking(other_tech, job_id="direct")

    assert [b.id for b in await bookings.list_for_user(client)] == [mine.id]
    assert [b.id for b in await bookings.list_for_user(tech.user)] == [mine.id]
    assert len(await bookings.list_for_user(admin)) == 2
    assert await bookings.list_for_user(None) == []
