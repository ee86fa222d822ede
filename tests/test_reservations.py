import pytest
from httpx import ASGITransport, AsyncClient

from golden_palace.services.mailer import get_mail_dispatcher
from golden_palace.services.reservations import ReservationStore


pytestmark = pytest.mark.asyncio

ENDPOINT = "/api/v1/reservation/send"


async def post_reservation(app, payload, raise_app_exceptions=True):
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post(ENDPOINT, json=payload)


async def test_valid_reservation_is_stored_once(api, store, valid_payload):
    response = await post_reservation(api, valid_payload)

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Reservation Sent Successfully!"
    assert store.writes == 1
    assert list(store.rows) == [body["reservationId"]]


async def test_stored_reservation_round_trips(api, store, valid_payload):
    response = await post_reservation(api, valid_payload)
    reservation = await store.get(response.json()["reservationId"])

    assert reservation is not None
    assert reservation.id
    assert (
        reservation.first_name,
        reservation.last_name,
        reservation.email,
        reservation.phone,
        reservation.date,
        reservation.time,
    ) == ("Ana", "Li", "ana@example.com", "9812345678", "2025-12-01", "19:30")


async def test_empty_first_name_rejected_without_write(api, store, valid_payload):
    payload = dict(valid_payload, firstName="")

    response = await post_reservation(api, payload)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Please Fill Full Reservation Form!"}
    assert store.writes == 0


@pytest.mark.parametrize("field", ["firstName", "lastName", "email", "date", "time", "phone"])
async def test_missing_field_rejected_without_write(api, store, valid_payload, field):
    payload = dict(valid_payload)
    del payload[field]

    response = await post_reservation(api, payload)

    assert response.status_code == 400
    assert response.json()["message"] == "Please Fill Full Reservation Form!"
    assert store.writes == 0


async def test_whitespace_only_field_counts_as_missing(api, store, valid_payload):
    response = await post_reservation(api, dict(valid_payload, lastName="   "))

    assert response.status_code == 400
    assert response.json()["message"] == "Please Fill Full Reservation Form!"
    assert store.writes == 0


async def test_store_schema_errors_are_joined(api, store, valid_payload):
    payload = dict(valid_payload, email="ana@example", phone="12345")

    response = await post_reservation(api, payload)

    assert response.status_code == 400
    assert response.json()["message"] == (
        "Provide a valid email., Phone number must contain 10 to 15 digits."
    )
    assert store.writes == 0


async def test_unparseable_date_and_time_rejected(api, store, valid_payload):
    payload = dict(valid_payload, date="2025-02-30", time="7pm")

    response = await post_reservation(api, payload)

    assert response.status_code == 400
    assert response.json()["message"] == (
        "Date must be a valid YYYY-MM-DD date., Time must be a valid HH:MM time."
    )


async def test_overlong_email_is_a_bad_request(api, store, valid_payload):
    response = await post_reservation(api, dict(valid_payload, email="a" * 300 + "@example.com"))

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Email cannot exceed 254 characters."}
    assert store.writes == 0


async def test_non_string_field_is_a_bad_request(api, store, valid_payload):
    response = await post_reservation(api, dict(valid_payload, phone=9812345678))

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "phone" in response.json()["message"]
    assert store.writes == 0


async def test_both_emails_sent_after_success(api, transport, valid_payload):
    response = await post_reservation(api, valid_payload)

    assert response.status_code == 201
    recipients = sorted(message["To"] for message in transport.sent)
    assert recipients == ["ana@example.com", "frontdesk@goldenpalace.test"]


async def test_mail_failure_does_not_fail_reservation(api, store, transport, valid_payload):
    transport.fail_for = ("ana@example.com", "frontdesk@goldenpalace.test")

    response = await post_reservation(api, valid_payload)

    assert response.status_code == 201
    assert response.json()["success"] is True
    assert store.writes == 1
    assert transport.sent == []


async def test_mail_disabled_still_books(api, store, transport, valid_payload):
    api.dependency_overrides[get_mail_dispatcher] = lambda: None

    response = await post_reservation(api, valid_payload)

    assert response.status_code == 201
    assert store.writes == 1
    assert transport.sent == []


async def test_store_infrastructure_failure_is_internal_error(api, store, valid_payload):
    async def broken_persist(reservation):
        raise ConnectionResetError("database connection lost")

    store._persist = broken_persist

    response = await post_reservation(api, valid_payload, raise_app_exceptions=False)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal Server Error"}


async def test_reservation_persisted_through_database(database_api, session_factory, transport, valid_payload):
    response = await post_reservation(database_api, valid_payload)

    assert response.status_code == 201, response.text
    async with session_factory() as session:
        reservation = await ReservationStore(session).get(response.json()["reservationId"])

    assert reservation is not None
    assert (reservation.first_name, reservation.email, reservation.date, reservation.time) == (
        "Ana",
        "ana@example.com",
        "2025-12-01",
        "19:30",
    )
    assert len(transport.sent) == 2


async def test_database_rejection_is_a_bad_request(database_api, session_factory, valid_payload, monkeypatch):
    monkeypatch.setattr("golden_palace.services.reservations.uuid4", lambda: "fixed-id")

    first = await post_reservation(database_api, valid_payload)
    second = await post_reservation(database_api, valid_payload)

    assert first.status_code == 201
    assert second.status_code == 400
    assert "UNIQUE constraint failed" in second.json()["message"]
