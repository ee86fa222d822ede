"""Client side of the reservation flow.

``ReservationForm`` holds what the visitor typed and decides whether it is
worth sending; ``ReservationClient`` posts it to the API once and reports
the outcome.
"""

import logging
from dataclasses import dataclass, fields

import httpx

from golden_palace.core.patterns import EMAIL_PATTERN, PHONE_PATTERN


logger = logging.getLogger(__name__)

RESERVATION_PATH = "/api/v1/reservation/send"
SUCCESS_ROUTE = "/success"

MISSING_FIELDS_MESSAGE = "Please fill in all fields"
INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
INVALID_PHONE_MESSAGE = "Please enter a valid phone number"
FALLBACK_ERROR_MESSAGE = "An error occurred. Please try again."


@dataclass
class ReservationForm:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    date: str = ""
    time: str = ""
    phone: str = ""

    @property
    def is_complete(self) -> bool:
        return all(getattr(self, f.name) for f in fields(self))

    @property
    def email_valid(self) -> bool:
        return bool(EMAIL_PATTERN.match(self.email))

    @property
    def phone_valid(self) -> bool:
        return bool(PHONE_PATTERN.match(self.phone))

    def validate(self) -> str | None:
        """Return the first problem to show the visitor, or None."""
        if not self.is_complete:
            return MISSING_FIELDS_MESSAGE
        if not self.email_valid:
            return INVALID_EMAIL_MESSAGE
        if not self.phone_valid:
            return INVALID_PHONE_MESSAGE
        return None

    def clear(self) -> None:
        for f in fields(self):
            setattr(self, f.name, "")

    def to_payload(self) -> dict[str, str]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "date": self.date,
            "time": self.time,
        }


@dataclass
class SubmissionResult:
    success: bool
    message: str
    redirect_to: str | None = None
    reservation_id: str | None = None


class ReservationClient:
    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http_client = http_client

    async def submit(self, form: ReservationForm) -> SubmissionResult:
        """Validate locally, then make a single attempt to book the table."""
        problem = form.validate()
        if problem is not None:
            return SubmissionResult(success=False, message=problem)

        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, form)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, form)
        except httpx.HTTPError as exc:
            logger.warning("Reservation request failed: %s", exc)
            return SubmissionResult(success=False, message=FALLBACK_ERROR_MESSAGE)

        if response.is_success:
            # any 2xx counts as booked, even without a JSON object body
            data = _json_body(response) or {}
            message = data.get("message")
            reservation_id = data.get("reservationId")
            form.clear()
            return SubmissionResult(
                success=True,
                message=message if isinstance(message, str) else "",
                redirect_to=SUCCESS_ROUTE,
                reservation_id=reservation_id if isinstance(reservation_id, str) else None,
            )

        return SubmissionResult(success=False, message=_server_message(response) or FALLBACK_ERROR_MESSAGE)

    async def _post(self, client: httpx.AsyncClient, form: ReservationForm) -> httpx.Response:
        return await client.post(
            f"{self.base_url}{RESERVATION_PATH}",
            json=form.to_payload(),
            headers={"Content-Type": "application/json"},
        )


def _json_body(response: httpx.Response) -> dict | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _server_message(response: httpx.Response) -> str | None:
    message = (_json_body(response) or {}).get("message")
    if isinstance(message, str) and message:
        return message
    return None
