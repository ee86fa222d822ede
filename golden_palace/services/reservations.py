import logging
from datetime import date as date_type, time as time_type
from typing import Any, Mapping
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from golden_palace.core.patterns import EMAIL_PATTERN, PHONE_PATTERN
from golden_palace.db.models import Reservation


logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 30
EMAIL_MAX_LENGTH = 254

FIELD_LABELS = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "phone": "Phone number",
    "date": "Date",
    "time": "Time",
}

INVALID_MESSAGES = {
    "email": "Provide a valid email.",
    "phone": "Phone number must contain 10 to 15 digits.",
    "date": "Date must be a valid YYYY-MM-DD date.",
    "time": "Time must be a valid HH:MM time.",
}

# error types that mean the value was absent or blank
MISSING_ERROR_TYPES = {"missing", "string_type", "string_too_short"}


class ReservationRecord(BaseModel):
    """Shape of a stored reservation. Date and time keep their submitted text."""

    first_name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    email: str = Field(min_length=1, max_length=EMAIL_MAX_LENGTH, pattern=EMAIL_PATTERN.pattern)
    phone: str = Field(min_length=1, pattern=PHONE_PATTERN.pattern)
    date: str = Field(min_length=1, pattern=r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
    time: str = Field(min_length=1, pattern=r"^[0-9]{2}:[0-9]{2}(:[0-9]{2})?$")

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        date_type.fromisoformat(v)
        return v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        time_type.fromisoformat(v)
        return v


class ReservationSchemaError(Exception):
    """The store rejected a record; carries one message per offending field."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__(", ".join(self.errors.values()))


def _field_message(field: str, error: Mapping[str, Any]) -> str:
    label = FIELD_LABELS[field]
    if error["type"] in MISSING_ERROR_TYPES:
        return f"{label} is required."
    if error["type"] == "string_too_long":
        return f"{label} cannot exceed {error['ctx']['max_length']} characters."
    return INVALID_MESSAGES.get(field, f"{label} is invalid.")


def schema_errors(exc: ValidationError) -> dict[str, str]:
    """Turn pydantic errors into one message per field, in column order."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        field = str(error["loc"][0])
        if field in FIELD_LABELS:
            errors.setdefault(field, _field_message(field, error))
    return {field: errors[field] for field in FIELD_LABELS if field in errors}


def validate_reservation_fields(fields: Mapping[str, str | None]) -> dict[str, str]:
    """Check a record against the reservation schema.

    Every offending field gets its own message, in column order, so callers
    can report all problems at once.
    """
    try:
        ReservationRecord.model_validate(dict(fields))
    except ValidationError as exc:
        return schema_errors(exc)
    return {}


class ReservationStore:
    """Persistence for reservation records."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        date: str,
        time: str,
    ) -> Reservation:
        """Validate and insert a new reservation, returning the stored row."""
        try:
            record = ReservationRecord(
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                date=date,
                time=time,
            )
        except ValidationError as exc:
            raise ReservationSchemaError(schema_errors(exc)) from exc

        reservation = Reservation(id=str(uuid4()), **record.model_dump())
        await self._persist(reservation)
        logger.info("Reservation %s stored for %s", reservation.id, reservation.date)
        return reservation

    async def get(self, reservation_id: str) -> Reservation | None:
        return await self.session.get(Reservation, reservation_id)

    async def _persist(self, reservation: Reservation) -> None:
        # commit() works whether or not an earlier query already began a transaction
        self.session.add(reservation)
        try:
            await self.session.commit()
        except (IntegrityError, DataError) as exc:
            await self.session.rollback()
            orig = getattr(exc, "orig", exc)
            raise ReservationSchemaError({"reservation": str(orig)}) from exc
