import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from golden_palace.core.errors import ReservationError
from golden_palace.db.session import get_session
from golden_palace.routers.schemas import ErrorOut, ReservationIn, ReservationOut
from golden_palace.services.mailer import (
    MailDispatcher,
    ReservationDetails,
    dispatch_reservation_emails,
    get_mail_dispatcher,
)
from golden_palace.services.reservations import ReservationSchemaError, ReservationStore


logger = logging.getLogger(__name__)

INCOMPLETE_FORM_MESSAGE = "Please Fill Full Reservation Form!"
SUCCESS_MESSAGE = "Reservation Sent Successfully!"

router = APIRouter()


def get_store(session: AsyncSession = Depends(get_session)) -> ReservationStore:
    return ReservationStore(session)


@router.post(
    "/reservation/send",
    response_model=ReservationOut,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}},
)
async def send_reservation(
    payload: ReservationIn,
    background_tasks: BackgroundTasks,
    store: ReservationStore = Depends(get_store),
    dispatcher: MailDispatcher | None = Depends(get_mail_dispatcher),
) -> ReservationOut:
    if not payload.is_complete():
        raise ReservationError(INCOMPLETE_FORM_MESSAGE)

    try:
        reservation = await store.create(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            phone=payload.phone,
            date=payload.date,
            time=payload.time,
        )
    except ReservationSchemaError as exc:
        logger.info("Reservation rejected: %s", exc)
        raise ReservationError(", ".join(exc.errors.values())) from exc

    if dispatcher is not None:
        details = ReservationDetails(
            reservation_id=reservation.id,
            first_name=reservation.first_name,
            last_name=reservation.last_name,
            email=reservation.email,
            phone=reservation.phone,
            date=reservation.date,
            time=reservation.time,
        )
        background_tasks.add_task(dispatch_reservation_emails, dispatcher, details)
    else:
        logger.debug("Mail credentials not configured; skipping reservation emails")

    return ReservationOut(message=SUCCESS_MESSAGE, reservation_id=reservation.id)
