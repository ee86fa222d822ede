import asyncio
from email.message import EmailMessage

import pytest
import pytest_asyncio

from golden_palace.core.config import Settings
from golden_palace.db.models import Base
from golden_palace.db.session import create_engine_from_settings, create_session_factory
from golden_palace.main import app
from golden_palace.routers.reservations import get_store
from golden_palace.services.mailer import MailConfig, MailDispatcher, get_mail_dispatcher
from golden_palace.services.reservations import ReservationStore


class InMemoryReservationStore(ReservationStore):
    """Keeps rows in a dict instead of the database; validation is unchanged."""

    def __init__(self) -> None:
        super().__init__(session=None)
        self.rows = {}
        self.writes = 0

    async def get(self, reservation_id):
        return self.rows.get(reservation_id)

    async def _persist(self, reservation) -> None:
        self.writes += 1
        self.rows[reservation.id] = reservation


class RecordingTransport:
    def __init__(self, fail_for: tuple[str, ...] = ()) -> None:
        self.fail_for = fail_for
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> str:
        await asyncio.sleep(0)
        if message["To"] in self.fail_for:
            raise ConnectionRefusedError(f"relay refused {message['To']}")
        self.sent.append(message)
        return "250 OK"


@pytest.fixture
def mail_config() -> MailConfig:
    return MailConfig(
        host="smtp.test",
        port=587,
        secure=False,
        username="bookings@goldenpalace.test",
        password="secret",
        sender="bookings@goldenpalace.test",
        restaurant_email="frontdesk@goldenpalace.test",
        restaurant_name="Golden Palace Restaurant",
        restaurant_address="Kathmandu, Nepal",
        restaurant_phone="+977-1-5550100",
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def dispatcher(mail_config, transport) -> MailDispatcher:
    return MailDispatcher(mail_config, transport=transport)


@pytest.fixture
def store() -> InMemoryReservationStore:
    return InMemoryReservationStore()


@pytest.fixture
def api(store, dispatcher):
    """Route the app's store and mailer to in-memory doubles."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_mail_dispatcher] = lambda: dispatcher
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def valid_payload() -> dict[str, str]:
    return {
        "firstName": "Ana",
        "lastName": "Li",
        "email": "ana@example.com",
        "phone": "9812345678",
        "date": "2025-12-01",
        "time": "19:30",
    }


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Sessions on a real async engine over a throwaway SQLite file."""
    settings = Settings(_env_file=None, DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'reservations.db'}")
    engine = create_engine_from_settings(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def database_api(session_factory, dispatcher):
    """The app with its real session dependency bound to the SQLite engine."""
    app.state.session_factory = session_factory
    app.dependency_overrides[get_mail_dispatcher] = lambda: dispatcher
    yield app
    app.dependency_overrides.clear()
    del app.state.session_factory
