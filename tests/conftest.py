import pytest

from app import create_app
from models import db


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "ADMIN_API_TOKEN": None,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_slot(app):
    from services import slot_store

    def _make(date="2025-03-10", start="08:00", end="08:40"):
        created = slot_store.create_batch([{"date": date, "startTime": start, "endTime": end}])
        return created[0]
    return _make


@pytest.fixture
def duplicate_slots(app):
    """Insert n rows for one window directly, the way a racing batch would."""
    from datetime import datetime, timedelta
    from models.slot import TimeSlot

    def _make(n, date="2025-03-10", start="08:00", end="08:40"):
        base = datetime(2025, 3, 1, 12, 0, 0)
        rows = []
        for i in range(n):
            s = TimeSlot(date=date, start_time=start, end_time=end, is_booked=False,
                         created_at=base + timedelta(seconds=i))
            db.session.add(s)
            rows.append(s)
        db.session.commit()
        return [r.id for r in rows]
    return _make
