"""Small helpers shared by the API tests."""

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_rental.app.models.notification import Notification


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def future(days: float = 1, hours: float = 0) -> datetime:
    """A whole-hour UTC instant ``days`` (+ ``hours``) from now."""
    base = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    return base + timedelta(days=days, hours=hours)


def break_notification_writes(monkeypatch) -> None:
    """Make every commit that carries a new Notification fail like a lost database."""
    commit = AsyncSession.commit

    async def failing_commit(self):
        if any(isinstance(obj, Notification) for obj in self.new):
            raise OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))
        return await commit(self)

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
