"""Settings store (single row per key)."""

from sqlmodel import Session

from ftjournal.db.models import AppSetting, Settings
from ftjournal.domain.timezones import validate_timezone

TIMEZONE_KEY = "timezone"


class SettingsStore:

    @staticmethod
    def get(session: Session, default_timezone: str) -> Settings:
        """Current settings; the default row is created on first access."""
        row = session.get(AppSetting, TIMEZONE_KEY)
        if row is None:
            row = AppSetting(key=TIMEZONE_KEY, value=validate_timezone(default_timezone))
            session.add(row)
            session.flush()
        return Settings(timezone=row.value)

    @staticmethod
    def timezone(session: Session, default_timezone: str) -> str:
        return SettingsStore.get(session, default_timezone).timezone

    @staticmethod
    def update(session: Session, timezone: str) -> Settings:
        """Change the zone. Stored trades keep the zone they were saved with."""
        tz_name = validate_timezone(timezone)
        row = session.get(AppSetting, TIMEZONE_KEY)
        if row is None:
            session.add(AppSetting(key=TIMEZONE_KEY, value=tz_name))
        else:
            row.value = tz_name
            session.add(row)
        session.flush()
        return Settings(timezone=tz_name)
