"""Default clock and locale implementations, plus environment configuration."""

import os
import time

DEFAULT_LOCALE = "eng-GB"


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class FixedClock:
    def __init__(self, timestamp: int) -> None:
        self.timestamp = timestamp

    def now(self) -> int:
        return self.timestamp


class StaticLocaleProvider:
    """Locale source for a run; the current locale is always part of the list."""

    def __init__(self, current: str, available: list[str] | None = None) -> None:
        self._current = current
        self._available = list(available or [])
        if current not in self._available:
            self._available.insert(0, current)

    def current_locale(self) -> str:
        return self._current

    def locales(self) -> list[str]:
        return list(self._available)


def locale_provider_from_env(current: str | None = None, available: str | None = None) -> StaticLocaleProvider:
    """Build a locale provider from explicit values or ``CLASSPKG_LOCALE`` / ``CLASSPKG_LOCALES``."""
    current = current or os.getenv("CLASSPKG_LOCALE", DEFAULT_LOCALE)
    raw = available if available is not None else os.getenv("CLASSPKG_LOCALES", "")
    locales = [part.strip() for part in raw.split(",") if part.strip()]
    return StaticLocaleProvider(current, locales)
