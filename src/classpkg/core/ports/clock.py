from typing import Protocol


class Clock(Protocol):
    def now(self) -> int: ...


class LocaleProvider(Protocol):
    def current_locale(self) -> str: ...

    def locales(self) -> list[str]: ...
