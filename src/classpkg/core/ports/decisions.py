from typing import Protocol

from classpkg.models import Action, ConflictRequest


class DecisionResolver(Protocol):
    def resolve(self, request: ConflictRequest) -> Action | None: ...
