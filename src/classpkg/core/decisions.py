"""Default answers to operator decisions for unattended runs."""

from classpkg.models import Action, ConflictKind, ConflictRequest

DEFAULT_ACTIONS: dict[ConflictKind, Action] = {
    ConflictKind.CLASS_EXISTS: Action.REPLACE,
    ConflictKind.HAS_OBJECTS: Action.SKIP,
}


class NonInteractiveResolver:
    """Answer every request from a fixed table; ``overrides`` win over the defaults."""

    def __init__(self, overrides: dict[ConflictKind, Action] | None = None) -> None:
        self._actions = {**DEFAULT_ACTIONS, **(overrides or {})}

    def resolve(self, request: ConflictRequest) -> Action | None:
        action = self._actions.get(request.kind)
        if action is None or action not in request.actions:
            return None
        return action


class DeferringResolver:
    """Never decide, so every conflict comes back to the caller as a request."""

    def resolve(self, request: ConflictRequest) -> Action | None:
        return None
