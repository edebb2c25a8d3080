from classpkg.models import Action, ConflictRequest


class ClassPackageError(Exception):
    """Base class for all errors raised by classpkg."""


class NotFoundError(ClassPackageError, LookupError):
    """A referenced file, package, class or object does not exist."""


class ParseError(ClassPackageError, ValueError):
    """A document is not well-formed or lacks a required node."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ConflictError(ClassPackageError):
    """An operator decision is required before the operation can continue."""

    def __init__(self, request: ConflictRequest) -> None:
        super().__init__(request.description)
        self.request = request

    @property
    def actions(self) -> dict[Action, str]:
        return self.request.actions


class DependencyError(ConflictError):
    """Removal is blocked by content objects that still use the class."""

    @property
    def object_count(self) -> int:
        return self.request.object_count


class StoreError(ClassPackageError):
    """A store transaction failed and was rolled back."""
