"""Typed failures raised by the registry and its collaborators.

Each error carries the HTTP status the web layer answers with and a short
human-readable ``detail``. Callers that are not HTTP handlers can ignore the
status and branch on the exception type.
"""

from typing import Any, List


class RegistryError(Exception):
    """Base class for every registry failure."""

    status_code = 500
    title = "Internal Server Error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class UpstreamUnavailable(RegistryError):
    """The external record source could not be reached or gave no payload."""

    status_code = 424
    title = "Failed Dependency"

    def __init__(self, detail: str = "Upstream character API unavailable") -> None:
        super().__init__(detail)


class EmptyRegistry(RegistryError):
    status_code = 404
    title = "Not Found"

    def __init__(self, detail: str = "No characters stored; populate first") -> None:
        super().__init__(detail)


class ValidationFailed(RegistryError):
    """A candidate or patch has structural problems.

    ``errors`` lists every violation found, in field order.
    """

    status_code = 400
    title = "Bad Request"

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class DuplicateId(RegistryError):
    status_code = 409
    title = "Conflict"

    def __init__(self, character_id: Any) -> None:
        super().__init__(f"Character id {character_id!r} already exists")
        self.character_id = character_id


class NotFound(RegistryError):
    status_code = 404
    title = "Not Found"

    def __init__(self, character_id: Any) -> None:
        super().__init__(f"Character id {character_id!r} not found")
        self.character_id = character_id


class IdModificationForbidden(RegistryError):
    status_code = 403
    title = "Forbidden"

    def __init__(self, detail: str = "A character's id cannot be modified") -> None:
        super().__init__(detail)
