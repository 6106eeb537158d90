from typing import Any

INTERNAL_ERROR_MESSAGE = "Erreur interne du serveur"


class CrudAppError(Exception):
    """Base error. ``message`` is safe to return to a client."""

    status_code = 500

    def __init__(self, message: str = INTERNAL_ERROR_MESSAGE, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class UserValidationError(CrudAppError):
    status_code = 400


class RequestBodyError(CrudAppError):
    status_code = 400


class UserNotFoundError(CrudAppError):
    status_code = 404

    def __init__(self, user_id: str) -> None:
        super().__init__("Utilisateur non trouvé", context={"id": user_id})
        self.user_id = user_id


class ConnectivityError(CrudAppError):
    pass


class LivenessError(ConnectivityError):
    pass


class QueryError(CrudAppError):
    pass


class MigrationError(CrudAppError):
    pass
