"""
Excepciones personalizadas para la aplicación ChallengeQuest.

Cada excepción lleva un tipo (ErrorKind) y un código legible por máquina
(ErrorCode). La capa HTTP decide el status code a partir del tipo, nunca
a partir del texto del mensaje.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Familias de error."""

    NOT_FOUND = "NOT_FOUND"
    BUSINESS_RULE = "BUSINESS_RULE"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"


class ErrorCode(str, Enum):
    """Códigos de error estables expuestos a los clientes."""

    # Not found
    CHALLENGE_NOT_FOUND = "CHALLENGE_NOT_FOUND"
    STAGE_NOT_FOUND = "STAGE_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    LEVEL_NOT_FOUND = "LEVEL_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"

    # Inscripción
    CHALLENGE_INACTIVE = "CHALLENGE_INACTIVE"
    CHALLENGE_NOT_STARTED = "CHALLENGE_NOT_STARTED"
    CHALLENGE_ENDED = "CHALLENGE_ENDED"
    LEVEL_TOO_LOW = "LEVEL_TOO_LOW"
    ALREADY_JOINED = "ALREADY_JOINED"
    CHALLENGE_FULL = "CHALLENGE_FULL"

    # Envío de etapas
    NOT_JOINED = "NOT_JOINED"
    PROGRESS_NOT_ACTIVE = "PROGRESS_NOT_ACTIVE"
    STAGE_ALREADY_COMPLETED = "STAGE_ALREADY_COMPLETED"
    QR_CODE_REQUIRED = "QR_CODE_REQUIRED"
    QR_CONTENT_REQUIRED = "QR_CONTENT_REQUIRED"
    QR_CODE_NOT_EXPECTED = "QR_CODE_NOT_EXPECTED"
    LOCATION_OUT_OF_RANGE = "LOCATION_OUT_OF_RANGE"

    # Administración
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    LEVEL_ALREADY_EXISTS = "LEVEL_ALREADY_EXISTS"
    LEVEL_XP_OVERLAP = "LEVEL_XP_OVERLAP"
    INVALID_XP_RANGE = "INVALID_XP_RANGE"
    LEVEL_IN_USE = "LEVEL_IN_USE"
    CATEGORY_ALREADY_EXISTS = "CATEGORY_ALREADY_EXISTS"

    # Autenticación
    EMAIL_ALREADY_REGISTERED = "EMAIL_ALREADY_REGISTERED"
    USERNAME_TAKEN = "USERNAME_TAKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"

    VALIDATION_ERROR = "VALIDATION_ERROR"


class ChallengeQuestException(Exception):
    """Excepción base para todas las excepciones de ChallengeQuest."""

    kind: ErrorKind = ErrorKind.BUSINESS_RULE

    def __init__(self, message: str = "Error en la aplicación", code: ErrorCode = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundException(ChallengeQuestException):
    """Excepción cuando un recurso no se encuentra."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Recurso no encontrado", code: ErrorCode = None):
        super().__init__(message, code)


class BusinessRuleException(ChallengeQuestException):
    """Excepción cuando la operación viola una regla de negocio."""

    kind = ErrorKind.BUSINESS_RULE

    def __init__(self, message: str = "Solicitud inválida", code: ErrorCode = None):
        super().__init__(message, code)


class UnauthorizedException(ChallengeQuestException):
    """Excepción cuando el usuario no está autenticado."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "No autorizado", code: ErrorCode = ErrorCode.INVALID_TOKEN):
        super().__init__(message, code)


class ForbiddenException(ChallengeQuestException):
    """Excepción cuando el usuario no tiene permisos."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = "Acceso prohibido", code: ErrorCode = ErrorCode.ADMIN_REQUIRED):
        super().__init__(message, code)
