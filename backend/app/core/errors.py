"""
Errores de dominio del punto de venta.

Los servicios lanzan estas excepciones; main.create_app registra los
handlers que las convierten en respuestas HTTP {"detail": mensaje}.
"""


class POSError(Exception):
    """Base de todos los errores de negocio."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(POSError):
    """Datos del operador que violan una precondición."""

    status_code = 400


class NotFoundError(POSError):
    status_code = 404


class ConflictError(POSError):
    """Código de producto duplicado."""

    status_code = 409


class InvalidStateError(POSError):
    """Carrito vacío, turno cerrado o transición no permitida."""

    status_code = 409


class AuthorizationError(POSError):
    status_code = 403


class PartialFailureWarning(Warning):
    """
    La venta quedó registrada pero un efecto posterior (stock o caja) falló.

    No se lanza: se devuelve junto a la venta para que el operador verifique
    manualmente el stock y la caja.
    """

    def __init__(self, step: str, message: str, detail: str = ""):
        super().__init__(message)
        self.step = step
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message
