from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class TiendaError(Exception):
    status_code = 500
    code = "ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(TiendaError):
    """Dato faltante o inválido, cupón rechazado, stock insuficiente."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(TiendaError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(TiendaError):
    """Carrera perdida al descontar stock o al redimir un cupón; el cliente debe reintentar."""

    status_code = 409
    code = "CONFLICT_RETRY"


class IntegrityConflictError(TiendaError):
    status_code = 409
    code = "INTEGRITY_CONFLICT"


class TransientError(TiendaError):
    """Falla de un colaborador posterior al commit (factura, correo). Nunca llega al cliente."""

    status_code = 503
    code = "TRANSIENT"


async def _tienda_error_handler(request: Request, exc: TiendaError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def install_error_handlers(app: FastAPI):
    app.add_exception_handler(TiendaError, _tienda_error_handler)
