import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base for every caller-visible failure raised by the services.

    ``code`` is stable and safe to branch on; ``details`` carries whatever the
    caller needs to render an actionable message (missing documents, reason codes).
    """
    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None, *, details: dict | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


# ---- Validation ----

class ValidationFailed(DomainError):
    code = "VALIDATION_ERROR"
    status_code = 422

class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = 404

# ---- Conflict ----

class SlotUnavailable(DomainError):
    code = "SLOT_UNAVAILABLE"
    status_code = 409

class InvalidTransition(DomainError):
    code = "INVALID_TRANSITION"
    status_code = 409

class ConfirmationExpired(DomainError):
    code = "CONFIRMATION_EXPIRED"
    status_code = 410

class MissingDocuments(DomainError):
    code = "MISSING_DOCUMENTS"
    status_code = 422

    def __init__(self, missing_documents: list[str]):
        super().__init__(
            "Profile cannot be verified, missing documents: " + ", ".join(missing_documents),
            details={"missing_documents": list(missing_documents)},
        )
        self.missing_documents = list(missing_documents)

# ---- Capacity ----

class NoCreditsAvailable(DomainError):
    code = "NO_CREDITS"
    status_code = 409

class ProfessionalInactive(DomainError):
    code = "PROFESSIONAL_INACTIVE"
    status_code = 409

# ---- Authorization ----

class NotAuthorized(DomainError):
    code = "NOT_AUTHORIZED"
    status_code = 403


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        logger.info(f"{exc.code} for request {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"code": "INTERNAL_ERROR", "message": "An internal server error occurred.", "details": {}},
        )
