from fastapi import Request, status
from fastapi.responses import JSONResponse

from db_assistant.core.query_gate.errors import AuthorizationDenied, ValidationInputError


def authorization_denied_exception(_: Request, error: AuthorizationDenied) -> JSONResponse:
    return JSONResponse({"detail": error.reason}, status_code=status.HTTP_403_FORBIDDEN)


def validation_input_exception(_: Request, error: ValidationInputError) -> JSONResponse:
    return JSONResponse({"detail": error.reason}, status_code=status.HTTP_400_BAD_REQUEST)
