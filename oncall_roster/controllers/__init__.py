# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller package: HTTP routers. Persistence failures go to the app-level handler."""
from oncall_roster.core.errors import (
    ConflictError,
    NotFoundError,
    OperationCancelled,
    ValidationError,
)

# Domain errors a controller turns into an HTTPException with the error's status code.
CLIENT_ERRORS = (ValidationError, NotFoundError, ConflictError, OperationCancelled)
