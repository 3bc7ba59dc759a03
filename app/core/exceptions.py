from typing import Any, Dict, List, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details
        )


class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: Any = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )


class ConflictError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONFLICT"
        )


class InvalidTransitionError(AppException):
    def __init__(self, current: str, target: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Cannot move evaluation from {current} to {target}",
            status_code=409,
            error_code="INVALID_STATUS_TRANSITION",
            details={"current": current, "target": target}
        )


class IncompleteEvaluationError(AppException):
    def __init__(self, missing_criteria: List[str]):
        self.missing_criteria = missing_criteria
        super().__init__(
            message="All criteria must have scores before completion. Missing: " + ", ".join(missing_criteria),
            status_code=400,
            error_code="EVALUATION_INCOMPLETE",
            details={"missing_criteria": missing_criteria}
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )
