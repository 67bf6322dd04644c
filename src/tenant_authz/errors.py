from __future__ import annotations


class AppError(Exception):
    """Base error for expected failures."""

    def __init__(self, message: str, *, http_status: int = 400):
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class AuthError(AppError):
    def __init__(self, message: str = "unauthorized"):
        super().__init__(message, http_status=401)


class ForbiddenError(AppError):
    def __init__(self, message: str = "forbidden", *, code: str = "ROLE_FORBIDDEN"):
        super().__init__(message, http_status=403)
        self.code = code


class TenantHeaderError(AppError):
    def __init__(self, message: str, *, code: str = "TENANT_HEADER_INVALID"):
        super().__init__(message, http_status=400)
        self.code = code


class RoleStoreError(AppError):
    """
    Infrastructure failure while talking to the role store.

    Distinct from a missing row, which stores report as ``None``.
    """

    def __init__(self, message: str = "role store unavailable"):
        super().__init__(message, http_status=503)
