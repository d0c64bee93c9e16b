from fastapi import status
from fastapi.responses import JSONResponse
from src.libs.result import Error


class ClientError(Exception):
    def __init__(self, base_error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


class RateLimitExceeded(Exception):
    def __init__(self, base_error: Error, limit: int, retry_after: int):
        self.base_error = base_error
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(base_error.message)


def failure_response(error: Error, status_code: int, headers=None, **extra) -> JSONResponse:
    """{success: false, error} envelope used by the browser-facing invite routes"""
    content = {"success": False, "error": error.message, "code": error.code}
    content.update({key: value for key, value in extra.items() if value is not None})
    return JSONResponse(status_code=status_code, content=content, headers=headers)
