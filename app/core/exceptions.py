from fastapi import HTTPException, status

class RelayError(HTTPException):
    """Base for errors that cross the HTTP boundary with a machine-readable code"""
    code = "INTERNAL_ERROR"

    def __init__(self, status_code: int, message: str):
        super().__init__(
            status_code=status_code,
            detail={"error": message, "code": self.code}
        )
        self.message = message

class ThreadNotFoundError(RelayError):
    code = "NOT_FOUND"

    def __init__(self, thread_id: str):
        super().__init__(status.HTTP_404_NOT_FOUND, f"Thread {thread_id} not found")

class InvalidRequestError(RelayError):
    code = "INVALID_REQUEST"

    def __init__(self, message: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, message)

class NoModelsAvailableError(RelayError):
    code = "NO_MODELS_AVAILABLE"

    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "No available models found")

class ModelServiceError(RelayError):
    code = "MODEL_SERVICE_ERROR"

    def __init__(self, message: str = "Failed to fetch available models"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, message)

class UpstreamRateLimitedError(RelayError):
    code = "RATE_LIMIT"

    def __init__(self):
        super().__init__(status.HTTP_429_TOO_MANY_REQUESTS, "Rate limit exceeded, please retry later")

class GatewayError(RelayError):
    code = "GATEWAY_ERROR"

    def __init__(self, message: str):
        super().__init__(status.HTTP_502_BAD_GATEWAY, message)

class StorageUnavailableError(RelayError):
    code = "STORAGE_UNAVAILABLE"

    def __init__(self, message: str = "Thread storage is unavailable"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message)
