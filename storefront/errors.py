class StorefrontError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidSignature(StorefrontError):
    status_code = 400
    message = "Invalid webhook signature."


class Unauthorized(StorefrontError):
    status_code = 401
    message = "User not authorized"


class NotFound(StorefrontError):
    status_code = 404
    message = "Not found"


class UpstreamFailure(StorefrontError):
    status_code = 502
    message = "Payment provider request failed"


class InvalidArgument(StorefrontError):
    status_code = 400
    message = "Invalid argument"
