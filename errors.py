"""
Error taxonomy shared by the repositories and the HTTP layer.

Each error carries a human readable message and the status code the API
answers with.
"""


class RentalError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RentalError):
    status_code = 400


class ConflictError(RentalError):
    status_code = 400


class NotFoundError(RentalError):
    status_code = 404


class UnauthorizedError(RentalError):
    status_code = 401


class UnavailableError(RentalError):
    status_code = 500
