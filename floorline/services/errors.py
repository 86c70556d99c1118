from __future__ import annotations


class FloorlineError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(FloorlineError):
    status_code = 400


class NotFound(FloorlineError):
    status_code = 404


class StateConflict(FloorlineError):
    status_code = 409
