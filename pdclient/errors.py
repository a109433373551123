from __future__ import annotations

from typing import Any, List, Optional


class PagerDutyError(Exception):
    pass


class PagerDutyValidationError(PagerDutyError):
    pass


class PagerDutyApiError(PagerDutyError):
    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[int] = None,
        errors: Optional[List[Any]] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.errors = errors or []
        self.request_id = request_id

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class PagerDutyDecodeError(PagerDutyError):
    pass


class PagerDutyMissingFieldError(PagerDutyDecodeError):
    def __init__(self, field: str):
        super().__init__(f"JSON response does not have {field} field")
        self.field = field
