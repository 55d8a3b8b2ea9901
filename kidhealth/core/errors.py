"""
Vaccination workflow errors.

Every error carries a machine-readable ``error`` kind in its detail so
clients can tell a missing earlier dose from a too-early date without
parsing the message.
"""
from datetime import date
from typing import List, Optional

from fastapi import HTTPException, status


class VaccinationError(HTTPException):
    kind = "vaccination_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **extra):
        self.message = message
        super().__init__(
            status_code=self.http_status,
            detail={"error": self.kind, "message": message, **extra},
        )


class InputError(VaccinationError):
    kind = "input_error"


class InvalidDoseError(VaccinationError):
    kind = "invalid_dose"

    def __init__(self, disease: str, dose_type: str, accepted_doses: List[str]):
        self.accepted_doses = accepted_doses
        super().__init__(
            f"Invalid dose type {dose_type} for {disease}",
            accepted_doses=accepted_doses,
        )


class OrderingViolationError(VaccinationError):
    kind = "ordering_violation"

    def __init__(self, missing_doses: List[str]):
        self.missing_doses = missing_doses
        super().__init__(
            "Previous doses must be completed first",
            missing_doses=missing_doses,
        )


class IntervalViolationError(VaccinationError):
    kind = "interval_violation"

    def __init__(self, min_interval_months: float, earliest_possible_date: date):
        self.min_interval_months = min_interval_months
        self.earliest_possible_date = earliest_possible_date
        super().__init__(
            f"Must wait at least {min_interval_months:g} months after previous dose",
            min_interval_months=min_interval_months,
            earliest_possible_date=earliest_possible_date.isoformat(),
        )


class NotFoundError(VaccinationError):
    kind = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class StoreError(VaccinationError):
    kind = "store_error"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Failed to save vaccination record", cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)
