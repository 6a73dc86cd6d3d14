"""
Domain errors shared by the payroll apps.

They extend DRF's exception classes so the API layer renders them with the
right status code, while services raise and callers catch them like any
other Python exception.
"""
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError

__all__ = [
    "BracketNotFound",
    "BracketOverlapError",
    "BusinessRuleViolation",
    "DuplicateAbsenceRecord",
    "DuplicateBracketName",
    "DuplicateSalaryRecord",
    "EmployeeNotFound",
    "NoSalaryRecord",
    "NotFoundError",
    "SnapshotNotFound",
    "ValidationError",
]


class NotFoundError(NotFound):
    """A lookup that must match returned nothing."""

    def __init__(self, entity: str, key, detail=None):
        self.entity = entity
        self.key = key
        super().__init__(detail or f"{entity} {key} was not found.")


class EmployeeNotFound(NotFoundError):
    def __init__(self, employee_id):
        super().__init__("Employee", employee_id)


class SnapshotNotFound(NotFoundError):
    def __init__(self, employee_id, year: int, month: int):
        super().__init__(
            "PayrollSnapshot",
            (employee_id, year, month),
            detail=f"Payroll snapshot for employee {employee_id} in {month:02d}/{year} was not found.",
        )


class BracketNotFound(NotFoundError):
    def __init__(self, kind: str, bracket_id):
        super().__init__("Bracket", bracket_id, detail=f"{kind} bracket {bracket_id} was not found.")


class BusinessRuleViolation(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Business rule violation."
    default_code = "business_rule_violation"

    def __init__(self, title: str, detail=None):
        self.title = title
        super().__init__(detail or title)


class NoSalaryRecord(BusinessRuleViolation):
    def __init__(self, employee_id, as_of):
        self.employee_id = employee_id
        self.as_of = as_of
        super().__init__(
            "No salary record found",
            f"Employee {employee_id} has no salary record effective on or before {as_of:%Y-%m-%d}.",
        )


class BracketOverlapError(BusinessRuleViolation):
    def __init__(self, kind: str, min_bound: int, max_bound):
        upper = "unbounded" if max_bound is None else max_bound
        super().__init__(
            "Overlapping bracket",
            f"The {kind} range [{min_bound}, {upper}] overlaps an existing active bracket.",
        )


class DuplicateBracketName(BusinessRuleViolation):
    def __init__(self, kind: str, name: str):
        super().__init__("Duplicate bracket name", f"An active {kind} bracket named '{name}' already exists.")


class DuplicateSalaryRecord(BusinessRuleViolation):
    def __init__(self, employee_id, effective_date):
        super().__init__(
            "Duplicate salary record",
            f"Employee {employee_id} already has a salary record effective on {effective_date:%Y-%m-%d}.",
        )


class DuplicateAbsenceRecord(BusinessRuleViolation):
    def __init__(self, employee_id, year: int, month: int):
        super().__init__(
            "Duplicate absence record",
            f"Employee {employee_id} already has an absence record for {month:02d}/{year}.",
        )
