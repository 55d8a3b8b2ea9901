"""
Immunization reference tables and chart generation.

The reference tables (which doses each disease needs, at how many months
after birth, and the minimum gaps between consecutive doses) are loaded once
from JSON and never mutated. ``generate_chart`` is a pure function over them.
"""
import json
import math
from datetime import date, timedelta
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.config import settings
from ..models.vaccination import DoseType, VaccinationStatus
from ..schemas.vaccination import AdministeredDose, ChartEntry

# Average Gregorian month, used for the fractional part of a month offset
DAYS_PER_MONTH = 365.25 / 12


class ScheduledDose(BaseModel):
    model_config = ConfigDict(frozen=True)

    dose_type: DoseType
    months_after_birth: float = Field(..., ge=0)


class VaccineReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    disease: str
    is_optional: bool = False
    schedule: Tuple[ScheduledDose, ...]

    @field_validator("schedule")
    @classmethod
    def unique_doses(cls, schedule):
        dose_types = [dose.dose_type for dose in schedule]
        if not dose_types:
            raise ValueError("schedule must contain at least one dose")
        if len(set(dose_types)) != len(dose_types):
            raise ValueError("dose types must be unique within a schedule")
        return schedule

    @property
    def dose_types(self) -> List[DoseType]:
        return [dose.dose_type for dose in self.schedule]


class IntervalRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    disease: str
    from_dose: DoseType
    to_dose: DoseType
    months: float = Field(..., gt=0)


class ImmunizationReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    vaccines: Tuple[VaccineReference, ...]
    minimum_intervals: Tuple[IntervalRule, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def expand_interval_table(cls, data):
        # {"Hepatitis B": {"FIRST_TO_SECOND": 1}} -> IntervalRule entries
        table = data.get("minimum_intervals") if isinstance(data, dict) else None
        if isinstance(table, dict):
            rules = []
            for disease, pairs in table.items():
                for key, months in pairs.items():
                    from_dose, sep, to_dose = key.partition("_TO_")
                    if not sep:
                        raise ValueError(f"Malformed interval key {key!r} for {disease}")
                    rules.append({
                        "disease": disease,
                        "from_dose": from_dose,
                        "to_dose": to_dose,
                        "months": months,
                    })
            data = {**data, "minimum_intervals": rules}
        return data

    @model_validator(mode="after")
    def unique_diseases(self):
        diseases = [vaccine.disease for vaccine in self.vaccines]
        if len(set(diseases)) != len(diseases):
            raise ValueError("diseases must be unique in the reference table")
        return self

    def vaccine(self, disease: str) -> Optional[VaccineReference]:
        for vaccine in self.vaccines:
            if vaccine.disease == disease:
                return vaccine
        return None

    def min_interval(self, disease: str, from_dose: DoseType, to_dose: DoseType) -> Optional[float]:
        """Minimum months between two doses, or None when no rule exists."""
        for rule in self.minimum_intervals:
            if rule.disease == disease and rule.from_dose == from_dose and rule.to_dose == to_dose:
                return rule.months
        return None


@lru_cache(maxsize=None)
def load_reference(path: str) -> ImmunizationReference:
    """Load and validate the reference tables from a JSON file."""
    with open(path, encoding="utf-8") as fh:
        return ImmunizationReference.model_validate(json.load(fh))


def get_reference() -> ImmunizationReference:
    """Reference tables configured for this process."""
    return load_reference(settings.IMMUNIZATION_SCHEDULE_PATH)


def add_months(start: date, months: float) -> date:
    """
    Add a possibly fractional number of months to a date.

    Whole months follow the calendar (clamped to the end of shorter months);
    the fractional remainder is converted to days using an average month,
    so 1.5 months after 2024-01-01 is 2024-02-16.
    """
    whole = math.floor(months)
    result = start + relativedelta(months=whole)
    fraction = months - whole
    if fraction:
        result += timedelta(days=round(fraction * DAYS_PER_MONTH))
    return result


def generate_chart(
    date_of_birth: date,
    actual_doses: Iterable[AdministeredDose],
    reference: ImmunizationReference,
) -> List[ChartEntry]:
    """
    Build the complete immunization chart for a child.

    Every dose in the reference table appears exactly once. Doses found in
    ``actual_doses`` are COMPLETED on their actual date; the rest are PENDING
    and due either a minimum interval after the last completed dose of the
    same disease (when a rule exists for that pair) or at their birth-relative
    offset. Entries are returned ordered by expected date.
    """
    given = [dose for dose in actual_doses if dose.actual_date is not None]
    chart: List[ChartEntry] = []

    for vaccine in reference.vaccines:
        administered = sorted(
            (dose for dose in given if dose.disease == vaccine.disease),
            key=lambda dose: dose.actual_date,
        )
        by_dose = {}
        for dose in administered:
            by_dose.setdefault(DoseType(dose.dose_type), dose.actual_date)

        last_actual_date = None
        last_dose_type = None

        for scheduled in vaccine.schedule:
            actual_date = by_dose.get(scheduled.dose_type)

            if actual_date is not None:
                chart.append(ChartEntry(
                    disease=vaccine.disease,
                    dose_type=scheduled.dose_type,
                    expected_date=actual_date,
                    actual_date=actual_date,
                    is_optional=vaccine.is_optional,
                    status=VaccinationStatus.COMPLETED,
                ))
                last_actual_date = actual_date
                last_dose_type = scheduled.dose_type
                continue

            interval = None
            if last_actual_date is not None:
                interval = reference.min_interval(vaccine.disease, last_dose_type, scheduled.dose_type)

            if interval is not None:
                expected_date = add_months(last_actual_date, interval)
            else:
                expected_date = add_months(date_of_birth, scheduled.months_after_birth)

            chart.append(ChartEntry(
                disease=vaccine.disease,
                dose_type=scheduled.dose_type,
                expected_date=expected_date,
                actual_date=None,
                is_optional=vaccine.is_optional,
                status=VaccinationStatus.PENDING,
            ))

    # Stable sort keeps table order for doses due on the same day
    chart.sort(key=lambda entry: entry.expected_date)
    return chart
