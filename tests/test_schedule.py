"""Tests for the immunization chart generator - no database required."""
from datetime import date

import pytest
from pydantic import ValidationError

from kidhealth.models.vaccination import DoseType, VaccinationStatus
from kidhealth.schemas.vaccination import AdministeredDose
from kidhealth.services.schedule import (
    ImmunizationReference, add_months, generate_chart, get_reference
)

DOB = date(2024, 1, 1)


@pytest.fixture(scope="module")
def reference():
    return get_reference()


def _entry(chart, disease, dose_type):
    matches = [e for e in chart if e.disease == disease and e.dose_type == dose_type]
    assert len(matches) == 1
    return matches[0]


def _dose(disease, dose_type, actual_date):
    return AdministeredDose(disease=disease, dose_type=dose_type, actual_date=actual_date)


class TestAddMonths:

    def test_whole_months(self):
        assert add_months(date(2024, 1, 10), 1) == date(2024, 2, 10)
        assert add_months(date(2024, 1, 1), 16) == date(2025, 5, 1)

    def test_end_of_month_is_clamped(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_fractional_months_are_not_truncated(self):
        assert add_months(date(2024, 1, 1), 1.5) == date(2024, 2, 16)
        assert add_months(date(2024, 1, 1), 0.5) == date(2024, 1, 16)

    def test_zero(self):
        assert add_months(DOB, 0) == DOB


class TestGenerateChart:

    def test_birth_dose_pending_before_any_submission(self, reference):
        chart = generate_chart(DOB, [], reference)

        bcg = _entry(chart, "BCG", DoseType.FIRST)
        assert bcg.expected_date == date(2024, 1, 1)
        assert bcg.status == VaccinationStatus.PENDING
        assert bcg.actual_date is None

    def test_every_reference_dose_appears_once(self, reference):
        chart = generate_chart(DOB, [], reference)

        expected_pairs = {
            (vaccine.disease, dose.dose_type)
            for vaccine in reference.vaccines
            for dose in vaccine.schedule
        }
        chart_pairs = [(e.disease, e.dose_type) for e in chart]
        assert len(chart_pairs) == len(expected_pairs)
        assert set(chart_pairs) == expected_pairs

    def test_completeness_with_actual_doses(self, reference):
        actuals = [
            _dose("Hepatitis B", DoseType.FIRST, date(2024, 1, 10)),
            _dose("DPT", DoseType.FIRST, date(2024, 2, 20)),
        ]
        chart = generate_chart(DOB, actuals, reference)
        total = sum(len(v.schedule) for v in reference.vaccines)
        assert len(chart) == total

    def test_sorted_by_expected_date(self, reference):
        actuals = [
            _dose("Hepatitis B", DoseType.FIRST, date(2024, 3, 1)),
            _dose("Hepatitis B", DoseType.SECOND, date(2024, 5, 1)),
            _dose("BCG", DoseType.FIRST, date(2024, 1, 2)),
        ]
        chart = generate_chart(DOB, actuals, reference)
        dates = [e.expected_date for e in chart]
        assert dates == sorted(dates)

    def test_deterministic(self, reference):
        actuals = [_dose("DPT", DoseType.FIRST, date(2024, 2, 20))]
        first = generate_chart(DOB, actuals, reference)
        second = generate_chart(DOB, actuals, reference)
        assert first == second

    def test_completed_dose_uses_actual_date(self, reference):
        actual = date(2024, 1, 10)
        chart = generate_chart(DOB, [_dose("Hepatitis B", DoseType.FIRST, actual)], reference)

        entry = _entry(chart, "Hepatitis B", DoseType.FIRST)
        assert entry.status == VaccinationStatus.COMPLETED
        assert entry.expected_date == actual
        assert entry.actual_date == actual

    def test_interval_rule_moves_next_dose(self, reference):
        chart = generate_chart(
            DOB, [_dose("Hepatitis B", DoseType.FIRST, date(2024, 1, 10))], reference
        )

        second = _entry(chart, "Hepatitis B", DoseType.SECOND)
        assert second.status == VaccinationStatus.PENDING
        assert second.expected_date == date(2024, 2, 10)

        # No FIRST_TO_THIRD rule: falls back to the birth offset
        third = _entry(chart, "Hepatitis B", DoseType.THIRD)
        assert third.expected_date == date(2024, 7, 1)

    def test_interval_rule_chains_off_latest_completed_dose(self, reference):
        actuals = [
            _dose("DPT", DoseType.FIRST, date(2024, 3, 1)),
            _dose("DPT", DoseType.SECOND, date(2024, 4, 10)),
        ]
        chart = generate_chart(DOB, actuals, reference)

        assert _entry(chart, "DPT", DoseType.THIRD).expected_date == date(2024, 5, 10)
        # Pending THIRD does not move the tracker, and there is no SECOND_TO_BOOSTER rule
        assert _entry(chart, "DPT", DoseType.BOOSTER).expected_date == date(2025, 5, 1)

    def test_no_rule_keeps_birth_relative_offset(self, reference):
        chart = generate_chart(
            DOB, [_dose("OPV (Oral Polio)", DoseType.FIRST, date(2024, 1, 20))], reference
        )
        second = _entry(chart, "OPV (Oral Polio)", DoseType.SECOND)
        assert second.expected_date == date(2024, 2, 16)

    def test_records_without_actual_date_stay_pending(self, reference):
        chart = generate_chart(DOB, [_dose("BCG", DoseType.FIRST, None)], reference)
        bcg = _entry(chart, "BCG", DoseType.FIRST)
        assert bcg.status == VaccinationStatus.PENDING
        assert bcg.expected_date == DOB

    def test_unknown_disease_and_dose_are_ignored(self, reference):
        baseline = generate_chart(DOB, [], reference)
        chart = generate_chart(DOB, [
            _dose("Yellow Fever", DoseType.FIRST, date(2024, 5, 1)),
            _dose("BCG", DoseType.ANNUAL, date(2024, 5, 1)),
        ], reference)
        assert chart == baseline

    def test_optional_flag_is_carried(self, reference):
        chart = generate_chart(DOB, [], reference)
        assert _entry(chart, "Influenza", DoseType.FIRST).is_optional is True
        assert _entry(chart, "BCG", DoseType.FIRST).is_optional is False


class TestReference:

    def test_interval_lookup(self, reference):
        assert reference.min_interval("Hepatitis B", DoseType.SECOND, DoseType.THIRD) == 5
        assert reference.min_interval("Hepatitis B", DoseType.FIRST, DoseType.THIRD) is None
        assert reference.min_interval("BCG", DoseType.FIRST, DoseType.SECOND) is None

    def test_reference_is_immutable(self, reference):
        with pytest.raises(ValidationError):
            reference.vaccines = ()

    def test_malformed_interval_key_rejected(self):
        with pytest.raises(ValidationError):
            ImmunizationReference.model_validate({
                "vaccines": [{"disease": "BCG", "schedule": [
                    {"dose_type": "FIRST", "months_after_birth": 0}
                ]}],
                "minimum_intervals": {"BCG": {"FIRST-SECOND": 1}},
            })

    def test_unknown_dose_type_rejected(self):
        with pytest.raises(ValidationError):
            ImmunizationReference.model_validate({
                "vaccines": [{"disease": "BCG", "schedule": [
                    {"dose_type": "FIFTH", "months_after_birth": 0}
                ]}],
            })

    def test_duplicate_dose_rejected(self):
        with pytest.raises(ValidationError):
            ImmunizationReference.model_validate({
                "vaccines": [{"disease": "BCG", "schedule": [
                    {"dose_type": "FIRST", "months_after_birth": 0},
                    {"dose_type": "FIRST", "months_after_birth": 1},
                ]}],
            })
