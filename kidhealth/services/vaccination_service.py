from sqlalchemy.orm import Session
from datetime import date
from typing import Optional, Tuple
import logging

from ..core.config import settings
from ..core.errors import (
    InputError, InvalidDoseError, IntervalViolationError,
    NotFoundError, OrderingViolationError
)
from ..core.security import AuthorizationError
from ..models.child import Child
from ..models.user import User
from ..models.vaccination import DoseType, VaccinationStatus
from ..schemas.vaccination import AdministeredDose
from .schedule import ImmunizationReference, add_months, generate_chart
from .vaccination_store import VaccinationStore

logger = logging.getLogger(__name__)

class VaccinationService:
    def __init__(self, db: Session, reference: ImmunizationReference):
        self.db = db
        self.reference = reference
        self.store = VaccinationStore(db)

    def find_account_containing_child(self, child_id: int) -> Tuple[User, Child]:
        """Return the owning account and the child, or raise NotFoundError."""
        child = self.db.query(Child).filter(Child.id == child_id).first()
        if not child:
            raise NotFoundError("Child not found")
        return child.user, child

    def manage_vaccination(
        self,
        child_id: Optional[int],
        disease: Optional[str],
        dose_type: Optional[DoseType],
        actual_date: Optional[date],
        requesting_user_id: int,
    ) -> dict:
        """
        Record a dose event for a child and return the refreshed chart.

        Every check runs before the single upsert, so a rejected event leaves
        the stored records untouched. Without ``actual_date`` the dose is
        stored (or reset) as pending.
        """
        logger.info(
            f"Managing vaccination child={child_id} disease={disease} "
            f"dose={getattr(dose_type, 'value', dose_type)} actual_date={actual_date}"
        )

        if not child_id or not disease or not dose_type:
            raise InputError("Please provide child_id, disease, and dose_type")

        child = self._owned_child(child_id, requesting_user_id)

        # Reference schedule without any administered doses
        original_schedule = generate_chart(child.date_of_birth, [], self.reference)

        vaccine = self.reference.vaccine(disease)
        dose_order = vaccine.dose_types if vaccine else []
        try:
            dose_type = DoseType(dose_type)
        except ValueError:
            raise InvalidDoseError(disease, str(dose_type), [d.value for d in dose_order])
        if dose_type not in dose_order:
            logger.warning(f"Rejected {dose_type.value} for {disease}: not in schedule")
            raise InvalidDoseError(disease, dose_type.value, [d.value for d in dose_order])

        dose_index = dose_order.index(dose_type)
        original_expected_date = next(
            entry.expected_date for entry in original_schedule
            if entry.disease == disease and entry.dose_type == dose_type
        )

        if dose_index > 0:
            previous_doses = dose_order[:dose_index]
            existing = self.store.find_by_child_disease_doses(child.id, disease, previous_doses)
            completed = {
                DoseType(record.dose_type): record
                for record in existing if record.actual_date
            }

            missing = [dose.value for dose in previous_doses if dose not in completed]
            if missing:
                logger.warning(f"Rejected {dose_type.value} for {disease}: missing {missing}")
                raise OrderingViolationError(missing)

            if actual_date:
                previous_dose = previous_doses[-1]
                min_interval = self.reference.min_interval(disease, previous_dose, dose_type)
                if min_interval is None:
                    min_interval = settings.DEFAULT_MIN_INTERVAL_MONTHS

                earliest_date = add_months(completed[previous_dose].actual_date, min_interval)
                if actual_date < earliest_date:
                    logger.warning(
                        f"Rejected {dose_type.value} for {disease} on {actual_date}: "
                        f"earliest allowed {earliest_date}"
                    )
                    raise IntervalViolationError(min_interval, earliest_date)

        vaccination = self.store.upsert(
            child_id=child.id,
            disease=disease,
            dose_type=dose_type,
            actual_date=actual_date,
            expected_date=original_expected_date,
            created_by=requesting_user_id,
        )
        logger.info(
            f"Saved vaccination {vaccination.id}: {disease} {dose_type.value} "
            f"status={vaccination.status.value} expected={vaccination.expected_date}"
        )

        chart = self._chart_for(child)
        today = date.today()

        return {
            "vaccination": vaccination,
            "complete_schedule": chart,
            "next_doses": [
                entry for entry in chart
                if entry.status == VaccinationStatus.PENDING and entry.expected_date > today
            ],
        }

    def get_chart(self, child_id: int, requesting_user_id: int) -> dict:
        """Stored records and the full chart for a child the caller owns."""
        child = self._owned_child(child_id, requesting_user_id)
        return self._records_and_chart(child)

    def get_chart_for_provider(self, child_id: int) -> dict:
        """Stored records and the full chart for any child (doctor access)."""
        _, child = self.find_account_containing_child(child_id)
        return self._records_and_chart(child)

    def metadata(self) -> dict:
        return {
            "diseases": [
                {"name": vaccine.disease, "is_optional": vaccine.is_optional}
                for vaccine in self.reference.vaccines
            ],
            "dose_types": list(DoseType),
        }

    def _owned_child(self, child_id: int, requesting_user_id: int) -> Child:
        account, child = self.find_account_containing_child(child_id)
        if account.id != requesting_user_id:
            logger.warning(f"User {requesting_user_id} denied access to child {child_id}")
            raise AuthorizationError("Not authorized to manage vaccinations for this child")
        return child

    def _records_and_chart(self, child: Child) -> dict:
        records = self.store.find_all_by_child(child.id)
        return {
            "actual_records": records,
            "complete_schedule": self._generate(child, records),
        }

    def _chart_for(self, child: Child):
        return self._generate(child, self.store.find_all_by_child(child.id))

    def _generate(self, child: Child, records):
        doses = [AdministeredDose.model_validate(record) for record in records]
        return generate_chart(child.date_of_birth, doses, self.reference)
