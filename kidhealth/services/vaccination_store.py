from datetime import date
from typing import List, Optional, Sequence
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import StoreError
from ..models.vaccination import DoseType, Vaccination, VaccinationStatus

logger = logging.getLogger(__name__)

class VaccinationStore:
    """Persistence for vaccination records, one row per child/disease/dose."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_child_and_disease(self, child_id: int, disease: str) -> List[Vaccination]:
        return self.db.query(Vaccination).filter(
            Vaccination.child_id == child_id,
            Vaccination.disease == disease
        ).order_by(Vaccination.expected_date).all()

    def find_by_child_disease_doses(
        self, child_id: int, disease: str, dose_types: Sequence[DoseType]
    ) -> List[Vaccination]:
        if not dose_types:
            return []
        return self.db.query(Vaccination).filter(
            Vaccination.child_id == child_id,
            Vaccination.disease == disease,
            Vaccination.dose_type.in_(list(dose_types))
        ).order_by(Vaccination.expected_date).all()

    def find_one(self, child_id: int, disease: str, dose_type: DoseType) -> Optional[Vaccination]:
        return self.db.query(Vaccination).filter(
            Vaccination.child_id == child_id,
            Vaccination.disease == disease,
            Vaccination.dose_type == dose_type
        ).first()

    def find_all_by_child(self, child_id: int) -> List[Vaccination]:
        return self.db.query(Vaccination).filter(
            Vaccination.child_id == child_id
        ).order_by(Vaccination.expected_date, Vaccination.id).all()

    def upsert(
        self,
        child_id: int,
        disease: str,
        dose_type: DoseType,
        actual_date: Optional[date],
        expected_date: date,
        created_by: int,
    ) -> Vaccination:
        """
        Create the record for this dose or update its actual date and status.

        ``expected_date`` and ``created_by`` are only written when the record
        is created. Runs as a single INSERT ... ON CONFLICT statement where the
        dialect supports it.
        """
        status = VaccinationStatus.COMPLETED if actual_date else VaccinationStatus.PENDING

        try:
            dialect = self.db.get_bind().dialect.name
            if dialect in ("postgresql", "sqlite"):
                self._insert_on_conflict(
                    dialect, child_id, disease, dose_type,
                    actual_date, status, expected_date, created_by
                )
            else:
                self._locked_upsert(
                    child_id, disease, dose_type,
                    actual_date, status, expected_date, created_by
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to upsert vaccination child={child_id} disease={disease} "
                f"dose={dose_type.value}: {str(e)}"
            )
            raise StoreError(cause=e) from e

        return self.find_one(child_id, disease, dose_type)

    def _insert_on_conflict(
        self, dialect, child_id, disease, dose_type,
        actual_date, status, expected_date, created_by
    ):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        stmt = insert(Vaccination).values(
            child_id=child_id,
            disease=disease,
            dose_type=dose_type,
            expected_date=expected_date,
            actual_date=actual_date,
            status=status,
            created_by=created_by,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["child_id", "disease", "dose_type"],
            set_={
                "actual_date": stmt.excluded.actual_date,
                "status": stmt.excluded.status,
                "updated_at": func.now(),
            },
        )
        self.db.execute(stmt)

    def _locked_upsert(
        self, child_id, disease, dose_type,
        actual_date, status, expected_date, created_by
    ):
        record = self.db.query(Vaccination).filter(
            Vaccination.child_id == child_id,
            Vaccination.disease == disease,
            Vaccination.dose_type == dose_type
        ).with_for_update().first()

        if record:
            record.actual_date = actual_date
            record.status = status
            record.updated_at = func.now()
        else:
            self.db.add(Vaccination(
                child_id=child_id,
                disease=disease,
                dose_type=dose_type,
                expected_date=expected_date,
                actual_date=actual_date,
                status=status,
                created_by=created_by,
            ))
        self.db.flush()
