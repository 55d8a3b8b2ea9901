from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Date, Boolean,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.config import settings
from ..core.database import Base

class DoseType(str, enum.Enum):
    FIRST = "FIRST"
    SECOND = "SECOND"
    THIRD = "THIRD"
    FOURTH = "FOURTH"
    BOOSTER = "BOOSTER"
    ANNUAL = "ANNUAL"

class VaccinationStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"

class Vaccination(Base):
    __tablename__ = "vaccinations"

    id = Column(Integer, primary_key=True, index=True)

    # One record per child, disease and dose
    child_id = Column(Integer, ForeignKey("children.id"), nullable=False, index=True)
    disease = Column(String(100), nullable=False)
    dose_type = Column(SQLEnum(DoseType), nullable=False)

    # Dates
    expected_date = Column(Date, nullable=False)
    actual_date = Column(Date, nullable=True)
    status = Column(SQLEnum(VaccinationStatus), nullable=False, default=VaccinationStatus.PENDING)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Reminder settings
    reminder_sent = Column(Boolean, default=False)
    last_reminder_date = Column(DateTime, nullable=True)
    email_reminder_enabled = Column(Boolean, default=True)
    reminder_interval = Column(Integer, default=settings.REMINDER_INTERVAL_DAYS)  # days

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    child = relationship("Child", back_populates="vaccinations")

    __table_args__ = (
        UniqueConstraint("child_id", "disease", "dose_type", name="uq_vaccination_child_disease_dose"),
    )

    def __repr__(self):
        return f"<Vaccination(id={self.id}, child_id={self.child_id}, disease='{self.disease}', dose_type='{self.dose_type}')>"
