"""Request/response models for vaccination records and charts."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ..models.vaccination import DoseType, VaccinationStatus


class AdministeredDose(BaseModel):
    """A dose that was actually given, as fed to the chart generator."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    disease: str
    dose_type: DoseType
    actual_date: Optional[date] = None


class ChartEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    disease: str
    dose_type: DoseType
    expected_date: date
    actual_date: Optional[date] = None
    is_optional: bool = False
    status: VaccinationStatus


class ManageVaccinationRequest(BaseModel):
    # Presence is checked by the service so a missing field is reported as an input error
    child_id: Optional[int] = None
    disease: Optional[str] = None
    dose_type: Optional[DoseType] = None
    actual_date: Optional[date] = None


class VaccinationRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    child_id: int
    disease: str
    dose_type: DoseType
    expected_date: date
    actual_date: Optional[date] = None
    status: VaccinationStatus
    created_by: int
    reminder_sent: Optional[bool] = None
    last_reminder_date: Optional[datetime] = None
    email_reminder_enabled: Optional[bool] = None
    reminder_interval: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ManageVaccinationResponse(BaseModel):
    vaccination: VaccinationRecordResponse
    complete_schedule: List[ChartEntry]
    next_doses: List[ChartEntry]


class ChildVaccinationsResponse(BaseModel):
    actual_records: List[VaccinationRecordResponse]
    complete_schedule: List[ChartEntry]


class DiseaseInfo(BaseModel):
    name: str
    is_optional: bool


class VaccinationMetadata(BaseModel):
    diseases: List[DiseaseInfo]
    dose_types: List[DoseType]
