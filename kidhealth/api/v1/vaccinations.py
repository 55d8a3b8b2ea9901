from fastapi import APIRouter, Depends

from ...api.deps import get_current_user, get_doctor_user, get_vaccination_service
from ...services.vaccination_service import VaccinationService
from ...schemas.vaccination import (
    ChildVaccinationsResponse, ManageVaccinationRequest,
    ManageVaccinationResponse, VaccinationMetadata
)
from ...models.user import User

router = APIRouter(prefix="/vaccinations", tags=["Vaccinations"])

@router.post("/manage", response_model=ManageVaccinationResponse)
async def manage_vaccination(
    request: ManageVaccinationRequest,
    service: VaccinationService = Depends(get_vaccination_service),
    current_user: User = Depends(get_current_user)
):
    """Create or update a vaccination record and return the refreshed chart."""
    return service.manage_vaccination(
        child_id=request.child_id,
        disease=request.disease,
        dose_type=request.dose_type,
        actual_date=request.actual_date,
        requesting_user_id=current_user.id,
    )

@router.get("/child/{child_id}", response_model=ChildVaccinationsResponse)
async def get_child_vaccinations(
    child_id: int,
    service: VaccinationService = Depends(get_vaccination_service),
    current_user: User = Depends(get_current_user)
):
    """Stored records and complete schedule for one of the user's children."""
    return service.get_chart(child_id, current_user.id)

@router.get("/doctor/child/{child_id}", response_model=ChildVaccinationsResponse)
async def get_child_vaccinations_for_doctor(
    child_id: int,
    service: VaccinationService = Depends(get_vaccination_service),
    _: User = Depends(get_doctor_user)
):
    """Stored records and complete schedule for any child (approved doctors)."""
    return service.get_chart_for_provider(child_id)

@router.get("/metadata", response_model=VaccinationMetadata)
async def get_vaccination_metadata(
    service: VaccinationService = Depends(get_vaccination_service),
    _: User = Depends(get_current_user)
):
    """Diseases in the reference schedule and the known dose types."""
    return service.metadata()
