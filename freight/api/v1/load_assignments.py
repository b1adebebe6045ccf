from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from freight.database import get_db
from freight.dependencies import get_current_user, get_current_provider, get_current_owner, get_notifier
from freight.schemas.assignment import AssignmentResponse, AssignmentStatusUpdate, AssignmentNotes
from freight.schemas.load import LoadResponse
from freight.schemas.vehicle import VehicleResponse
from freight.services.status_service import AssignmentStatusService
from freight.services.notification_service import NotificationService
from freight.models import User
from freight.utils.response import success_response
from uuid import UUID

router = APIRouter(prefix="/load-assignments", tags=["Load Assignments"])

def get_status_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier)
) -> AssignmentStatusService:
    return AssignmentStatusService(db, notifier)

@router.put("/{assignment_id}/status")
async def update_assignment_status(
    assignment_id: UUID,
    status_data: AssignmentStatusUpdate,
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_user)
):
    """Advance the assignment one step; Load and Vehicle follow"""
    assignment = await service.update_status(
        assignment_id, status_data.status, current_user, status_data.notes
    )
    return success_response(
        AssignmentResponse.model_validate(assignment),
        f"Assignment status updated to {assignment.status.value}"
    )

@router.put("/{assignment_id}/complete")
async def complete_assignment(
    assignment_id: UUID,
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_user)
):
    assignment = await service.complete(assignment_id, current_user)
    return success_response(AssignmentResponse.model_validate(assignment), "Assignment completed")

@router.put("/{assignment_id}/notes")
async def update_assignment_notes(
    assignment_id: UUID,
    notes_data: AssignmentNotes,
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_user)
):
    assignment = await service.update_notes(assignment_id, current_user, notes_data.notes)
    return success_response(AssignmentResponse.model_validate(assignment), "Notes updated")

@router.get("/my-assignments")
async def get_my_assignments(
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_owner)
):
    assignments = await service.my_assignments(current_user)
    return success_response([AssignmentResponse.model_validate(a) for a in assignments])

@router.get("/my-load-assignments")
async def get_my_load_assignments(
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_provider)
):
    assignments = await service.my_load_assignments(current_user)
    return success_response([AssignmentResponse.model_validate(a) for a in assignments])

@router.get("/load/{load_id}")
async def get_assignment_by_load(
    load_id: UUID,
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_user)
):
    assignment = await service.get_by_load(load_id, current_user)
    return success_response(AssignmentResponse.model_validate(assignment))

@router.get("/{assignment_id}/details")
async def get_assignment_details(
    assignment_id: UUID,
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_user)
):
    """Assignment together with its load and vehicle"""
    details = await service.details(assignment_id, current_user)
    return success_response({
        "assignment": AssignmentResponse.model_validate(details["assignment"]),
        "load": LoadResponse.model_validate(details["load"]),
        "vehicle": VehicleResponse.model_validate(details["vehicle"]),
    })

@router.get("/stats")
async def get_assignment_stats(
    service: AssignmentStatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_user)
):
    return success_response(await service.stats(current_user))
