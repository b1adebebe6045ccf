from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from freight.models import (
    Load, LoadStatus, Vehicle, VehicleStatus, LoadAssignment, AssignmentStatus, User
)
from freight.services.notification_service import NotificationService, user_room, load_room
from freight.exceptions import NotFoundError, ForbiddenError, InvalidStateError, InvalidInputError
from freight.utils.timeutils import utcnow
from typing import Dict, List, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

# Forward-only lifecycle; position in the list is the rank
ASSIGNMENT_FLOW = [
    AssignmentStatus.ASSIGNED,
    AssignmentStatus.ENROUTE,
    AssignmentStatus.DELIVERED,
    AssignmentStatus.COMPLETED,
]

STATUS_ALIASES = {
    "in_progress": AssignmentStatus.ENROUTE,
    "in_transit": AssignmentStatus.ENROUTE,
}

LOAD_STATUS_FOR = {
    AssignmentStatus.ASSIGNED: LoadStatus.ASSIGNED,
    AssignmentStatus.ENROUTE: LoadStatus.ENROUTE,
    AssignmentStatus.DELIVERED: LoadStatus.DELIVERED,
    AssignmentStatus.COMPLETED: LoadStatus.COMPLETED,
}

VEHICLE_STATUS_FOR = {
    AssignmentStatus.ASSIGNED: VehicleStatus.ASSIGNED,
    AssignmentStatus.ENROUTE: VehicleStatus.IN_TRANSIT,
    AssignmentStatus.DELIVERED: VehicleStatus.DELIVERED,
    AssignmentStatus.COMPLETED: VehicleStatus.AVAILABLE,
}

TIMESTAMP_FOR = {
    AssignmentStatus.ENROUTE: "started_at",
    AssignmentStatus.DELIVERED: "delivered_at",
    AssignmentStatus.COMPLETED: "completed_at",
}

def normalize_status(value) -> AssignmentStatus:
    """Map client input, including the enroute aliases, onto AssignmentStatus"""
    if isinstance(value, AssignmentStatus):
        return value
    key = str(value).strip().lower()
    if key in STATUS_ALIASES:
        return STATUS_ALIASES[key]
    try:
        return AssignmentStatus(key)
    except ValueError:
        raise InvalidInputError(f"Unknown status '{value}'")

def check_transition(current: AssignmentStatus, target: AssignmentStatus, allow_skip: bool = False) -> bool:
    """
    Validate a move from current to target.
    Returns False for the idempotent repeat, True when a change is needed.
    """
    if current == target:
        return False
    if current == AssignmentStatus.COMPLETED:
        raise InvalidStateError("Assignment is already completed")

    step = ASSIGNMENT_FLOW.index(target) - ASSIGNMENT_FLOW.index(current)
    if step < 0:
        raise InvalidStateError(
            f"Cannot move assignment back from {current.value} to {target.value}"
        )
    if step > 1 and not allow_skip:
        raise InvalidStateError(
            f"Cannot move assignment from {current.value} to {target.value}"
        )
    return True

class AssignmentStatusService:
    """Drives an assignment through its lifecycle, mirroring Load and Vehicle"""

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier

    async def get_assignment(self, assignment_id: UUID) -> LoadAssignment:
        result = await self.db.execute(
            select(LoadAssignment).where(LoadAssignment.id == assignment_id)
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    @staticmethod
    def _authorize(assignment: LoadAssignment, user: User):
        if user.id not in (assignment.load_provider_id, assignment.vehicle_owner_id):
            raise ForbiddenError("Not authorized to update this assignment")

    async def update_status(
        self,
        assignment_id: UUID,
        target,
        user: User,
        notes: Optional[str] = None
    ) -> LoadAssignment:
        """Move one step forward; repeating the current status changes nothing"""
        target = normalize_status(target)
        assignment = await self.get_assignment(assignment_id)
        self._authorize(assignment, user)

        if not check_transition(assignment.status, target):
            return assignment

        await self._apply(assignment, target, notes)
        return assignment

    async def complete(self, assignment_id: UUID, user: User) -> LoadAssignment:
        """Strict completion: only a delivered assignment can be completed"""
        assignment = await self.get_assignment(assignment_id)
        self._authorize(assignment, user)

        if assignment.status != AssignmentStatus.DELIVERED:
            raise InvalidStateError("Assignment must be delivered before completion")

        await self._apply(assignment, AssignmentStatus.COMPLETED)
        return assignment

    async def force_status(self, load_id: UUID, target) -> LoadAssignment:
        """Admin override: may skip intermediate states, never moves backward"""
        target = normalize_status(target)
        result = await self.db.execute(
            select(LoadAssignment).where(LoadAssignment.load_id == load_id)
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise InvalidStateError("Load has no assignment to update")

        if check_transition(assignment.status, target, allow_skip=True):
            await self._apply(assignment, target)
        return assignment

    async def _apply(
        self,
        assignment: LoadAssignment,
        target: AssignmentStatus,
        notes: Optional[str] = None
    ):
        load = await self.db.get(Load, assignment.load_id)
        vehicle = await self.db.get(Vehicle, assignment.vehicle_id)
        now = utcnow()
        previous = assignment.status

        assignment.status = target
        if notes:
            assignment.notes = notes
        stamp = TIMESTAMP_FOR.get(target)
        if stamp and getattr(assignment, stamp) is None:
            setattr(assignment, stamp, now)

        if load is not None:
            load.status = LOAD_STATUS_FOR[target]
            if target == AssignmentStatus.ENROUTE and load.journey_started_at is None:
                load.journey_started_at = now

        if vehicle is not None:
            vehicle.status = VEHICLE_STATUS_FOR[target]
            if target == AssignmentStatus.COMPLETED:
                vehicle.loads_completed = (vehicle.loads_completed or 0) + 1

        await self.db.commit()
        logger.info(
            "Assignment %s moved %s -> %s", assignment.id, previous.value, target.value
        )

        if self.notifier is not None:
            payload = {
                "assignment_id": assignment.id,
                "load_id": assignment.load_id,
                "vehicle_id": assignment.vehicle_id,
                "status": target.value,
                "previous_status": previous.value,
            }
            if target == AssignmentStatus.ENROUTE:
                await self.notifier.emit(user_room(assignment.vehicle_owner_id), "journey-started", payload)
                await self.notifier.emit(load_room(assignment.load_id), "journey-started", payload)
            await self.notifier.emit(load_room(assignment.load_id), "status-updated", payload)

    # Read side
    async def my_assignments(self, owner: User) -> List[LoadAssignment]:
        result = await self.db.execute(
            select(LoadAssignment)
            .where(LoadAssignment.vehicle_owner_id == owner.id)
            .order_by(LoadAssignment.created_at.desc())
        )
        return result.scalars().all()

    async def my_load_assignments(self, provider: User) -> List[LoadAssignment]:
        result = await self.db.execute(
            select(LoadAssignment)
            .where(LoadAssignment.load_provider_id == provider.id)
            .order_by(LoadAssignment.created_at.desc())
        )
        return result.scalars().all()

    async def get_by_load(self, load_id: UUID, user: User) -> LoadAssignment:
        result = await self.db.execute(
            select(LoadAssignment).where(LoadAssignment.load_id == load_id)
        )
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("No assignment found for this load")
        if not user.is_admin:
            self._authorize(assignment, user)
        return assignment

    async def details(self, assignment_id: UUID, user: User) -> Dict:
        assignment = await self.get_assignment(assignment_id)
        if not user.is_admin:
            self._authorize(assignment, user)
        return {
            "assignment": assignment,
            "load": await self.db.get(Load, assignment.load_id),
            "vehicle": await self.db.get(Vehicle, assignment.vehicle_id),
        }

    async def update_notes(self, assignment_id: UUID, user: User, notes: str) -> LoadAssignment:
        assignment = await self.get_assignment(assignment_id)
        self._authorize(assignment, user)
        assignment.notes = notes
        await self.db.commit()
        return assignment

    async def stats(self, user: User) -> Dict:
        """Assignment count and agreed value per status, with a completion rate"""
        query = select(
            LoadAssignment.status,
            func.count(LoadAssignment.id),
            func.coalesce(func.sum(LoadAssignment.agreed_price), 0)
        ).group_by(LoadAssignment.status)
        if not user.is_admin:
            query = query.where(or_(
                LoadAssignment.load_provider_id == user.id,
                LoadAssignment.vehicle_owner_id == user.id
            ))

        result = await self.db.execute(query)
        by_status = {
            status.value: {"count": 0, "total_value": 0.0} for status in ASSIGNMENT_FLOW
        }
        total = 0
        for status, count, value in result.all():
            by_status[status.value] = {"count": count, "total_value": float(value)}
            total += count

        completed = by_status[AssignmentStatus.COMPLETED.value]["count"]
        return {
            "total_assignments": total,
            "by_status": by_status,
            "completion_rate": round(completed * 100.0 / total, 2) if total else 0.0,
        }
