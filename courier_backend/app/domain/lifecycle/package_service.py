"""
Package Service (Lifecycle Controller).

Mediates every mutation of the package ledger: role-gated field writes,
history derivation and persistence. A record and the history entry its
change produces are committed together.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload

from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import (
    BadRequestError,
    ConflictError,
    InsufficientPermissionsError,
    ResourceNotFoundError,
)
from courier_backend.app.core.guards import OwnershipGuard
from courier_backend.app.db.session import id_in_range
from courier_backend.app.domain.lifecycle.field_policy import (
    ensure_fields_writable,
    resolve_courier_assignment,
)
from courier_backend.app.domain.lifecycle.history import (
    HistoryDraft,
    PackageSnapshot,
    derive_history_entries,
    initial_entry,
)
from courier_backend.app.domain.lifecycle.tracking import generate_tracking_id
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.package import Package, PackageHistory
from courier_backend.app.models.package_enums import PackageStatus
from courier_backend.app.models.user import User
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.schemas.package import PackageCreate, PackageUpdate

logger = logging.getLogger(__name__)
ownership_guard = OwnershipGuard()


def _snapshot(package: Package) -> PackageSnapshot:
    return PackageSnapshot(status=package.status, location=package.current_location)


def _append_history(package: Package, draft: HistoryDraft) -> None:
    package.history.append(PackageHistory(
        position=len(package.history),
        status=draft.status,
        timestamp=draft.timestamp,
        location=draft.location,
        description=draft.description,
    ))


class PackageService:
    
    @staticmethod
    async def fetch(db: AsyncSession, *criteria) -> Optional[Package]:
        """Load one package with its courier and full history, bypassing stale state."""
        result = await db.execute(
            select(Package)
            .where(*criteria)
            .options(selectinload(Package.history), selectinload(Package.assigned_courier))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
    
    @staticmethod
    async def get_courier(db: AsyncSession, courier_id: int) -> User:
        """
        Raises:
            BadRequestError: the ID does not belong to a courier
        """
        courier = await db.get(User, courier_id) if id_in_range(courier_id) else None
        if courier is None or courier.role != UserRole.COURIER:
            raise BadRequestError(f"User {courier_id} is not a courier")
        return courier
    
    @staticmethod
    async def create(db: AsyncSession, data: PackageCreate, actor: Principal) -> Package:
        """
        Create a package and its initial history entry.
        
        Flow:
        1. Validate optional courier assignment (admin only)
        2. Use the supplied tracking ID or generate one; reject collisions
        3. Derive pickup/delivery addresses from sender/recipient
        4. Default status, location and ETA
        5. Synthesize history[0] and commit
        
        Raises:
            InsufficientPermissionsError: non-admin tried to assign a courier
            BadRequestError: assigned user is not a courier
            ConflictError: tracking ID already in use
        """
        now = datetime.now(timezone.utc)
        
        if data.assigned_courier is not None:
            if actor.role != UserRole.ADMIN:
                raise InsufficientPermissionsError("Only admins can assign a courier at creation")
            await PackageService.get_courier(db, data.assigned_courier)
        
        tracking_id = data.tracking_id or generate_tracking_id(now)
        existing = await db.execute(select(Package.id).where(Package.tracking_id == tracking_id))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(
                f"Tracking ID '{tracking_id}' already exists",
                details={"tracking_id": tracking_id}
            )
        
        sender = data.sender_info.model_dump()
        recipient = data.recipient_info.model_dump()
        status = data.status or PackageStatus.PENDING
        location = data.current_location or sender["address"]
        
        package = Package(
            tracking_id=tracking_id,
            pickup_address=sender["address"],
            delivery_address=recipient["address"],
            status=status,
            current_location=location,
            eta=data.eta or now + timedelta(days=settings.default_eta_days),
            assigned_courier_id=data.assigned_courier,
            history=[],
        )
        package.set_sender(sender)
        package.set_recipient(recipient)
        _append_history(package, initial_entry(PackageSnapshot(status=status, location=location), now))
        
        db.add(package)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(
                f"Tracking ID '{tracking_id}' already exists",
                details={"tracking_id": tracking_id}
            )
        
        logger.info("Created package %s by %s", tracking_id, actor.username)
        return await PackageService.fetch(db, Package.id == package.id)
    
    @staticmethod
    async def list_for(
        db: AsyncSession,
        actor: Principal,
        assigned: Optional[bool] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Package], int]:
        """
        List the packages visible to the caller.
        
        - admin: everything; `assigned=False` only unassigned, `assigned=True` only assigned
        - courier: own packages; `assigned=False` the unassigned pool
        - customer: packages where the caller's email is sender or recipient
        """
        if actor.role == UserRole.ADMIN:
            if assigned is False:
                criteria = [Package.assigned_courier_id.is_(None)]
            elif assigned is True:
                criteria = [Package.assigned_courier_id.is_not(None)]
            else:
                criteria = []
        elif actor.role == UserRole.COURIER:
            if assigned is False:
                criteria = [Package.assigned_courier_id.is_(None)]
            else:
                criteria = [Package.assigned_courier_id == actor.id]
        else:
            criteria = [or_(Package.sender_email == actor.email, Package.recipient_email == actor.email)]
        
        total_result = await db.execute(select(func.count(Package.id)).where(*criteria))
        total = total_result.scalar()
        
        offset = (page - 1) * page_size
        result = await db.execute(
            select(Package)
            .where(*criteria)
            .options(selectinload(Package.history), selectinload(Package.assigned_courier))
            .order_by(Package.created_at.desc(), Package.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
    
    @staticmethod
    async def get_for(db: AsyncSession, key: str, actor: Principal) -> Package:
        """
        Read a package by internal ID (all digits) or tracking ID.
        
        Raises:
            ResourceNotFoundError: no match
            InsufficientPermissionsError: caller is not admin, sender, recipient or courier
        """
        package = None
        if not (key.isascii() and key.isdigit()):
            package = await PackageService.fetch(db, Package.tracking_id == key)
        elif id_in_range(int(key)):
            package = await PackageService.fetch(db, Package.id == int(key))
        
        if package is None:
            raise ResourceNotFoundError("Package", key)
        
        ownership_guard.enforce(actor, package)
        return package
    
    @staticmethod
    async def update(db: AsyncSession, package_id: int, data: PackageUpdate, actor: Principal) -> Package:
        """
        Apply a role-gated partial update and append the derived history entry.
        
        Every check runs before the record is touched, so a rejected update
        leaves it unchanged. Concurrent updates are last-write-wins.
        
        Raises:
            ResourceNotFoundError: no such package
            InsufficientPermissionsError: field outside the role's whitelist,
                courier reassignment, or courier not assigned to the package
            BadRequestError: admin assigned a user who is not a courier
        """
        package = await PackageService.fetch(db, Package.id == package_id) if id_in_range(package_id) else None
        if package is None:
            raise ResourceNotFoundError("Package", package_id)
        
        fields = data.model_fields_set
        ensure_fields_writable(actor.role, fields)
        
        assignee_id = package.assigned_courier_id
        if actor.role == UserRole.COURIER:
            if "assigned_courier" in fields:
                assignee_id = resolve_courier_assignment(actor.id, package.assigned_courier_id, data.assigned_courier)
            if assignee_id != actor.id:
                raise InsufficientPermissionsError("Couriers can only update packages assigned to them")
        elif "assigned_courier" in fields:
            if data.assigned_courier is not None:
                await PackageService.get_courier(db, data.assigned_courier)
            assignee_id = data.assigned_courier
        
        before = _snapshot(package)
        
        package.assigned_courier_id = assignee_id
        if "status" in fields:
            package.status = data.status
        if "current_location" in fields:
            package.current_location = data.current_location
        if "eta" in fields:
            package.eta = data.eta
        if "sender_info" in fields:
            package.set_sender(data.sender_info.model_dump())
        if "recipient_info" in fields:
            package.set_recipient(data.recipient_info.model_dump())
        if "pickup_address" in fields:
            package.pickup_address = data.pickup_address
        if "delivery_address" in fields:
            package.delivery_address = data.delivery_address
        
        for draft in derive_history_entries(before, _snapshot(package), actor.role):
            _append_history(package, draft)
        
        await db.commit()
        
        logger.info(
            "Package %s updated by %s (%s): %s",
            package.tracking_id, actor.username, actor.role.value, sorted(fields)
        )
        return await PackageService.fetch(db, Package.id == package_id)
    
    @staticmethod
    async def delete(db: AsyncSession, package_id: int) -> str:
        """
        Hard-delete a package and its history.
        
        Returns:
            The deleted package's tracking ID
            
        Raises:
            ResourceNotFoundError: no such package
        """
        package = await PackageService.fetch(db, Package.id == package_id) if id_in_range(package_id) else None
        if package is None:
            raise ResourceNotFoundError("Package", package_id)
        
        tracking_id = package.tracking_id
        await db.delete(package)
        await db.commit()
        
        logger.info("Deleted package %s", tracking_id)
        return tracking_id
    
    @staticmethod
    async def get_public(db: AsyncSession, tracking_id: str) -> Package:
        """
        Look a package up by tracking ID for the public tracking page.
        
        Redaction happens in the response schema, which only declares
        tracking fields.
        
        Raises:
            ResourceNotFoundError: no match
        """
        package = await PackageService.fetch(db, Package.tracking_id == tracking_id)
        if package is None:
            raise ResourceNotFoundError("Package", tracking_id)
        return package
