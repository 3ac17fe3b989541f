"""Audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from krushilink.models.admin import AuditLog


class AuditService:
    """Service for append-only audit logging."""

    async def log_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: UUID | None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        """Record an action. The caller's transaction commits it.

        Args:
            db: Database session
            user_id: User performing the action (None for system jobs)
            action: Action name (e.g. "booking_accept", "driver_verify")
            resource_type: Resource type (e.g. "booking", "user")
            resource_id: Resource ID
            old_values: Previous state
            new_values: New state
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(audit)
        return audit

    async def log_booking_change(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        booking_id: UUID,
        old_values: dict[str, Any],
        new_values: dict[str, Any],
        ip_address: str | None = None,
    ) -> AuditLog:
        """Log a booking status or payment status change."""
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="booking",
            resource_id=booking_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
        )

    async def log_moderation(
        self,
        db: AsyncSession,
        admin_id: UUID,
        action: str,
        user_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        """Log an admin action on a user account."""
        return await self.log_action(
            db=db,
            user_id=admin_id,
            action=action,
            resource_type="user",
            resource_id=user_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
        )


audit_service = AuditService()
