from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db import get_session
from congregate.services import (
    AttendanceRecord,
    get_attendance,
    get_public_attendance,
    record_attendance,
    record_single_attendance,
)
from congregate.web.schemas import (
    AttendanceRead,
    AttendanceRecordIn,
    PublicAttendanceAck,
    PublicAttendanceRead,
    SingleAttendanceIn,
)

router = APIRouter(tags=["attendance"])


@router.put("/meetings/{meeting_id}/attendance")
async def record_attendance_route(
    meeting_id: uuid.UUID,
    payload: list[AttendanceRecordIn],
    session: AsyncSession = Depends(get_session),
) -> list[AttendanceRead]:
    rows = await record_attendance(
        session,
        meeting_id,
        [
            AttendanceRecord(member_id=item.member_id, attended=item.attended, notes=item.notes)
            for item in payload
        ],
    )
    return [AttendanceRead.model_validate(row) for row in rows]


@router.get("/meetings/{meeting_id}/attendance")
async def get_attendance_route(
    meeting_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> list[AttendanceRead]:
    rows = await get_attendance(session, meeting_id)
    return [AttendanceRead.model_validate(row) for row in rows]


@router.post("/communities/{community_id}/meetings/{meeting_id}/attendance", status_code=201)
async def record_single_attendance_route(
    community_id: uuid.UUID,
    meeting_id: uuid.UUID,
    payload: SingleAttendanceIn,
    session: AsyncSession = Depends(get_session),
) -> AttendanceRead:
    row = await record_single_attendance(
        session, community_id, meeting_id, payload.member_id, payload.attended
    )
    return AttendanceRead.model_validate(row)


# Public check-in links carry no session; callers only see names and attendance.
@router.get("/public/attendance/{community_id}/{meeting_id}")
async def get_public_attendance_route(
    community_id: uuid.UUID,
    meeting_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> PublicAttendanceRead:
    data = await get_public_attendance(session, community_id, meeting_id)
    return PublicAttendanceRead.model_validate(data)


@router.post("/public/attendance/{community_id}/{meeting_id}")
async def record_public_attendance_route(
    community_id: uuid.UUID,
    meeting_id: uuid.UUID,
    payload: SingleAttendanceIn,
    session: AsyncSession = Depends(get_session),
) -> PublicAttendanceAck:
    await record_single_attendance(
        session, community_id, meeting_id, payload.member_id, payload.attended
    )
    return PublicAttendanceAck(success=True, member_id=payload.member_id, attended=payload.attended)
