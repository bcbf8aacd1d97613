from congregate.services.attendance_service import (
    ATTENDANCE_DEFAULT,
    AttendanceRecord,
    PublicAttendance,
    PublicAttendanceEntry,
    get_attendance,
    get_public_attendance,
    record_attendance,
    record_single_attendance,
)
from congregate.services.community_service import (
    CommunitySummary,
    add_member,
    create_community,
    create_community_member,
    delete_community,
    get_community,
    get_member,
    list_communities,
    remove_member,
    update_community,
    update_member_notes,
    update_member_state,
)
from congregate.services.meeting_service import (
    MAX_INSTANCES_PER_TEMPLATE,
    MeetingScope,
    create_meeting,
    create_next_instance,
    delete_meeting,
    get_meeting,
    list_instances,
    list_meetings,
    update_meeting,
)
from congregate.services.participation_service import (
    DashboardStats,
    MemberParticipation,
    ParticipationFrequency,
    TimelineEntry,
    frequency_bucket,
    get_dashboard_stats,
    get_member_timeline,
    list_members_with_participation,
    member_attendance_rate,
)

__all__ = [
    "ATTENDANCE_DEFAULT",
    "MAX_INSTANCES_PER_TEMPLATE",
    "AttendanceRecord",
    "CommunitySummary",
    "DashboardStats",
    "MeetingScope",
    "MemberParticipation",
    "ParticipationFrequency",
    "PublicAttendance",
    "PublicAttendanceEntry",
    "TimelineEntry",
    "add_member",
    "create_community",
    "create_community_member",
    "create_meeting",
    "create_next_instance",
    "delete_community",
    "delete_meeting",
    "frequency_bucket",
    "get_attendance",
    "get_community",
    "get_dashboard_stats",
    "get_meeting",
    "get_member",
    "get_member_timeline",
    "get_public_attendance",
    "list_communities",
    "list_instances",
    "list_meetings",
    "list_members_with_participation",
    "member_attendance_rate",
    "record_attendance",
    "record_single_attendance",
    "remove_member",
    "update_community",
    "update_meeting",
    "update_member_notes",
    "update_member_state",
]
