"""Repository layer.

These repositories encapsulate common query patterns for the app's entities.
Keep them focused on persistence/query shaping; business logic lives in services.
"""

from congregate.db.repos.attendance import CommunityAttendanceRepository
from congregate.db.repos.communities import CommunityRepository
from congregate.db.repos.meetings import CommunityMeetingRepository
from congregate.db.repos.members import CommunityMemberRepository
from congregate.db.repos.participants import ParticipantRepository

__all__ = [
    "CommunityAttendanceRepository",
    "CommunityMeetingRepository",
    "CommunityMemberRepository",
    "CommunityRepository",
    "ParticipantRepository",
]
