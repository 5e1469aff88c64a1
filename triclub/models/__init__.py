from .user import UserRole, User, MEMBER_ROLES, STAFF_ROLES
from .forum_post import PostType, ForumPost
from .workout import WorkoutSignup, WorkoutWaitlistEntry, WorkoutCancellation, WorkoutAttendance
