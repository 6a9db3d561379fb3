# fxdojo/models/__init__.py
# Importing this package registers every table on Base.metadata.

from fxdojo.modules.auth.models import PendingUser, Role, User, UserRole, UserSession
from fxdojo.modules.invites.models import InviteLink, InviteRegistration
from fxdojo.modules.courses.models import Course, Enrollment, Lesson
from fxdojo.modules.progress.models import Progress
from fxdojo.modules.access.models import UserLessonAccess
from fxdojo.modules.rooms.models import PrivateRoom, PrivateRoomMember
from fxdojo.modules.chat.models import ChatMessage, MessageRead
from fxdojo.modules.subscriptions.models import Payment, Subscription, SubscriptionPlan

__all__ = [
    "User",
    "Role",
    "UserRole",
    "UserSession",
    "PendingUser",
    "InviteLink",
    "InviteRegistration",
    "Course",
    "Lesson",
    "Enrollment",
    "Progress",
    "UserLessonAccess",
    "PrivateRoom",
    "PrivateRoomMember",
    "ChatMessage",
    "MessageRead",
    "SubscriptionPlan",
    "Subscription",
    "Payment",
]
