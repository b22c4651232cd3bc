from onboarding.models.conversation import Conversation
from onboarding.models.conversation_message import ConversationMessage
from onboarding.models.error_event import ErrorEvent
from onboarding.models.feedback import Feedback
from onboarding.models.sports_center import SportsCenter

__all__ = [
    "Conversation",
    "ConversationMessage",
    "ErrorEvent",
    "Feedback",
    "SportsCenter",
]
