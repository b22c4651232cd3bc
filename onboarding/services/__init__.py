from onboarding.services.collected_data_service import CollectedDataService
from onboarding.services.conversation_service import ConversationService
from onboarding.services.conversation_state_machine import (
    ConversationStateMachine,
    TransitionResult,
)
from onboarding.services.error_tracker_service import ErrorTrackerService
from onboarding.services.feedback_service import FeedbackService
from onboarding.services.message_service import MessageService
from onboarding.services.metrics_service import MetricsService
from onboarding.services.provisioning_service import ProvisioningService
from onboarding.services.query_service import QueryService

__all__ = [
    "CollectedDataService",
    "ConversationService",
    "ConversationStateMachine",
    "ErrorTrackerService",
    "FeedbackService",
    "MessageService",
    "MetricsService",
    "ProvisioningService",
    "QueryService",
    "TransitionResult",
]
