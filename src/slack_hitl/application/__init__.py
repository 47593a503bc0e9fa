"""Application layer: correlation engine and service wiring."""

from slack_hitl.application.correlation_store import CorrelationStore
from slack_hitl.application.dispatcher import Dispatcher
from slack_hitl.application.question_engine import QuestionEngine
from slack_hitl.application.service import HumanInSlack

__all__ = [
    "CorrelationStore",
    "Dispatcher",
    "HumanInSlack",
    "QuestionEngine",
]
