# backend/engagement/services/__init__.py
from .learning_session_service import LearningSessionService
from .content_progress_service import ContentProgressService
