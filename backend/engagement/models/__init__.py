# This file makes the 'models' directory a Python package.

from .module_content import ModuleContent
from .course_assignment import CourseAssignment
from .content_progress import ContentProgress
from .learning_session import LearningSession
