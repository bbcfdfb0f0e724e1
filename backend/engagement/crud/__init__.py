from .crud_session import learning_session
from .crud_progress import content_progress
from .crud_content import module_content
from .crud_assignment import course_assignment
