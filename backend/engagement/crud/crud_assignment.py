from typing import Optional
from pydantic import BaseModel
from sqlalchemy.orm import Session
from engagement.crud.base import CRUDBase
from engagement.models.course_assignment import CourseAssignment


class CourseAssignmentCreate(BaseModel):
    course_id: int
    user_id: int
    status: str = "assigned"
    progress_percentage: float = 0.0


class CRUDCourseAssignment(CRUDBase[CourseAssignment, CourseAssignmentCreate, CourseAssignmentCreate]):
    def get_by_course_user(self, db: Session, *, course_id: int, user_id: int) -> Optional[CourseAssignment]:
        results = self.get_multi(db, limit=1, filter_conditions={"course_id": course_id, "user_id": user_id})
        return results[0] if results else None

course_assignment = CRUDCourseAssignment(CourseAssignment)
