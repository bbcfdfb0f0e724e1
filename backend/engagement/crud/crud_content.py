from sqlalchemy.orm import Session
from engagement.crud.base import CRUDBase
from engagement.models.module_content import ModuleContent
from engagement.schemas.content import ModuleContentCreate


class CRUDModuleContent(CRUDBase[ModuleContent, ModuleContentCreate, ModuleContentCreate]):
    def count_by_course(self, db: Session, *, course_id: int) -> int:
        """统计课程下所有模块的内容总数"""
        return self.get_count(db, filter_conditions={"course_id": course_id})

module_content = CRUDModuleContent(ModuleContent)
