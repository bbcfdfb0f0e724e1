from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union, Tuple
from enum import Enum
from pydantic import BaseModel
from sqlalchemy.orm import Session, Query
from sqlalchemy import asc, desc

# 导入SQLAlchemy模型基类
from engagement.db.base_class import Base

# 定义泛型类型变量
ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# 筛选条件中支持的比较运算符，例如 {"session_start": {"lt": cutoff}}
_OPERATORS = {
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "ne": lambda column, value: column != value,
    "in": lambda column, value: column.in_(value),
}


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        """
        具有默认创建、读取、更新操作的CRUD对象。

        **参数**

        * `model`: SQLAlchemy模型类
        """
        self.model = model

    def get(self, db: Session, obj_id: Any) -> Optional[ModelType]:
        """
        通过ID获取单个记录。

        Args:
            db: 数据库会话
            obj_id: 记录ID

        Returns:
            Optional[ModelType]: 找到的记录，如果不存在则返回None
        """
        # 检查obj_id是否为None，避免在filter中产生无效的布尔值
        if obj_id is None:
            return None
        return db.query(self.model).filter(self.model.id == obj_id).first()  # type: ignore

    def _apply_filters(self, query: Query, filter_conditions: Optional[Dict[str, Any]]) -> Query:
        if not filter_conditions:
            return query
        for field, value in filter_conditions.items():
            if not hasattr(self.model, field):
                continue
            column = getattr(self.model, field)
            if isinstance(value, dict):
                for op, operand in value.items():
                    query = query.filter(_OPERATORS[op](column, operand))
            else:
                # 简单相等筛选，None 会生成 IS NULL
                query = query.filter(column == value)
        return query

    def _apply_sort(
        self, query: Query, sort_by: Optional[Union[str, List[Tuple[str, SortDirection]]]]
    ) -> Query:
        if not sort_by:
            return query
        if isinstance(sort_by, str):
            # 单字段排序，默认升序
            return query.order_by(asc(getattr(self.model, sort_by)))
        # 多字段排序
        for field, direction in sort_by:
            if hasattr(self.model, field):
                column = getattr(self.model, field)
                if direction == SortDirection.DESC:
                    query = query.order_by(desc(column))
                else:
                    query = query.order_by(asc(column))
        return query

    def get_multi(
        self,
        db: Session,
        *,
        skip: int = 0,
        limit: Optional[int] = 100,
        filter_conditions: Optional[Dict[str, Any]] = None,
        sort_by: Optional[Union[str, List[Tuple[str, SortDirection]]]] = None,
        for_update: bool = False
    ) -> List[ModelType]:
        """
        获取多个记录（支持分页、筛选和排序）。

        Args:
            db: 数据库会话
            skip: 跳过的记录数，默认为0
            limit: 返回的记录数限制，默认为100，None 表示不限制
            filter_conditions: 筛选条件字典，例如 {"user_id": 1, "session_end": None}
            sort_by: 排序字段，可以是单个字段名字符串或字段-方向元组列表
            for_update: 是否加行锁（SELECT ... FOR UPDATE，SQLite 会忽略）

        Returns:
            List[ModelType]: 记录列表
        """
        query = db.query(self.model)
        query = self._apply_filters(query, filter_conditions)
        query = self._apply_sort(query, sort_by)
        if for_update:
            query = query.with_for_update()

        # 应用分页
        query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_count(
        self,
        db: Session,
        *,
        filter_conditions: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        获取符合条件的记录总数。

        Args:
            db: 数据库会话
            filter_conditions: 筛选条件字典

        Returns:
            int: 符合条件的记录总数
        """
        query = self._apply_filters(db.query(self.model), filter_conditions)
        return query.count()

    def create(self, db: Session, *, obj_in: CreateSchemaType) -> ModelType:
        """
        创建一个新的记录。

        Args:
            db: 数据库会话
            obj_in: 创建记录的数据对象

        Returns:
            ModelType: 创建的记录
        """
        obj_in_data = obj_in.model_dump()
        db_obj = self.model(**obj_in_data)  # SQLAlchemy model
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    @staticmethod
    def update(
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        更新一个已存在的记录。

        Args:
            db: 数据库会话
            db_obj: 要更新的数据库对象
            obj_in: 更新数据对象，可以是UpdateSchemaType或字典

        Returns:
            ModelType: 更新后的记录
        """
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            # exclude_unset=True 表示只获取被显式设置了值的字段
            update_data = obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj
