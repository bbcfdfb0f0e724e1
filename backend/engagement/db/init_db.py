#!/usr/bin/env python3
"""
数据库初始化脚本

这个脚本用于创建所有数据库表。
"""

import os

# 确保在导入任何其他模块之前加载环境变量
from dotenv import load_dotenv
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
env_path = os.path.join(project_root, '.env')
if os.path.exists(env_path):
    load_dotenv(env_path)
else:
    # 如果没有.env文件，尝试使用.env.example
    env_example_path = os.path.join(project_root, '.env.example')
    if os.path.exists(env_example_path):
        load_dotenv(env_example_path)

from sqlalchemy import inspect
from engagement.db.base_class import Base
from engagement.db.database import engine
from engagement.core.config import settings

# 导入所有模型，确保它们被正确注册
from engagement import models  # noqa: F401

def init_db(bind=None):
    """初始化数据库，创建所有表"""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    return inspect(bind).get_table_names()

if __name__ == "__main__":
    print(f"Using database URL: {settings.DATABASE_URL}")
    tables = init_db()
    print(f"数据库表创建成功: {tables}")
