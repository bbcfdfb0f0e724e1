from datetime import datetime, UTC


def utcnow() -> datetime:
    """返回不带时区信息的UTC时间，与数据库中存储的DateTime列保持一致"""
    return datetime.now(UTC).replace(tzinfo=None)
