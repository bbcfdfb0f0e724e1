"""
参与度评分引擎

纯计算模块，没有副作用，也不做持久化，只在会话结束时被调用。

输入：
- duration_minutes: 会话墙钟时长（分钟）
- skip_count: 累计跳过次数
- completion_percentage: 结束时的完成百分比
- expected_duration: 由内容描述推导的预期时长（分钟），0 表示禁用时间比例评分

输出：
- attention_score: 注意力分 [0, 100]，越高越专注
- cheating_score: 作弊嫌疑分 [0, 100]，越高越可疑
- is_suspicious: 可疑活动标记，由独立的规则触发，不是由两个分数推导

所有阈值都是经过人工调参的策略常量，修改会直接改变线上评分结果。
"""

import math
from dataclasses import dataclass
from typing import Optional

from engagement.schemas.content import ContentDescriptor, ContentType

# 预期时长
MINUTES_PER_DOCUMENT_PAGE = 2

# 注意力分
ATTENTION_BASE = 50
ATTENTION_GOOD_PACE_MIN_RATIO = 0.8
ATTENTION_GOOD_PACE_MAX_RATIO = 1.5
ATTENTION_GOOD_PACE_BONUS = 25
ATTENTION_TOO_FAST_RATIO = 0.3
ATTENTION_TOO_FAST_PENALTY = 30
ATTENTION_HIGH_COMPLETION = 90
ATTENTION_HIGH_COMPLETION_BONUS = 20
ATTENTION_LOW_COMPLETION = 20
ATTENTION_LOW_COMPLETION_PENALTY = 25

# 作弊嫌疑分
CHEATING_EXTREMELY_SHORT_MINUTES = 2
CHEATING_EXTREMELY_SHORT_POINTS = 60
CHEATING_VERY_SHORT_MINUTES = 5
CHEATING_VERY_SHORT_POINTS = 30
CHEATING_EXCESSIVE_SKIPS = 15
CHEATING_EXCESSIVE_SKIPS_POINTS = 40
CHEATING_HIGH_SKIPS = 8
CHEATING_HIGH_SKIPS_POINTS = 20
CHEATING_IMPOSSIBLE_EFFICIENCY = 0.2
CHEATING_IMPOSSIBLE_COMPLETION = 70
CHEATING_IMPOSSIBLE_POINTS = 50

# 可疑活动
SUSPICIOUS_SHORT_MINUTES = 2
SUSPICIOUS_SHORT_COMPLETION = 50
SUSPICIOUS_SKIPS = 20
SUSPICIOUS_EFFICIENCY = 0.15
SUSPICIOUS_EFFICIENCY_COMPLETION = 80

SCORE_MIN = 0
SCORE_MAX = 100


@dataclass(frozen=True)
class EngagementScores:
    attention_score: int
    cheating_score: int
    is_suspicious: bool

    @property
    def engagement_level(self) -> str:
        return engagement_level(self.attention_score)

    @property
    def cheating_risk(self) -> str:
        return cheating_risk(self.cheating_score)


def _clamp(score: float) -> int:
    return int(max(SCORE_MIN, min(SCORE_MAX, score)))


def expected_duration_minutes(content: Optional[ContentDescriptor]) -> int:
    """
    计算内容的预期学习时长（分钟）

    Args:
        content: 内容描述

    Returns:
        文档为页数×2，视频为秒数/60向上取整，未知类型或缺少时长提示时为0
    """
    if content is None:
        return 0
    if content.content_type == ContentType.DOCUMENT and content.page_count:
        return content.page_count * MINUTES_PER_DOCUMENT_PAGE
    if content.content_type == ContentType.VIDEO and content.duration_seconds:
        return math.ceil(content.duration_seconds / 60)
    return 0


def attention_score(duration_minutes: float, completion_percentage: float, expected_duration: int) -> int:
    """计算注意力分，基础分50"""
    score = ATTENTION_BASE

    if expected_duration > 0:
        time_ratio = duration_minutes / expected_duration
        if ATTENTION_GOOD_PACE_MIN_RATIO <= time_ratio <= ATTENTION_GOOD_PACE_MAX_RATIO:
            score += ATTENTION_GOOD_PACE_BONUS
        elif time_ratio < ATTENTION_TOO_FAST_RATIO:
            score -= ATTENTION_TOO_FAST_PENALTY

    if completion_percentage >= ATTENTION_HIGH_COMPLETION:
        score += ATTENTION_HIGH_COMPLETION_BONUS
    elif completion_percentage < ATTENTION_LOW_COMPLETION:
        score -= ATTENTION_LOW_COMPLETION_PENALTY

    return _clamp(score)


def cheating_score(
    duration_minutes: float, skip_count: int, completion_percentage: float, expected_duration: int
) -> int:
    """计算作弊嫌疑分，从0开始累加"""
    score = 0

    # 时长分析
    if 0 < duration_minutes < CHEATING_EXTREMELY_SHORT_MINUTES:
        score += CHEATING_EXTREMELY_SHORT_POINTS
    elif duration_minutes < CHEATING_VERY_SHORT_MINUTES:
        score += CHEATING_VERY_SHORT_POINTS

    # 跳过分析
    if skip_count > CHEATING_EXCESSIVE_SKIPS:
        score += CHEATING_EXCESSIVE_SKIPS_POINTS
    elif skip_count > CHEATING_HIGH_SKIPS:
        score += CHEATING_HIGH_SKIPS_POINTS

    # 时长与完成度对比：不可能的快速完成
    if expected_duration > 0 and duration_minutes > 0:
        efficiency = duration_minutes / expected_duration
        if efficiency < CHEATING_IMPOSSIBLE_EFFICIENCY and completion_percentage > CHEATING_IMPOSSIBLE_COMPLETION:
            score += CHEATING_IMPOSSIBLE_POINTS

    return _clamp(score)


def is_suspicious(
    duration_minutes: float, skip_count: int, completion_percentage: float, expected_duration: int
) -> bool:
    """可疑活动检测，任意一条规则命中即为可疑"""
    if duration_minutes < SUSPICIOUS_SHORT_MINUTES and completion_percentage > SUSPICIOUS_SHORT_COMPLETION:
        return True

    if skip_count > SUSPICIOUS_SKIPS:
        return True

    if expected_duration > 0 and duration_minutes > 0:
        efficiency = duration_minutes / expected_duration
        if efficiency < SUSPICIOUS_EFFICIENCY and completion_percentage > SUSPICIOUS_EFFICIENCY_COMPLETION:
            return True

    return False


def score_session(
    duration_minutes: float,
    skip_count: int,
    completion_percentage: float,
    content: Optional[ContentDescriptor] = None,
    expected_duration: Optional[int] = None
) -> EngagementScores:
    """
    对一个结束的会话进行评分

    Args:
        duration_minutes: 会话墙钟时长（分钟）
        skip_count: 累计跳过次数
        completion_percentage: 结束时的完成百分比
        content: 内容描述，用于推导预期时长
        expected_duration: 直接指定预期时长（分钟），优先于 content

    Returns:
        EngagementScores: 三个相互独立的评分结果
    """
    if expected_duration is None:
        expected_duration = expected_duration_minutes(content)

    return EngagementScores(
        attention_score=attention_score(duration_minutes, completion_percentage, expected_duration),
        cheating_score=cheating_score(duration_minutes, skip_count, completion_percentage, expected_duration),
        is_suspicious=is_suspicious(duration_minutes, skip_count, completion_percentage, expected_duration),
    )


def engagement_level(score: Optional[int]) -> str:
    """注意力分对应的参与度等级"""
    score = score or 0
    if score >= 80:
        return "high"
    if score >= 60:
        return "medium"
    if score >= 40:
        return "low"
    return "very_low"


def cheating_risk(score: Optional[int]) -> str:
    """作弊嫌疑分对应的风险等级"""
    score = score or 0
    if score >= 80:
        return "very_high"
    if score >= 60:
        return "high"
    if score >= 40:
        return "medium"
    if score >= 20:
        return "low"
    return "none"
