"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、截止时间策略、管理密钥以及生命周期校验常量。
"""

import os
from pathlib import Path

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("LOCKPOINT_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "LOCKPOINT_DB_PATH",
        str(_get_base_dir() / "sqlite" / "lockpoint.db"),
    )


def is_outcome_deadline_enforced() -> bool:
    """截止时间之前是否拒绝提交结果

    默认 false：截止时间仅作提示，锁定后任何时候都可以记录结果。
    """
    value = os.environ.get("LOCKPOINT_ENFORCE_OUTCOME_DEADLINE", "false")
    return value.strip().lower() in _TRUE_VALUES


def get_due_soon_days() -> int:
    """即将到期提示窗口（天）"""
    try:
        return int(os.environ.get("LOCKPOINT_DUE_SOON_DAYS", "7"))
    except ValueError:
        return 7


def get_admin_key() -> str | None:
    """管理统计接口的访问密钥，未设置时接口关闭"""
    return os.environ.get("LOCKPOINT_ADMIN_KEY") or None


# 公开列表默认条数上限
PUBLIC_LIST_LIMIT: int = int(os.environ.get("LOCKPOINT_PUBLIC_LIST_LIMIT", "50"))

# 锁定前校验：标题与承诺语句的最小长度（去除首尾空白后）
TITLE_MIN_LENGTH: int = 3
COMMITMENT_MIN_LENGTH: int = 8

# 字段长度上限
TITLE_MAX_LENGTH: int = 200
COMMITMENT_MAX_LENGTH: int = 4000
TEXT_MAX_LENGTH: int = 4000

# 确认口令（大小写不敏感）
LOCK_CONFIRMATION_WORD: str = "LOCK"
AMEND_CONFIRMATION_WORD: str = "AMEND"

# 追加记录最小长度
NOTE_MIN_LENGTH: int = 3
AMENDMENT_MIN_LENGTH: int = 5

DEFAULT_STAKE_CURRENCY: str = "USD"
