"""SQLite 数据库初始化

PRAGMA 配置 + 三张表 DDL + 索引 + 不可变性触发器。
使用 aiosqlite 异步操作。

数据库层的约束与 Lifecycle Engine 的条件更新互为兜底：
- 锁定后基础字段不可修改（trg_trajectories_frozen）
- 终态不可再流转（trg_trajectories_terminal）
- amendments / events 只允许插入
- 同一 trajectory 最多一条 OUTCOME（idx_amendments_single_outcome）
"""

import aiosqlite

# trajectories 表 DDL（events 的物化视图）
_TRAJECTORIES_DDL = """
CREATE TABLE IF NOT EXISTS trajectories (
    trajectory_id        TEXT PRIMARY KEY,
    owner_id             TEXT NOT NULL,
    created_at           TEXT NOT NULL,
    updated_at           TEXT NOT NULL,
    status               TEXT NOT NULL DEFAULT 'draft'
                         CHECK (status IN ('draft', 'locked', 'completed', 'broken', 'dropped')),
    title                TEXT NOT NULL DEFAULT '',
    commitment           TEXT NOT NULL DEFAULT '',
    completion_criteria  TEXT,
    lock_type            TEXT NOT NULL DEFAULT 'personal',
    lock_reason          TEXT,
    deadline_at          TEXT,
    locked_at            TEXT,
    dropped_at           TEXT,
    finalized_at         TEXT,
    is_public            INTEGER NOT NULL DEFAULT 0,
    stake_amount         TEXT,
    stake_currency       TEXT
);
"""

_TRAJECTORIES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_trajectories_owner ON trajectories(owner_id, created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_trajectories_status ON trajectories(status);",
    "CREATE INDEX IF NOT EXISTS idx_trajectories_locked_at ON trajectories(locked_at DESC);",
]

# amendments 表 DDL（append-only）
_AMENDMENTS_DDL = """
CREATE TABLE IF NOT EXISTS amendments (
    amendment_id   TEXT PRIMARY KEY,
    trajectory_id  TEXT NOT NULL,
    kind           TEXT NOT NULL
                   CHECK (kind IN ('MILESTONE', 'OUTCOME', 'NOTE', 'DROP')),
    content        TEXT NOT NULL DEFAULT '',
    author_id      TEXT NOT NULL,
    created_at     TEXT NOT NULL,

    FOREIGN KEY (trajectory_id) REFERENCES trajectories(trajectory_id)
);
"""

_AMENDMENTS_INDEXES = [
    (
        "CREATE INDEX IF NOT EXISTS idx_amendments_trajectory "
        "ON amendments(trajectory_id, created_at DESC);"
    ),
    # 每条记录最多一个结果（部分唯一索引）
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_amendments_single_outcome "
        "ON amendments(trajectory_id) WHERE kind = 'OUTCOME';"
    ),
]

# events 表 DDL（append-only 审计日志）
_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS events (
    event_id        TEXT PRIMARY KEY,
    trajectory_id   TEXT NOT NULL,
    seq             INTEGER NOT NULL,
    ts              TEXT NOT NULL,
    type            TEXT NOT NULL,
    schema_version  INTEGER NOT NULL DEFAULT 1,
    actor           TEXT NOT NULL,
    actor_id        TEXT NOT NULL DEFAULT '',
    payload         TEXT NOT NULL DEFAULT '{}',
    trace_id        TEXT NOT NULL DEFAULT '',

    FOREIGN KEY (trajectory_id) REFERENCES trajectories(trajectory_id)
);
"""

_EVENTS_INDEXES = [
    # 记录内事件序号唯一约束（确保 seq 严格单调递增）
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_events_trajectory_seq ON events(trajectory_id, seq);",
    "CREATE INDEX IF NOT EXISTS idx_events_trajectory_ts ON events(trajectory_id, ts);",
]

_TRIGGERS = [
    # 离开 draft 之后基础字段冻结
    """
    CREATE TRIGGER IF NOT EXISTS trg_trajectories_frozen
    BEFORE UPDATE ON trajectories
    WHEN OLD.status <> 'draft' AND (
        NEW.owner_id IS NOT OLD.owner_id
        OR NEW.title IS NOT OLD.title
        OR NEW.commitment IS NOT OLD.commitment
        OR NEW.completion_criteria IS NOT OLD.completion_criteria
        OR NEW.lock_type IS NOT OLD.lock_type
        OR NEW.lock_reason IS NOT OLD.lock_reason
        OR NEW.deadline_at IS NOT OLD.deadline_at
        OR NEW.locked_at IS NOT OLD.locked_at
        OR NEW.dropped_at IS NOT OLD.dropped_at
        OR NEW.is_public IS NOT OLD.is_public
        OR NEW.stake_amount IS NOT OLD.stake_amount
        OR NEW.stake_currency IS NOT OLD.stake_currency
    )
    BEGIN
        SELECT RAISE(ABORT, 'trajectory is frozen');
    END;
    """,
    # 终态不可再流转
    """
    CREATE TRIGGER IF NOT EXISTS trg_trajectories_terminal
    BEFORE UPDATE OF status ON trajectories
    WHEN OLD.status IN ('completed', 'broken', 'dropped')
         AND NEW.status IS NOT OLD.status
    BEGIN
        SELECT RAISE(ABORT, 'trajectory is terminal');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_amendments_no_update
    BEFORE UPDATE ON amendments
    BEGIN
        SELECT RAISE(ABORT, 'amendments are append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_amendments_no_delete
    BEFORE DELETE ON amendments
    BEGIN
        SELECT RAISE(ABORT, 'amendments are append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_events_no_update
    BEFORE UPDATE ON events
    BEGIN
        SELECT RAISE(ABORT, 'events are append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_events_no_delete
    BEFORE DELETE ON events
    BEGIN
        SELECT RAISE(ABORT, 'events are append-only');
    END;
    """,
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引 + 创建触发器

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_TRAJECTORIES_DDL)
    await conn.execute(_AMENDMENTS_DDL)
    await conn.execute(_EVENTS_DDL)

    # 创建索引
    for idx_sql in _TRAJECTORIES_INDEXES + _AMENDMENTS_INDEXES + _EVENTS_INDEXES:
        await conn.execute(idx_sql)

    for trigger_sql in _TRIGGERS:
        await conn.execute(trigger_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
