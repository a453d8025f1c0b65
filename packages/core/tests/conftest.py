"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from lockpoint.core.models import Trajectory
from lockpoint.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层已初始化的 StoreGroup"""
    sg = await create_store_group(str(tmp_path / "core_test.db"))
    yield sg
    await sg.close()


@pytest.fixture
def make_draft():
    """构造草稿记录的工厂"""

    def _make(
        trajectory_id: str = "01JTRAJ0000000000000000001",
        owner_id: str = "user-alice",
        title: str = "Ship v1",
        commitment: str = "I will ship v1 by Friday",
    ) -> Trajectory:
        now = datetime(2026, 1, 1, tzinfo=UTC)
        return Trajectory(
            trajectory_id=trajectory_id,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            title=title,
            commitment=commitment,
        )

    return _make
