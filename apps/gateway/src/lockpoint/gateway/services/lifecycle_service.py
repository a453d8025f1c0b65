"""LifecycleService -- 承诺记录生命周期业务逻辑

所有写操作遵循同一流程：
1. 写入前完成输入校验（InvalidInputError）
2. 获取 StoreGroup.lock，开启 BEGIN IMMEDIATE 事务
3. 单条条件更新（WHERE trajectory_id / owner_id / status）
4. 未命中时回读记录，仅用于分类失败原因
5. 同一事务内追加 amendment 与事件

每个操作都显式接收请求级 Identity。
"""

import re
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import aiosqlite
import structlog
from lockpoint.auth import Identity
from lockpoint.core.config import (
    AMEND_CONFIRMATION_WORD,
    AMENDMENT_MIN_LENGTH,
    COMMITMENT_MAX_LENGTH,
    COMMITMENT_MIN_LENGTH,
    DEFAULT_STAKE_CURRENCY,
    LOCK_CONFIRMATION_WORD,
    NOTE_MIN_LENGTH,
    PUBLIC_LIST_LIMIT,
    TEXT_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    get_due_soon_days,
    is_outcome_deadline_enforced,
)
from lockpoint.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    LockpointError,
    NotFoundError,
    UnexpectedError,
)
from lockpoint.core.models import (
    PUBLIC_STATES,
    ActorType,
    Amendment,
    AmendmentAppendedPayload,
    AmendmentKind,
    DeadlineState,
    DraftEditedPayload,
    Event,
    EventType,
    LockDetails,
    LockType,
    OutcomeResult,
    StateTransitionPayload,
    Trajectory,
    TrajectoryCreatedPayload,
    TrajectoryStatus,
    deadline_state,
    ensure_utc,
)
from lockpoint.core.store import StoreGroup, is_outcome_conflict
from lockpoint.core.store.trajectory_store import EDITABLE_FIELDS
from lockpoint.core.store.transaction import append_next_event, write_transaction
from pydantic import BaseModel
from ulid import ULID

log = structlog.get_logger()

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
_CENT = Decimal("0.01")
_MAX_STAKE = Decimal("1000000000")
_MAX_PUBLIC_LIMIT = 200

_AMENDMENT_MIN_LENGTHS: dict[AmendmentKind, int] = {
    AmendmentKind.NOTE: NOTE_MIN_LENGTH,
    AmendmentKind.MILESTONE: AMENDMENT_MIN_LENGTH,
    AmendmentKind.OUTCOME: AMENDMENT_MIN_LENGTH,
}


class TrajectoryDetail(BaseModel):
    """记录详情：记录本身 + 追加记录（倒序）+ 截止时间提示"""

    trajectory: Trajectory
    amendments: list[Amendment]
    deadline: DeadlineState


def _required_text(value: str | None, field: str, max_length: int) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidInputError(f"{field} must not be empty", code="EMPTY_FIELD")
    if len(text) > max_length:
        raise InvalidInputError(
            f"{field} must be at most {max_length} characters", code="FIELD_TOO_LONG"
        )
    return text


def _optional_text(value: str | None, field: str, max_length: int) -> str | None:
    text = (value or "").strip()
    if not text:
        return None
    if len(text) > max_length:
        raise InvalidInputError(
            f"{field} must be at most {max_length} characters", code="FIELD_TOO_LONG"
        )
    return text


def _parse_lock_type(value: Any) -> LockType:
    try:
        return LockType(str(value).strip().lower())
    except ValueError as e:
        raise InvalidInputError(
            f"lock_type must be one of {[t.value for t in LockType]}",
            code="INVALID_LOCK_TYPE",
        ) from e


def _parse_stake(amount: Any, currency: str | None) -> tuple[Decimal | None, str | None]:
    """押注金额量化到分；未给金额时忽略币种"""
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        return None, None
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise InvalidInputError("stake_amount must be a number", code="INVALID_STAKE") from e
    if not value.is_finite() or value <= 0 or value > _MAX_STAKE:
        raise InvalidInputError("stake_amount must be a positive amount", code="INVALID_STAKE")
    value = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    # 不足半分的金额量化后为 0
    if value <= 0:
        raise InvalidInputError(
            "stake_amount must be at least 0.01", code="INVALID_STAKE"
        )

    code = (currency or DEFAULT_STAKE_CURRENCY).strip().upper()
    if not _CURRENCY_RE.match(code):
        raise InvalidInputError(
            "stake_currency must be a 3-letter currency code", code="INVALID_CURRENCY"
        )
    return value, code


def _confirmed(confirmation: str | None, word: str) -> bool:
    return (confirmation or "").strip().upper() == word


class LifecycleService:
    """承诺记录生命周期服务（Lifecycle Engine）"""

    def __init__(
        self,
        store_group: StoreGroup,
        enforce_outcome_deadline: bool | None = None,
        due_soon_days: int | None = None,
    ) -> None:
        self._stores = store_group
        self._enforce_deadline = (
            is_outcome_deadline_enforced()
            if enforce_outcome_deadline is None
            else enforce_outcome_deadline
        )
        self._due_soon_days = due_soon_days if due_soon_days is not None else get_due_soon_days()

    # ------------------------------------------------------------------
    # 写操作
    # ------------------------------------------------------------------

    async def create_draft(
        self,
        identity: Identity,
        title: str,
        commitment: str,
        completion_criteria: str | None = None,
        lock_type: str | LockType | None = None,
        deadline_at: datetime | None = None,
    ) -> Trajectory:
        """创建草稿（私有，owner 为调用者）"""
        title = _required_text(title, "title", TITLE_MAX_LENGTH)
        commitment = _required_text(commitment, "commitment", COMMITMENT_MAX_LENGTH)
        completion_criteria = _optional_text(
            completion_criteria, "completion_criteria", TEXT_MAX_LENGTH
        )
        parsed_lock_type = _parse_lock_type(lock_type) if lock_type else LockType.PERSONAL

        now = datetime.now(UTC)
        trajectory_id = str(ULID())
        trajectory = Trajectory(
            trajectory_id=trajectory_id,
            owner_id=identity.user_id,
            created_at=now,
            updated_at=now,
            status=TrajectoryStatus.DRAFT,
            title=title,
            commitment=commitment,
            completion_criteria=completion_criteria,
            lock_type=parsed_lock_type,
            deadline_at=ensure_utc(deadline_at),
        )
        event = Event(
            event_id=str(ULID()),
            trajectory_id=trajectory_id,
            seq=1,
            ts=now,
            type=EventType.TRAJECTORY_CREATED,
            actor=ActorType.USER,
            actor_id=identity.user_id,
            payload=TrajectoryCreatedPayload(
                owner_id=identity.user_id,
                title=title,
                commitment=commitment,
                completion_criteria=completion_criteria,
                lock_type=parsed_lock_type,
                deadline_at=trajectory.deadline_at,
            ).model_dump(mode="json"),
            trace_id=f"trace-{trajectory_id}",
        )

        async with self._stores.lock:
            async with write_transaction(self._stores.conn):
                await self._stores.trajectory_store.create_trajectory(trajectory)
                await self._stores.event_store.append_event(event)

        await log.ainfo(
            "trajectory_created",
            trajectory_id=trajectory_id,
            owner_id=identity.user_id,
        )
        return trajectory

    async def edit_draft(
        self,
        identity: Identity,
        trajectory_id: str,
        changes: dict[str, Any],
    ) -> Trajectory:
        """修改草稿内容（仅 draft 且 owner）

        changes 中只出现需要修改的字段；completion_criteria / deadline_at 传 None 表示清空。
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInputError(
                f"Fields are not editable: {sorted(unknown)}", code="FIELD_NOT_EDITABLE"
            )
        if not changes:
            raise InvalidInputError("No fields to update", code="EMPTY_UPDATE")

        normalized: dict[str, Any] = {}
        if "title" in changes:
            normalized["title"] = _required_text(changes["title"], "title", TITLE_MAX_LENGTH)
        if "commitment" in changes:
            normalized["commitment"] = _required_text(
                changes["commitment"], "commitment", COMMITMENT_MAX_LENGTH
            )
        if "completion_criteria" in changes:
            normalized["completion_criteria"] = _optional_text(
                changes["completion_criteria"], "completion_criteria", TEXT_MAX_LENGTH
            )
        if "lock_type" in changes:
            normalized["lock_type"] = _parse_lock_type(changes["lock_type"])
        if "deadline_at" in changes:
            normalized["deadline_at"] = ensure_utc(changes["deadline_at"])

        now = datetime.now(UTC)
        payload = DraftEditedPayload(**normalized, fields=sorted(normalized))

        async with self._stores.lock:
            async with write_transaction(self._stores.conn):
                updated = await self._stores.trajectory_store.update_draft(
                    trajectory_id, identity.user_id, normalized, now
                )
                if not updated:
                    raise await self._classify_failure(
                        identity, trajectory_id, TrajectoryStatus.DRAFT
                    )
                await append_next_event(
                    self._stores.event_store,
                    trajectory_id,
                    lambda seq: self._build_event(
                        trajectory_id,
                        seq,
                        now,
                        EventType.DRAFT_EDITED,
                        identity.user_id,
                        payload.model_dump(mode="json"),
                    ),
                )
                trajectory = await self._stores.trajectory_store.get_trajectory(trajectory_id)

        await log.ainfo(
            "draft_edited",
            trajectory_id=trajectory_id,
            fields=payload.fields,
        )
        return trajectory

    async def drop_draft(
        self,
        identity: Identity,
        trajectory_id: str,
        reason: str | None = None,
    ) -> Trajectory:
        """丢弃草稿：draft -> dropped，永久私有，并写入系统 DROP 记录"""
        reason = _optional_text(reason, "reason", TEXT_MAX_LENGTH)
        now = datetime.now(UTC)

        async with self._stores.lock:
            async with write_transaction(self._stores.conn):
                dropped = await self._stores.trajectory_store.drop_trajectory(
                    trajectory_id, identity.user_id, now
                )
                if not dropped:
                    raise await self._classify_failure(
                        identity, trajectory_id, TrajectoryStatus.DRAFT
                    )
                await append_next_event(
                    self._stores.event_store,
                    trajectory_id,
                    lambda seq: self._build_event(
                        trajectory_id,
                        seq,
                        now,
                        EventType.STATE_TRANSITION,
                        identity.user_id,
                        StateTransitionPayload(
                            from_status=TrajectoryStatus.DRAFT,
                            to_status=TrajectoryStatus.DROPPED,
                            reason=reason or "dropped by owner",
                        ).model_dump(mode="json"),
                    ),
                )
                await self._append_amendment(
                    identity,
                    trajectory_id,
                    AmendmentKind.DROP,
                    reason or "",
                    now,
                    actor=ActorType.SYSTEM,
                )
                trajectory = await self._stores.trajectory_store.get_trajectory(trajectory_id)

        await log.ainfo("trajectory_dropped", trajectory_id=trajectory_id)
        return trajectory

    async def lock(
        self,
        identity: Identity,
        trajectory_id: str,
        confirmation: str | None,
        deadline_at: datetime | None = None,
        stake_amount: Any = None,
        stake_currency: str | None = None,
        lock_reason: str | None = None,
        title: str | None = None,
        commitment: str | None = None,
    ) -> Trajectory:
        """锁定：draft -> locked，不可逆，锁定后公开

        title / commitment 可在锁定瞬间最后修改一次，与状态变更在同一条 UPDATE 内生效。
        """
        if not _confirmed(confirmation, LOCK_CONFIRMATION_WORD):
            raise InvalidInputError(
                f"Type {LOCK_CONFIRMATION_WORD} to confirm",
                code="CONFIRMATION_REQUIRED",
            )
        if title is not None:
            title = _required_text(title, "title", TITLE_MAX_LENGTH)
            self._check_min_length(title, "title", TITLE_MIN_LENGTH, "TITLE_TOO_SHORT")
        if commitment is not None:
            commitment = _required_text(commitment, "commitment", COMMITMENT_MAX_LENGTH)
            self._check_min_length(
                commitment, "commitment", COMMITMENT_MIN_LENGTH, "COMMITMENT_TOO_SHORT"
            )
        amount, currency = _parse_stake(stake_amount, stake_currency)
        details = LockDetails(
            title=title,
            commitment=commitment,
            deadline_at=ensure_utc(deadline_at),
            lock_reason=_optional_text(lock_reason, "lock_reason", TEXT_MAX_LENGTH),
            stake_amount=amount,
            stake_currency=currency,
        )
        now = datetime.now(UTC)

        async with self._stores.lock:
            async with write_transaction(self._stores.conn):
                locked = await self._stores.trajectory_store.lock_trajectory(
                    trajectory_id,
                    identity.user_id,
                    details,
                    now,
                    TITLE_MIN_LENGTH,
                    COMMITMENT_MIN_LENGTH,
                )
                if not locked:
                    raise await self._classify_lock_failure(identity, trajectory_id, details)

                trajectory = await self._stores.trajectory_store.get_trajectory(trajectory_id)
                frozen = LockDetails(
                    title=trajectory.title,
                    commitment=trajectory.commitment,
                    deadline_at=trajectory.deadline_at,
                    lock_reason=trajectory.lock_reason,
                    stake_amount=trajectory.stake_amount,
                    stake_currency=trajectory.stake_currency,
                )
                await append_next_event(
                    self._stores.event_store,
                    trajectory_id,
                    lambda seq: self._build_event(
                        trajectory_id,
                        seq,
                        now,
                        EventType.STATE_TRANSITION,
                        identity.user_id,
                        StateTransitionPayload(
                            from_status=TrajectoryStatus.DRAFT,
                            to_status=TrajectoryStatus.LOCKED,
                            reason="locked by owner",
                            lock=frozen,
                        ).model_dump(mode="json"),
                    ),
                )

        await log.ainfo(
            "trajectory_locked",
            trajectory_id=trajectory_id,
            has_deadline=trajectory.deadline_at is not None,
            has_stake=trajectory.stake_amount is not None,
        )
        return trajectory

    async def record_outcome(
        self,
        identity: Identity,
        trajectory_id: str,
        result: str,
        proof_text: str | None = None,
        proof_url: str | None = None,
    ) -> Trajectory:
        """记录结果：locked -> completed | broken，恰好一次"""
        trajectory, _ = await self._finalize(
            identity, trajectory_id, result, proof_text, proof_url
        )
        return trajectory

    async def add_amendment(
        self,
        identity: Identity,
        trajectory_id: str,
        kind: str,
        content: str,
        confirmation: str | None,
        result: str | None = None,
    ) -> Amendment:
        """向已锁定记录追加 MILESTONE / NOTE；OUTCOME 按结果提交处理"""
        if not _confirmed(confirmation, AMEND_CONFIRMATION_WORD):
            raise InvalidInputError(
                f"Type {AMEND_CONFIRMATION_WORD} to confirm",
                code="CONFIRMATION_REQUIRED",
            )
        try:
            amendment_kind = AmendmentKind(str(kind or "").strip().upper())
        except ValueError as e:
            raise InvalidInputError(
                f"kind must be one of {sorted(_AMENDMENT_MIN_LENGTHS)}",
                code="INVALID_AMENDMENT_KIND",
            ) from e
        if amendment_kind is AmendmentKind.DROP:
            raise InvalidInputError(
                "DROP amendments are written when a draft is dropped",
                code="INVALID_AMENDMENT_KIND",
            )

        text = _required_text(content, "content", TEXT_MAX_LENGTH)
        self._check_min_length(
            text, "content", _AMENDMENT_MIN_LENGTHS[amendment_kind], "CONTENT_TOO_SHORT"
        )

        if amendment_kind is AmendmentKind.OUTCOME:
            if not result:
                raise InvalidInputError(
                    "result is required for OUTCOME amendments", code="INVALID_RESULT"
                )
            _, amendment = await self._finalize(identity, trajectory_id, result, text, None)
            return amendment

        now = datetime.now(UTC)
        async with self._stores.lock:
            async with write_transaction(self._stores.conn):
                amendment = await self._append_amendment(
                    identity,
                    trajectory_id,
                    amendment_kind,
                    text,
                    now,
                    require_locked=True,
                )

        await log.ainfo(
            "amendment_appended",
            trajectory_id=trajectory_id,
            amendment_id=amendment.amendment_id,
            kind=amendment_kind.value,
        )
        return amendment

    # ------------------------------------------------------------------
    # 读操作
    # ------------------------------------------------------------------

    async def get_trajectory(
        self, identity: Identity | None, trajectory_id: str
    ) -> TrajectoryDetail:
        """查询记录详情；不存在或不可见时统一返回 NotFound"""
        user_id = identity.user_id if identity else None
        async with self._stores.lock:
            trajectory = await self._stores.trajectory_store.get_trajectory(trajectory_id)
            if trajectory is None or not trajectory.is_visible_to(user_id):
                raise NotFoundError(trajectory_id)
            amendments = await self._stores.amendment_store.list_for_trajectory(trajectory_id)

        return TrajectoryDetail(
            trajectory=trajectory,
            amendments=amendments,
            deadline=deadline_state(trajectory, datetime.now(UTC), self._due_soon_days),
        )

    async def list_public(
        self,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[Trajectory]:
        """公开记录列表，按锁定时间倒序"""
        parsed = self._parse_status_filter(status)
        if parsed is not None and parsed not in PUBLIC_STATES:
            return []
        effective_limit = max(1, min(limit or PUBLIC_LIST_LIMIT, _MAX_PUBLIC_LIMIT))
        async with self._stores.lock:
            return await self._stores.trajectory_store.list_public(parsed, effective_limit)

    async def list_mine(
        self,
        identity: Identity,
        status: str | None = None,
        query: str | None = None,
    ) -> list[Trajectory]:
        """调用者自己的全部记录（含草稿与已丢弃）"""
        parsed = self._parse_status_filter(status)
        async with self._stores.lock:
            return await self._stores.trajectory_store.list_for_owner(
                identity.user_id, parsed, (query or "").strip() or None
            )

    def deadline_of(self, trajectory: Trajectory) -> DeadlineState:
        return deadline_state(trajectory, datetime.now(UTC), self._due_soon_days)

    # ------------------------------------------------------------------
    # 内部实现
    # ------------------------------------------------------------------

    async def _finalize(
        self,
        identity: Identity,
        trajectory_id: str,
        result: str,
        proof_text: str | None,
        proof_url: str | None,
    ) -> tuple[Trajectory, Amendment]:
        """结果提交：条件更新 + OUTCOME 记录 + 事件，同一事务提交"""
        try:
            outcome = OutcomeResult.parse(result)
        except ValueError as e:
            raise InvalidInputError(
                "result must be 'success' or 'fail'", code="INVALID_RESULT"
            ) from e
        content = self._outcome_content(
            outcome,
            _optional_text(proof_text, "proof_text", TEXT_MAX_LENGTH),
            self._validate_proof_url(proof_url),
        )
        final_status = outcome.final_status
        now = datetime.now(UTC)

        try:
            async with self._stores.lock:
                async with write_transaction(self._stores.conn):
                    finalized = await self._stores.trajectory_store.finalize_trajectory(
                        trajectory_id,
                        identity.user_id,
                        final_status,
                        now,
                        not_before_deadline=self._enforce_deadline,
                    )
                    if not finalized:
                        raise await self._classify_outcome_failure(identity, trajectory_id)
                    await append_next_event(
                        self._stores.event_store,
                        trajectory_id,
                        lambda seq: self._build_event(
                            trajectory_id,
                            seq,
                            now,
                            EventType.STATE_TRANSITION,
                            identity.user_id,
                            StateTransitionPayload(
                                from_status=TrajectoryStatus.LOCKED,
                                to_status=final_status,
                                reason=f"outcome recorded: {outcome.value}",
                            ).model_dump(mode="json"),
                        ),
                    )
                    amendment = await self._append_amendment(
                        identity, trajectory_id, AmendmentKind.OUTCOME, content, now
                    )
                    trajectory = await self._stores.trajectory_store.get_trajectory(
                        trajectory_id
                    )
        except aiosqlite.IntegrityError as e:
            if is_outcome_conflict(e):
                await log.awarning("outcome_conflict", trajectory_id=trajectory_id)
                raise ConflictError(
                    "An outcome has already been recorded",
                    code="OUTCOME_ALREADY_RECORDED",
                ) from e
            raise UnexpectedError("Storage constraint violated") from e
        except ConflictError:
            await log.awarning("outcome_conflict", trajectory_id=trajectory_id)
            raise

        await log.ainfo(
            "outcome_recorded",
            trajectory_id=trajectory_id,
            status=final_status.value,
        )
        return trajectory, amendment

    async def _append_amendment(
        self,
        identity: Identity,
        trajectory_id: str,
        kind: AmendmentKind,
        content: str,
        now: datetime,
        actor: ActorType = ActorType.USER,
        require_locked: bool = False,
    ) -> Amendment:
        """在当前事务内追加记录 + AMENDMENT_APPENDED 事件"""
        amendment = Amendment(
            amendment_id=str(ULID()),
            trajectory_id=trajectory_id,
            kind=kind,
            content=content,
            author_id=identity.user_id,
            created_at=now,
        )
        if require_locked:
            appended = await self._stores.amendment_store.append_to_locked(
                amendment, identity.user_id
            )
            if not appended:
                raise await self._classify_failure(
                    identity, trajectory_id, TrajectoryStatus.LOCKED
                )
        else:
            await self._stores.amendment_store.append_amendment(amendment)

        await append_next_event(
            self._stores.event_store,
            trajectory_id,
            lambda seq: self._build_event(
                trajectory_id,
                seq,
                now,
                EventType.AMENDMENT_APPENDED,
                identity.user_id,
                AmendmentAppendedPayload(
                    amendment_id=amendment.amendment_id,
                    kind=kind,
                    content_length=len(content),
                ).model_dump(mode="json"),
                actor=actor,
            ),
        )
        return amendment

    async def _classify_failure(
        self,
        identity: Identity,
        trajectory_id: str,
        expected: TrajectoryStatus,
    ) -> LockpointError:
        """条件更新未命中后回读记录，分类失败原因（owner 优先于状态）"""
        trajectory = await self._stores.trajectory_store.get_trajectory(trajectory_id)
        if trajectory is None:
            return NotFoundError(trajectory_id)
        if not trajectory.is_owned_by(identity.user_id):
            await log.awarning(
                "trajectory_forbidden",
                trajectory_id=trajectory_id,
                user_id=identity.user_id,
            )
            return ForbiddenError("Only the owner can modify this trajectory")
        return ConflictError(
            f"Trajectory is {trajectory.status.value}, expected {expected.value}",
            code="INVALID_STATE",
        )

    async def _classify_lock_failure(
        self,
        identity: Identity,
        trajectory_id: str,
        details: LockDetails,
    ) -> LockpointError:
        error = await self._classify_failure(identity, trajectory_id, TrajectoryStatus.DRAFT)
        if not isinstance(error, ConflictError):
            return error
        trajectory = await self._stores.trajectory_store.get_trajectory(trajectory_id)
        if trajectory.status is not TrajectoryStatus.DRAFT:
            return ConflictError(
                f"Trajectory is already {trajectory.status.value}",
                code="ALREADY_LOCKED"
                if trajectory.status is not TrajectoryStatus.DROPPED
                else "TRAJECTORY_DROPPED",
            )
        # 仍是草稿：只可能是最终内容长度不足
        try:
            self._check_min_length(
                details.title or trajectory.title, "title", TITLE_MIN_LENGTH, "TITLE_TOO_SHORT"
            )
            self._check_min_length(
                details.commitment or trajectory.commitment,
                "commitment",
                COMMITMENT_MIN_LENGTH,
                "COMMITMENT_TOO_SHORT",
            )
        except InvalidInputError as e:
            return e
        return error

    async def _classify_outcome_failure(
        self,
        identity: Identity,
        trajectory_id: str,
    ) -> LockpointError:
        error = await self._classify_failure(identity, trajectory_id, TrajectoryStatus.LOCKED)
        if not isinstance(error, ConflictError):
            return error
        trajectory = await self._stores.trajectory_store.get_trajectory(trajectory_id)
        if trajectory.status in (TrajectoryStatus.DRAFT, TrajectoryStatus.DROPPED):
            return InvalidInputError(
                f"A {trajectory.status.value} trajectory cannot record an outcome",
                code="NOT_FINALIZABLE",
            )
        if trajectory.status is TrajectoryStatus.LOCKED:
            # 仍为 locked：截止时间尚未到达（仅在启用截止时间约束时出现）
            return InvalidInputError(
                "The outcome cannot be recorded before the deadline",
                code="OUTCOME_TOO_EARLY",
            )
        return ConflictError(
            f"Outcome already recorded, trajectory is {trajectory.status.value}",
            code="OUTCOME_ALREADY_RECORDED",
        )

    @staticmethod
    def _check_min_length(value: str, field: str, minimum: int, code: str) -> None:
        if len(value.strip()) < minimum:
            raise InvalidInputError(
                f"{field} must be at least {minimum} characters", code=code
            )

    @staticmethod
    def _validate_proof_url(proof_url: str | None) -> str | None:
        url = _optional_text(proof_url, "proof_url", TEXT_MAX_LENGTH)
        if url is None:
            return None
        if not url.lower().startswith(("http://", "https://")) or any(c.isspace() for c in url):
            raise InvalidInputError("proof_url must be an http(s) URL", code="INVALID_PROOF_URL")
        return url

    @staticmethod
    def _outcome_content(
        outcome: OutcomeResult,
        proof_text: str | None,
        proof_url: str | None,
    ) -> str:
        """OUTCOME 内容：[COMPLETED] / [BROKEN] 前缀 + 说明，链接单独一行"""
        prefix = f"[{outcome.final_status.value.upper()}]"
        content = f"{prefix} {proof_text}" if proof_text else prefix
        if proof_url:
            content = f"{content}\n{proof_url}"
        return content

    @staticmethod
    def _parse_status_filter(status: str | None) -> TrajectoryStatus | None:
        if not status or not status.strip():
            return None
        try:
            return TrajectoryStatus.parse(status)
        except ValueError as e:
            raise InvalidInputError(
                f"Unknown status: {status}", code="INVALID_STATUS"
            ) from e

    @staticmethod
    def _build_event(
        trajectory_id: str,
        seq: int,
        ts: datetime,
        event_type: EventType,
        actor_id: str,
        payload: dict[str, Any],
        actor: ActorType = ActorType.USER,
    ) -> Event:
        return Event(
            event_id=str(ULID()),
            trajectory_id=trajectory_id,
            seq=seq,
            ts=ts,
            type=event_type,
            actor=actor,
            actor_id=actor_id,
            payload=payload,
            trace_id=f"trace-{trajectory_id}",
        )
