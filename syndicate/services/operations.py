"""Operation attempts: start, collect, cancel, the ready sweeper and the daily pool.

An attempt moves in_progress -> completed | failed on collect, or
in_progress -> cancelled on cancel. Attempt rows are locked while they
change state, so a second collect or cancel sees the terminal status.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from syndicate.clock import Clock, utcnow
from syndicate.config import GameConfig, OperationsPool, OperationTemplate
from syndicate.crud import CreateData, ReadData, UpdateData
from syndicate.domain.dice import RandomSource, d
from syndicate.domain.operation_rules import (
    cancel_refund,
    format_duration,
    placeholder_template,
    resolve_operation,
)
from syndicate.domain.player_rules import requirement_failure
from syndicate.errors import ConflictState, GameError, InvalidRequest, NotFound, StorageError
from syndicate.event_bus import EventBus
from syndicate.models.dc_models import (
    AttemptStatus,
    NotificationType,
    OperationResources,
    OperationResultModel,
    RefreshInfoModel,
)
from syndicate.models.schema_models import OperationAttemptSchema, OperationSchema
from syndicate.models.schemas import Operation, OperationAttempt
from syndicate.services.resource_store import ResourceStore

AVAILABILITY_WINDOW = timedelta(hours=24)
TERMINAL_STATUSES = (AttemptStatus.completed, AttemptStatus.failed, AttemptStatus.cancelled)


def resource_deltas(resources: OperationResources, sign: int) -> dict:
    return {
        "crew": sign * resources.crew,
        "weapons": sign * resources.weapons,
        "vehicles": sign * resources.vehicles,
        "money": sign * resources.money,
    }


class OperationsService:
    def __init__(
        self,
        Session: async_sessionmaker,
        resource_store: ResourceStore,
        event_bus: EventBus,
        config: GameConfig,
        pool: OperationsPool,
        rng: RandomSource,
        clock: Clock = utcnow,
    ):
        self.Session: async_sessionmaker = Session
        self.resource_store: ResourceStore = resource_store
        self.event_bus: EventBus = event_bus
        self.config: GameConfig = config
        self.pool: OperationsPool = pool
        self.rng: RandomSource = rng
        self.clock: Clock = clock
        self.last_refresh_time: Optional[datetime] = None

    async def available_operations(self, player_id: UUID) -> List[OperationSchema]:
        """Operations the player could start right now"""
        now = self.clock()
        async with self.Session() as session:
            player = await ReadData.read_player(player_id, session)
            if player is None:
                raise NotFound("player not found")
            operations = await ReadData.read_active_operations(now, session)
            running = set(await ReadData.read_in_progress_operation_ids(player_id, session))
        return [
            operation
            for operation in operations
            if operation.id not in running
            and requirement_failure(player.influence, player.heat, player.title, operation.requirements)
            is None
        ]

    async def get_operation(self, operation_id: UUID) -> OperationSchema:
        async with self.Session() as session:
            operation = await ReadData.read_operation(operation_id, session)
        if operation is None:
            raise NotFound("operation not found")
        return operation

    async def current_attempts(self, player_id: UUID) -> List[OperationAttemptSchema]:
        async with self.Session() as session:
            return await ReadData.read_attempts(player_id, [AttemptStatus.in_progress], session)

    async def completed_attempts(self, player_id: UUID, limit: int = 50) -> List[OperationAttemptSchema]:
        async with self.Session() as session:
            return await ReadData.read_attempts(player_id, TERMINAL_STATUSES, session, limit)

    async def refresh_info(self) -> RefreshInfoModel:
        last = self.last_refresh_time
        if last is None:
            async with self.Session() as session:
                last = await ReadData.read_latest_operation_time(session)
        interval = self.config.refresh_interval_minutes
        return RefreshInfoModel(
            refresh_interval=interval,
            last_refresh_time=last,
            next_refresh_time=last + timedelta(minutes=interval) if last else None,
        )

    async def start(
        self, player_id: UUID, operation_id: UUID, committed: OperationResources
    ) -> Tuple[OperationAttemptSchema, str]:
        """Commit resources to an operation and start the clock.

        Args:
            player_id (UUID): acting player
            operation_id (UUID): operation to attempt
            committed (OperationResources): crew, weapons, vehicles and money sent

        Raises:
            NotFound: player or operation does not exist
            ConflictState: operation expired, already running, or too little time left
            InvalidRequest: requirements not met or not enough resources
            StorageError: the attempt could not be recorded; resources were refunded

        Returns:
            Tuple[OperationAttemptSchema, str]: the new attempt and a message for the player
        """
        now = self.clock()
        async with self.Session() as session:
            player = await ReadData.read_player(player_id, session)
            operation = await ReadData.read_operation(operation_id, session)
            running = await ReadData.read_in_progress_operation_ids(player_id, session)
        if player is None:
            raise NotFound("player not found")
        if operation is None:
            raise NotFound("operation not found")
        if not operation.is_active or operation.available_until <= now:
            raise ConflictState("this operation is no longer available")
        if operation_id in running:
            raise ConflictState("you already have this operation in progress")
        if operation.available_until - now < timedelta(seconds=operation.duration):
            raise ConflictState("not enough time remains to complete this operation")

        reason = requirement_failure(player.influence, player.heat, player.title, operation.requirements)
        if reason is not None:
            raise InvalidRequest(f"this operation {reason}")
        for kind in ("crew", "weapons", "vehicles", "money"):
            if getattr(player, kind) < getattr(committed, kind):
                raise InvalidRequest(f"not enough {kind} available")

        debit = resource_deltas(committed, -1)
        await self.resource_store.apply(player_id, debit)
        try:
            async with self.Session() as session:
                async with session.begin():
                    attempt = OperationAttempt(
                        operation_id=operation_id,
                        player_id=player_id,
                        start_time=now,
                        resources=committed.model_dump(),
                        status=AttemptStatus.in_progress.value,
                    )
                    await CreateData.add_operation_attempt(attempt, session)
                    created = OperationAttemptSchema.model_validate(attempt)
        except (GameError, SQLAlchemyError) as e:
            logging.error(f"Failed to start operation {operation_id} for player {player_id}, refunding: {e}")
            await self.resource_store.apply(player_id, resource_deltas(committed, 1))
            raise StorageError("failed to start operation") from e

        message = (
            f"Operation '{operation.name}' started. "
            f"Check back in {format_duration(operation.duration)} for results."
        )
        self.event_bus.publish_player(
            player_id, "notification", {"type": NotificationType.operation.value, "message": message}
        )
        logging.info(f"Player {player_id} started operation {operation_id} as attempt {created.id}")
        return created, message

    async def collect(self, player_id: UUID, attempt_id: UUID) -> OperationAttemptSchema:
        """Roll the outcome of a finished attempt and apply its rewards or losses"""
        now = self.clock()
        try:
            async with self.Session() as session:
                async with session.begin():
                    attempt = await ReadData.lock_attempt(attempt_id, session)
                    if attempt is None or attempt.player_id != player_id:
                        raise NotFound("operation attempt not found")
                    if attempt.status != AttemptStatus.in_progress.value:
                        raise ConflictState("this operation has already been resolved")
                    operation = await ReadData.read_operation(attempt.operation_id, session)
                    if operation is None:
                        raise NotFound("operation not found")
                    if now - attempt.start_time < timedelta(seconds=operation.duration):
                        raise ConflictState("this operation is still in progress")

                    committed = OperationResources.model_validate(attempt.resources)
                    result, deltas = resolve_operation(
                        operation.type,
                        committed,
                        operation.resources,
                        operation.success_rate,
                        operation.rewards,
                        operation.risks,
                        self.rng,
                    )
                    status = AttemptStatus.completed if result.success else AttemptStatus.failed
                    attempt.notified = True
                    updated = await UpdateData.update_operation_attempt(
                        attempt, status.value, now, session, result=result.model_dump()
                    )
                    new_title = await self.resource_store.apply_in_session(player_id, deltas, session)
        except SQLAlchemyError as e:
            logging.error(f"Failed to collect operation attempt {attempt_id}: {e}")
            raise StorageError("failed to collect operation") from e

        self.resource_store.announce_title(player_id, new_title)
        self.event_bus.publish_player(
            player_id,
            "operation_completed",
            {"attempt": updated.model_dump(), "operation_name": operation.name},
        )
        logging.info(f"Attempt {attempt_id} of player {player_id} resolved as {status.value}")
        return updated

    async def cancel(self, player_id: UUID, attempt_id: UUID) -> OperationAttemptSchema:
        """Abort a running attempt and return half of every committed resource"""
        now = self.clock()
        try:
            async with self.Session() as session:
                async with session.begin():
                    attempt = await ReadData.lock_attempt(attempt_id, session)
                    if attempt is None or attempt.player_id != player_id:
                        raise NotFound("operation attempt not found")
                    if attempt.status != AttemptStatus.in_progress.value:
                        raise ConflictState("only operations in progress can be cancelled")
                    operation = await ReadData.read_operation(attempt.operation_id, session)
                    name = operation.name if operation is not None else "unknown"

                    refund = cancel_refund(OperationResources.model_validate(attempt.resources))
                    message = (
                        f"Operation '{name}' cancelled. 50% of committed resources have been returned."
                    )
                    updated = await UpdateData.update_operation_attempt(
                        attempt,
                        AttemptStatus.cancelled.value,
                        now,
                        session,
                        result=OperationResultModel(success=False, message=message).model_dump(),
                    )
                    new_title = await self.resource_store.apply_in_session(
                        player_id, resource_deltas(refund, 1), session
                    )
        except SQLAlchemyError as e:
            logging.error(f"Failed to cancel operation attempt {attempt_id}: {e}")
            raise StorageError("failed to cancel operation") from e

        self.resource_store.announce_title(player_id, new_title)
        self.event_bus.publish_player(
            player_id, "notification", {"type": NotificationType.operation.value, "message": message}
        )
        return updated

    async def notify_ready(self) -> int:
        """Tell players about attempts that have run their full duration. Never collects."""
        now = self.clock()
        try:
            async with self.Session() as session:
                running = await ReadData.read_unnotified_running_attempts(session)
            ready = [
                (attempt, operation)
                for attempt, operation in running
                if now - attempt.start_time >= timedelta(seconds=operation.duration)
            ]
            if not ready:
                return 0
            async with self.Session() as session:
                async with session.begin():
                    await UpdateData.mark_attempts_notified([a.id for a, _ in ready], session)
        except (GameError, SQLAlchemyError) as e:
            logging.error(f"Operations sweep failed: {e}")
            return 0

        for attempt, operation in ready:
            self.event_bus.publish_player(
                attempt.player_id,
                "operation_ready",
                {
                    "type": NotificationType.operation.value,
                    "attempt_id": attempt.id,
                    "operation_id": operation.id,
                    "operation_name": operation.name,
                    "message": f"Operation '{operation.name}' is ready to collect!",
                },
            )
        logging.info(f"Notified {len(ready)} ready operation attempts")
        return len(ready)

    def _operation_from_template(self, template: OperationTemplate, now: datetime) -> Operation:
        return Operation(
            name=template.name,
            description=template.description,
            type=template.type.value,
            is_special=template.is_special,
            is_active=True,
            requirements=template.requirements.model_dump(),
            resources=template.resources.model_dump(),
            rewards=template.rewards.model_dump(),
            risks=template.risks.model_dump(),
            duration=template.duration,
            success_rate=template.success_rate,
            available_until=now + AVAILABILITY_WINDOW,
            created_at=now,
        )

    async def refresh_operations(self) -> int:
        """Prune expired operations and top the pool up to the daily quotas.

        Templates not already on offer are drawn at random; once the
        configured pool is exhausted placeholders are synthesized.

        Returns:
            int: number of operations created
        """
        now = self.clock()
        created = 0
        try:
            async with self.Session() as session:
                async with session.begin():
                    pruned = await UpdateData.deactivate_expired_operations(now, session)
                    offered = set(await ReadData.read_active_operation_names(now, session))
                    quotas = (
                        (False, self.config.daily_operations_count, self.pool.basic_operations),
                        (True, self.config.special_operations_count, self.pool.special_operations),
                    )
                    for is_special, quota, templates in quotas:
                        needed = quota - await ReadData.count_active_operations(is_special, now, session)
                        candidates = [t for t in templates if t.name not in offered]
                        while needed > 0:
                            if candidates:
                                template = candidates.pop(d(self.rng, len(candidates)))
                            else:
                                template = placeholder_template(
                                    self.config.mechanics.operations.placeholder,
                                    is_special,
                                    len(offered) + 1,
                                    self.rng,
                                )
                            await CreateData.add_operation(
                                self._operation_from_template(template, now), session
                            )
                            offered.add(template.name)
                            created += 1
                            needed -= 1
        except (GameError, SQLAlchemyError) as e:
            logging.error(f"Operations refresh failed: {e}")
            return 0

        self.last_refresh_time = now
        logging.info(f"Operations refreshed: pruned {pruned}, created {created}")
        info = await self.refresh_info()
        self.event_bus.publish_all("operations_refreshed", {"refresh_info": info.model_dump()})
        return created
