"""
GroupPromoter - Level transitions for a group of students sharing a pace.

Two-step flow:
1. preview_group_promotion: readiness of every roster student at the
   group's level, with a fresh idempotency token. No writes.
2. commit_group_promotion: promote a chosen subset as a persisted saga,
   then optionally advance the group's own level pointer.

promote_group runs both steps when the whole roster is ready and stops at
the preview otherwise, leaving the decision to the operator.
"""

import logging
import uuid
from typing import Optional, Union

from eduledger.schemas import (
    Curriculum,
    FailedPromotion,
    Group,
    GroupPromotionOutcome,
    GroupPromotionPreview,
    GroupPromotionSaga,
    ReadinessReason,
    SagaStatus,
    StudentReadiness,
)

from .errors import (
    AlreadyAtFinalLevelError,
    GroupNotFoundError,
    PolicyViolationError,
)
from .promotion import PromotionEngine

logger = logging.getLogger(__name__)


class GroupPromoter:
    """
    Orchestrate group promotions on top of a PromotionEngine.

    Each student is promoted in its own transaction together with the saga
    record, so an interrupted commit resumes with the remaining students
    instead of re-running or skipping anyone.
    """

    def __init__(self, engine: PromotionEngine):
        self.engine = engine
        self.store = engine.store

    def require_group(self, group_id: str) -> Group:
        group = self.store.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    # -------------------------------------------------------------------------
    # Readiness
    # -------------------------------------------------------------------------

    def student_readiness(self, student_id: str, curriculum: Curriculum, group_level: int) -> StudentReadiness:
        """
        Readiness of one student to move from the group's level to the next.

        Credit is reported before progress when both fall short.
        """
        subscription = self.store.find_active_subscription(student_id, curriculum.id)
        if subscription is None:
            return StudentReadiness(
                student_id=student_id,
                ready=False,
                reason=ReadinessReason.NO_ACTIVE_SUBSCRIPTION,
            )

        credit = subscription.access_credit_days
        student_level = subscription.current_level
        if student_level > group_level:
            return StudentReadiness(
                student_id=student_id,
                ready=True,
                reason=ReadinessReason.ALREADY_ADVANCED,
                credit=credit,
                student_level=student_level,
            )
        if student_level < group_level:
            return StudentReadiness(
                student_id=student_id,
                ready=False,
                reason=ReadinessReason.BEHIND_GROUP,
                credit=credit,
                student_level=student_level,
            )

        progress = self.engine.level_completion(student_id, curriculum.id, group_level)
        duration = curriculum.level_duration(group_level + 1)
        if credit < duration:
            reason = ReadinessReason.INSUFFICIENT_CREDIT
        elif progress < curriculum.minimum_completion_rate:
            reason = ReadinessReason.INSUFFICIENT_PROGRESS
        else:
            reason = ReadinessReason.READY

        return StudentReadiness(
            student_id=student_id,
            ready=reason == ReadinessReason.READY,
            reason=reason,
            progress=progress,
            credit=credit,
            student_level=student_level,
        )

    def preview_group_promotion(self, group_id: str) -> GroupPromotionPreview:
        """
        Partition the roster into ready and not-ready students.

        Raises:
            GroupNotFoundError, CurriculumNotFoundError, AlreadyAtFinalLevelError
        """
        group = self.require_group(group_id)
        curriculum = self.engine.require_curriculum(group.curriculum_id)
        group_level = group.progress.current_level
        if group_level >= curriculum.final_level:
            raise AlreadyAtFinalLevelError(group_level)

        duration = curriculum.level_duration(group_level + 1)
        readiness = [
            self.student_readiness(student_id, curriculum, group_level)
            for student_id in group.students
        ]
        ready = [r for r in readiness if r.ready]
        not_ready = [r for r in readiness if not r.ready]

        return GroupPromotionPreview(
            token=uuid.uuid4().hex,
            group_id=group.id,
            curriculum_id=curriculum.id,
            from_level=group_level,
            to_level=group_level + 1,
            level_duration_days=duration,
            minimum_completion_rate=curriculum.minimum_completion_rate,
            ready=ready,
            not_ready=not_ready,
            projected_credit={
                r.student_id: r.credit - duration
                for r in ready
                if r.reason == ReadinessReason.READY
            },
        )

    # -------------------------------------------------------------------------
    # Orchestration
    # -------------------------------------------------------------------------

    def promote_group(self, group_id: str) -> Union[GroupPromotionOutcome, GroupPromotionPreview]:
        """
        Promote a whole group when every student is ready.

        Returns:
            GroupPromotionOutcome if the roster was ready and has been promoted
            (group pointer advanced), otherwise the GroupPromotionPreview for
            operator review with nothing written
        """
        preview = self.preview_group_promotion(group_id)
        if preview.requires_confirmation:
            logger.info(
                f"Group {group_id}: {len(preview.not_ready)} of "
                f"{len(preview.ready) + len(preview.not_ready)} students not ready, awaiting confirmation"
            )
            return preview

        return self.commit_group_promotion(
            group_id,
            preview.token,
            student_ids=[r.student_id for r in preview.ready],
            advance_group=True,
        )

    def commit_group_promotion(
        self,
        group_id: str,
        token: str,
        student_ids: Optional[list[str]] = None,
        advance_group: bool = False,
    ) -> GroupPromotionOutcome:
        """
        Promote the chosen students and optionally advance the group pointer.

        Args:
            group_id: Group to promote
            token: Idempotency token (from preview_group_promotion)
            student_ids: Roster students to promote (default: those ready now)
            advance_group: Also move the group's own level pointer forward.
                Only happens when no selected student failed and the group
                is still at the level the saga started from.

        Returns:
            The outcome. Repeating a finished token returns the stored outcome
            without writing; repeating an interrupted one resumes it.

        Raises:
            GroupNotFoundError, CurriculumNotFoundError, AlreadyAtFinalLevelError,
            ValueError (token reused for another group, or student not on roster),
            ConcurrencyConflictError (retry with the same token)
        """
        existing = self.store.get_saga(token)
        if existing is not None:
            if existing.group_id != group_id:
                raise ValueError(f"Token {token} belongs to group {existing.group_id}, not {group_id}")
            if existing.status != SagaStatus.IN_PROGRESS:
                return GroupPromotionOutcome.from_saga(existing)
            return self._run_saga(existing)

        group = self.require_group(group_id)
        curriculum = self.engine.require_curriculum(group.curriculum_id)
        group_level = group.progress.current_level
        if group_level >= curriculum.final_level:
            raise AlreadyAtFinalLevelError(group_level)

        if student_ids is None:
            selected = [
                student_id for student_id in group.students
                if self.student_readiness(student_id, curriculum, group_level).ready
            ]
        else:
            outsiders = [sid for sid in student_ids if sid not in group.students]
            if outsiders:
                raise ValueError(f"Students not on the roster of group {group_id}: {outsiders}")
            selected = list(dict.fromkeys(student_ids))

        saga = self.store.create_saga(GroupPromotionSaga(
            token=token,
            group_id=group.id,
            curriculum_id=curriculum.id,
            from_level=group_level,
            to_level=group_level + 1,
            selected=selected,
            advance_group=advance_group,
            actor=self.engine.actor,
            created_at=self.engine.clock(),
        ))
        return self._run_saga(saga)

    def resume_group_promotion(self, token: str) -> GroupPromotionOutcome:
        """Continue an interrupted commit from its persisted selection."""
        saga = self.store.get_saga(token)
        if saga is None:
            raise KeyError(token)
        return self.commit_group_promotion(saga.group_id, token)

    def list_incomplete_group_promotions(self) -> list[GroupPromotionSaga]:
        return self.store.list_sagas(SagaStatus.IN_PROGRESS)

    def _run_saga(self, saga: GroupPromotionSaga) -> GroupPromotionOutcome:
        curriculum = self.engine.require_curriculum(saga.curriculum_id)

        for student_id in saga.remaining():
            subscription = self.store.find_active_subscription(student_id, curriculum.id)
            promoted = None
            if subscription is None:
                saga = self._with_failure(saga, student_id, ReadinessReason.NO_ACTIVE_SUBSCRIPTION.value)
            elif subscription.current_level > saga.from_level:
                saga = saga.model_copy(update={"skipped": [*saga.skipped, student_id]})
            elif subscription.current_level < saga.from_level:
                saga = self._with_failure(saga, student_id, ReadinessReason.BEHIND_GROUP.value)
            else:
                try:
                    promoted, _ = self.engine.build_promotion(subscription, curriculum)
                except PolicyViolationError as e:
                    saga = self._with_failure(saga, student_id, type(e).__name__, str(e))
                else:
                    saga = saga.model_copy(update={"promoted": [*saga.promoted, student_id]})

            self.store.save_saga_step(saga, subscription=promoted)
            if promoted is not None:
                logger.info(
                    f"Group {saga.group_id} [{saga.token}]: promoted {student_id} "
                    f"to level {saga.to_level}, credit left {promoted.access_credit_days} days"
                )

        return self._finish_saga(saga)

    def _finish_saga(self, saga: GroupPromotionSaga) -> GroupPromotionOutcome:
        now = self.engine.clock()
        advanced_group = None

        if saga.failed:
            status = SagaStatus.PARTIAL
            if saga.advance_group:
                logger.warning(
                    f"Group {saga.group_id} [{saga.token}]: {len(saga.failed)} students failed, "
                    f"group level left at {saga.from_level}"
                )
        else:
            status = SagaStatus.COMPLETED
            if saga.advance_group:
                group = self.require_group(saga.group_id)
                if group.progress.current_level != saga.from_level:
                    logger.warning(
                        f"Group {saga.group_id} [{saga.token}]: group level is now "
                        f"{group.progress.current_level}, not {saga.from_level}; pointer left as is"
                    )
                else:
                    advanced_group = group.model_copy(update={
                        "progress": group.progress.model_copy(update={
                            "current_level": saga.to_level,
                            "completed_levels": group.progress.completed_levels | {saga.from_level},
                            "last_update": now,
                            "promoted_by": saga.actor,
                        }),
                    })

        saga = saga.model_copy(update={
            "status": status,
            "group_advanced": advanced_group is not None,
            "completed_at": now,
        })
        self.store.save_saga_step(saga, group=advanced_group)
        logger.info(
            f"Group {saga.group_id} [{saga.token}] {status.value}: "
            f"{len(saga.promoted)} promoted, {len(saga.skipped)} skipped, {len(saga.failed)} failed, "
            f"group advanced: {saga.group_advanced}"
        )
        return GroupPromotionOutcome.from_saga(saga)

    @staticmethod
    def _with_failure(saga: GroupPromotionSaga, student_id: str, reason: str, detail: str = "") -> GroupPromotionSaga:
        failure = FailedPromotion(student_id=student_id, reason=reason, detail=detail)
        return saga.model_copy(update={"failed": [*saga.failed, failure]})
