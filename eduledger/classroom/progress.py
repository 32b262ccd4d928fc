"""
Progress calculator - attendance-based completion of curriculum levels.

Pure functions over a curriculum and the attendance ledger:
- Current-level completion (0-100)
- Overall curriculum progress (completed levels plus the current level's share)
"""

from typing import Iterable

from eduledger.schemas import AttendanceSession, Curriculum, Subscription


def compute_level_completion(
    curriculum: Curriculum,
    level: int,
    student_id: str,
    sessions: Iterable[AttendanceSession],
) -> float:
    """
    Percentage of a level's required sessions the student attended.

    A session counts when it belongs to this curriculum and level and the
    student's entry is present or late. Make-up sessions beyond the
    requirement do not push the figure over 100.

    Returns:
        0 if the level does not exist, 100 if it requires no sessions,
        otherwise min(100, attended / required * 100)
    """
    level_data = curriculum.get_level(level)
    if level_data is None:
        return 0.0
    if level_data.sessions_count == 0:
        return 100.0

    attended = sum(
        1 for session in sessions
        if session.curriculum_id == curriculum.id
        and session.level == level
        and session.attended_by(student_id)
    )
    return min(100.0, attended / level_data.sessions_count * 100)


def overall_progress(
    curriculum: Curriculum,
    subscription: Subscription,
    current_level_completion: float,
) -> float:
    """
    Progress through the whole curriculum, as shown to the student.

    Each level weighs 1/total_levels. Completed levels count in full; the
    current level counts by its attendance completion unless it is already
    marked completed.
    """
    total_levels = curriculum.total_levels
    if total_levels == 0:
        return 0.0

    completed = subscription.progress.completed_levels
    progress = len(completed) / total_levels * 100

    if subscription.current_level <= total_levels and subscription.current_level not in completed:
        level_weight = 100 / total_levels
        progress += current_level_completion / 100 * level_weight

    return min(progress, 100.0)
