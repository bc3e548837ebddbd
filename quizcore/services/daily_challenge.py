# quizcore/services/daily_challenge.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping, Sequence

from quizcore.config.settings import DEFAULT_STREAK_TIERS
from quizcore.domain import (
    AnswerRecord,
    AnswerSubmission,
    AttemptStatus,
    DailyAttempt,
    QuestionView,
    StreakState,
    StreakTier,
)
from quizcore.errors import (
    ConcurrentUpdateError,
    DuplicateAttemptError,
    InvalidInputError,
    NotFoundError,
    StateConflictError,
)
from quizcore.ports import AttemptStore, QuestionCatalog, StoreTransaction
from quizcore.services.locks import KeyedLocks
from quizcore.services.quiz_session import AnswerReview
from quizcore.services.scoring import MAX_TIME_BONUS_RATE, score
from quizcore.services.streaks import (
    StreakUpdate,
    advance_streak,
    effective_streak,
    multiplier_for,
    streak_bonus,
    tier_info,
)
from quizcore.services.validation import check_answer_batch, ensure
from quizcore.utils.dates import TimeProvider, utc_now

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StartedDailyAttempt:
    attempt: DailyAttempt
    questions: list[QuestionView]
    resumed: bool


@dataclass(frozen=True, slots=True)
class DailyAnswerResult:
    question_id: int
    is_correct: bool
    selected_answer: str
    correct_answer: str
    points_earned: int
    base_points: int
    time_bonus: int
    explanation: str | None


@dataclass(frozen=True, slots=True)
class DailyChallengeResult:
    attempt_id: int
    score: int
    correct_answers: int
    total_questions: int
    base_points: int  # sum of per-answer points, time bonus included
    streak_multiplier: float
    streak_bonus: int
    current_streak: int
    longest_streak: int
    is_new_record: bool
    answer_results: list[DailyAnswerResult] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class StreakView:
    user_id: int
    current_streak: int
    longest_streak: int
    last_completed_date: date | None
    current_multiplier: float
    bonus_tier: str
    days_to_next_tier: int


@dataclass(frozen=True, slots=True)
class DailyStatus:
    day: date
    completed_today: bool
    streak: StreakView
    score: int | None = None
    correct_answers: int | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class DailyAttemptReview:
    attempt: DailyAttempt
    base_points: int  # score before the streak bonus
    total_time_spent: float
    answers: list[AnswerReview] = field(default_factory=list)

    @property
    def streak_bonus(self) -> int:
        return self.attempt.score - self.base_points if self.answers else 0


def _submission(raw: AnswerSubmission | Mapping[str, Any]) -> AnswerSubmission:
    if isinstance(raw, AnswerSubmission):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidInputError([f"answer must be an object, got {type(raw).__name__}"], code="INVALID_ANSWER_SET")

    qid = raw.get("questionId", raw.get("question_id"))
    if isinstance(qid, bool) or not isinstance(qid, int):
        raise InvalidInputError([f"questionId must be an integer, got {qid!r}"], code="INVALID_ANSWER_SET")
    return AnswerSubmission(
        question_id=qid,
        selected_answer=raw.get("selectedAnswer", raw.get("selected_answer")),
        time_spent=raw.get("timeSpent", raw.get("time_spent")),
    )


class DailyChallengeEngine:
    """
    One attempt per user per calendar day against that day's fixed question set.

    Answers arrive as one batch in complete_attempt(); completing also
    advances the user's streak inside the same transaction and records a
    streak event keyed by attempt id, so a retry never applies it twice.
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        store: AttemptStore,
        *,
        max_time_bonus_rate: float = MAX_TIME_BONUS_RATE,
        streak_tiers: Sequence[StreakTier] = DEFAULT_STREAK_TIERS,
        time_provider: TimeProvider | None = None,
        clock: Callable[[], datetime] = utc_now,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._rate = max_time_bonus_rate
        self._tiers = tuple(streak_tiers)
        self._time = time_provider or TimeProvider()
        self._clock = clock
        self._locks = locks or KeyedLocks()

    # -------------------------------------------------
    # start
    # -------------------------------------------------

    async def start_attempt(self, user_id: int, day: date | None = None) -> StartedDailyAttempt:
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
            raise InvalidInputError(["userId must be a positive integer"])
        day = day or self._time.today()

        challenge = await self._catalog.fetch_daily_challenge(day)

        async with self._locks.hold(("daily-start", user_id, day)):
            async with self._store.transaction() as tx:
                attempt = await tx.find_daily_attempt(user_id, day)

            resumed = attempt is not None
            if attempt is None:
                try:
                    async with self._store.transaction() as tx:
                        attempt = await tx.create_daily_attempt(
                            DailyAttempt(
                                user_id=user_id,
                                day=day,
                                challenge_id=challenge.id,  # type: ignore[arg-type]
                                question_ids=challenge.question_ids,
                                created_at=self._clock(),
                            )
                        )
                    log.info("User %s started daily challenge %s (attempt %s)", user_id, day.isoformat(), attempt.id)
                except DuplicateAttemptError:
                    # another process won the insert; resume its attempt
                    async with self._store.transaction() as tx:
                        attempt = await tx.find_daily_attempt(user_id, day)
                    if attempt is None:
                        raise StateConflictError(
                            f"Daily attempt for user {user_id} on {day.isoformat()} could not be created; retry",
                            code="CONCURRENT_MODIFICATION",
                        ) from None
                    resumed = True

        if attempt.status is AttemptStatus.COMPLETED:
            raise StateConflictError(
                f"Daily challenge for {day.isoformat()} is already completed",
                code="ALREADY_COMPLETED",
                details={"attemptId": attempt.id, "score": attempt.score},
            )

        questions = await self._catalog.get_questions(attempt.question_ids)
        return StartedDailyAttempt(
            attempt=attempt,
            questions=[QuestionView.of(q) for q in questions],
            resumed=resumed,
        )

    # -------------------------------------------------
    # complete
    # -------------------------------------------------

    async def complete_attempt(
        self,
        attempt_id: int,
        answers: Sequence[AnswerSubmission | Mapping[str, Any]],
        *,
        user_id: int | None = None,
    ) -> DailyChallengeResult:
        if isinstance(attempt_id, bool) or not isinstance(attempt_id, int) or attempt_id <= 0:
            raise InvalidInputError(["attemptId must be a positive integer"])
        submissions = [_submission(a) for a in answers]
        owner = await self._owner(attempt_id, user_id)

        # every completion of one user advances the same streak row
        async with self._locks.hold(("daily-user", owner)):
            try:
                async with self._store.transaction() as tx:
                    attempt = await self._load(tx, attempt_id, user_id)

                    if attempt.status is AttemptStatus.COMPLETED:
                        raise StateConflictError(
                            f"Daily attempt {attempt_id} is already completed",
                            code="ALREADY_COMPLETED",
                        )

                    ensure(check_answer_batch(attempt.question_ids, submissions), code="INVALID_ANSWER_SET")

                    questions = {q.id: q for q in await self._catalog.get_questions(attempt.question_ids)}
                    missing = [qid for qid in attempt.question_ids if qid not in questions]
                    if missing:
                        raise NotFoundError(f"Challenge questions not found: {missing}", code="QUESTION_NOT_FOUND")

                    records: list[AnswerRecord] = []
                    results: list[DailyAnswerResult] = []
                    for i, sub in enumerate(submissions):
                        q = questions[sub.question_id]
                        r = score(q, sub.selected_answer, sub.time_spent, max_time_bonus_rate=self._rate)
                        selected = sub.selected_answer or ""
                        records.append(
                            AnswerRecord(
                                attempt_id=attempt_id,
                                question_id=q.id,
                                selected_answer=selected,
                                time_spent=float(sub.time_spent),  # type: ignore[arg-type]
                                is_correct=r.is_correct,
                                points_earned=r.points_earned,
                                order_index=i,
                            )
                        )
                        results.append(
                            DailyAnswerResult(
                                question_id=q.id,
                                is_correct=r.is_correct,
                                selected_answer=selected,
                                correct_answer=q.correct_answer,
                                points_earned=r.points_earned,
                                base_points=r.base_points,
                                time_bonus=r.time_bonus,
                                explanation=q.explanation,
                            )
                        )

                    base_points = sum(r.points_earned for r in records)
                    correct = sum(1 for r in records if r.is_correct)

                    update = await self._apply_streak(tx, attempt)
                    multiplier = multiplier_for(update.state.current_streak, self._tiers)
                    bonus = streak_bonus(base_points, multiplier)

                    attempt.score = base_points + bonus
                    attempt.correct_answers = correct
                    attempt.status = AttemptStatus.COMPLETED
                    attempt.completed_at = self._clock()

                    await tx.add_daily_answers(records)
                    await tx.update_daily_attempt(attempt)

            except ConcurrentUpdateError as e:
                log.warning("Lost update on daily attempt %s", attempt_id)
                raise StateConflictError(
                    f"Daily attempt {attempt_id} was modified concurrently; reload and retry",
                    code="CONCURRENT_MODIFICATION",
                ) from e
            except DuplicateAttemptError as e:
                raise StateConflictError(
                    f"Daily attempt {attempt_id} is already completed",
                    code="ALREADY_COMPLETED",
                ) from e

        log.info(
            "User %s completed daily challenge %s: score=%s (base=%s, x%s), correct=%s/%s, streak=%s",
            attempt.user_id, attempt.day.isoformat(), attempt.score, base_points, multiplier,
            correct, len(attempt.question_ids), update.state.current_streak,
        )

        return DailyChallengeResult(
            attempt_id=attempt_id,
            score=attempt.score,
            correct_answers=correct,
            total_questions=len(attempt.question_ids),
            base_points=base_points,
            streak_multiplier=multiplier,
            streak_bonus=bonus,
            current_streak=update.state.current_streak,
            longest_streak=update.state.longest_streak,
            is_new_record=update.is_new_record,
            answer_results=results,
        )

    async def repair_streak(self, attempt_id: int) -> bool:
        """
        Applies the streak update for a COMPLETED attempt that has no streak
        event yet. Safe to call any number of times; True when it applied one.
        """
        owner = await self._owner(attempt_id, None)
        async with self._locks.hold(("daily-user", owner)):
            try:
                async with self._store.transaction() as tx:
                    attempt = await self._load(tx, attempt_id, None)
                    if attempt.status is not AttemptStatus.COMPLETED:
                        return False
                    if await tx.has_streak_event(attempt_id):
                        return False
                    update = await self._apply_streak(tx, attempt)
            except DuplicateAttemptError:
                # applied by another process in the meantime
                return False
            except ConcurrentUpdateError as e:
                raise StateConflictError(
                    f"Streak of user {owner} was modified concurrently; retry the repair",
                    code="CONCURRENT_MODIFICATION",
                ) from e

        log.warning(
            "Repaired missing streak update for daily attempt %s (user %s): streak=%s",
            attempt_id, attempt.user_id, update.state.current_streak,
        )
        return True

    # -------------------------------------------------
    # reads
    # -------------------------------------------------

    async def review_attempt(self, attempt_id: int, *, user_id: int | None = None) -> DailyAttemptReview:
        """Stored answers of a daily attempt, in challenge order; empty while ACTIVE."""
        async with self._store.transaction() as tx:
            attempt = await self._load(tx, attempt_id, user_id)
            answers = await tx.list_daily_answers(attempt_id)

        questions = {q.id: q for q in await self._catalog.get_questions(attempt.question_ids)}
        by_question = {a.question_id: a for a in answers}

        review: list[AnswerReview] = []
        for qid in attempt.question_ids:
            q = questions.get(qid)
            a = by_question.get(qid)
            if q is None or a is None:
                continue
            review.append(
                AnswerReview(
                    question_id=qid,
                    content=q.content,
                    type=q.type,
                    difficulty=q.difficulty,
                    options=q.options,
                    selected_answer=a.selected_answer,
                    correct_answer=q.correct_answer,
                    is_correct=a.is_correct,
                    explanation=q.explanation,
                    points_earned=a.points_earned,
                    time_spent=a.time_spent,
                )
            )

        return DailyAttemptReview(
            attempt=attempt,
            base_points=sum(a.points_earned for a in answers),
            total_time_spent=sum(a.time_spent for a in answers),
            answers=review,
        )

    async def get_user_streak(self, user_id: int, today: date | None = None) -> StreakView:
        today = today or self._time.today()
        async with self._store.transaction() as tx:
            state = await tx.get_streak(user_id)
        return self._streak_view(user_id, state, today)

    async def get_status(self, user_id: int, today: date | None = None) -> DailyStatus:
        today = today or self._time.today()
        async with self._store.transaction() as tx:
            state = await tx.get_streak(user_id)
            attempt = await tx.find_daily_attempt(user_id, today)

        view = self._streak_view(user_id, state, today)
        if attempt is not None and attempt.status is AttemptStatus.COMPLETED:
            return DailyStatus(
                day=today,
                completed_today=True,
                streak=view,
                score=attempt.score,
                correct_answers=attempt.correct_answers,
                completed_at=attempt.completed_at,
            )
        return DailyStatus(day=today, completed_today=False, streak=view)

    # -------------------------------------------------
    # helpers
    # -------------------------------------------------

    async def _load(self, tx: StoreTransaction, attempt_id: int, user_id: int | None) -> DailyAttempt:
        attempt = await tx.get_daily_attempt(attempt_id)
        if attempt is None or (user_id is not None and attempt.user_id != user_id):
            raise NotFoundError(f"Daily attempt {attempt_id} not found", code="ATTEMPT_NOT_FOUND")
        return attempt

    async def _owner(self, attempt_id: int, user_id: int | None) -> int:
        async with self._store.transaction() as tx:
            attempt = await self._load(tx, attempt_id, user_id)
        return attempt.user_id

    async def _apply_streak(self, tx: StoreTransaction, attempt: DailyAttempt) -> StreakUpdate:
        state = await tx.get_streak(attempt.user_id) or StreakState(user_id=attempt.user_id)
        update = advance_streak(state, attempt.day)
        if update.changed:
            await tx.save_streak(update.state)
            log.info(
                "Updated streak for user %s: current=%s, longest=%s",
                attempt.user_id, update.state.current_streak, update.state.longest_streak,
            )
        await tx.record_streak_event(
            attempt_id=attempt.id,  # type: ignore[arg-type]
            user_id=attempt.user_id,
            day=attempt.day,
            streak_before=state.current_streak,
            streak_after=update.state.current_streak,
        )
        return update

    def _streak_view(self, user_id: int, state: StreakState | None, today: date) -> StreakView:
        current = effective_streak(state, today)
        info = tier_info(current, self._tiers)
        return StreakView(
            user_id=user_id,
            current_streak=current,
            longest_streak=state.longest_streak if state else 0,
            last_completed_date=state.last_completed_date if state else None,
            current_multiplier=info.multiplier,
            bonus_tier=info.description,
            days_to_next_tier=info.days_to_next,
        )
