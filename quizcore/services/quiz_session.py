# quizcore/services/quiz_session.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from random import Random
from typing import Callable

from quizcore.domain import (
    AnswerRecord,
    AttemptStatus,
    Difficulty,
    Page,
    Question,
    QuestionFilter,
    QuestionType,
    QuestionView,
    QuizAttempt,
)
from quizcore.errors import (
    ConcurrentUpdateError,
    DuplicateAttemptError,
    InvalidInputError,
    NotEnoughQuestionsError,
    NotFoundError,
    StateConflictError,
)
from quizcore.ports import AttemptStore, QuestionCatalog, StoreTransaction
from quizcore.services.locks import KeyedLocks
from quizcore.services.scoring import MAX_TIME_BONUS_RATE, round_half_up, score
from quizcore.services.validation import (
    check_pagination,
    check_start_quiz,
    check_submit_answer,
    coerce_difficulty,
    ensure,
)
from quizcore.utils.dates import utc_now

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StartedQuiz:
    attempt: QuizAttempt
    questions: list[QuestionView]

    @property
    def first_question(self) -> QuestionView | None:
        return self.questions[0] if self.questions else None


@dataclass(frozen=True, slots=True)
class AnswerResult:
    is_correct: bool
    correct_answer: str
    explanation: str | None
    points_earned: int
    base_points: int
    time_bonus: int
    time_bonus_fraction: float
    total_score: int
    correct_answers_count: int
    current_index: int
    is_last_question: bool
    status: AttemptStatus


@dataclass(frozen=True, slots=True)
class SessionView:
    attempt: QuizAttempt
    questions: list[QuestionView]
    answered_question_ids: list[int]


@dataclass(frozen=True, slots=True)
class AnswerReview:
    question_id: int
    content: str
    type: QuestionType
    difficulty: Difficulty
    options: tuple[str, ...]
    selected_answer: str
    correct_answer: str
    is_correct: bool
    explanation: str | None
    points_earned: int
    time_spent: float


@dataclass(frozen=True, slots=True)
class QuizSummary:
    attempt: QuizAttempt
    accuracy: int  # percent of answered questions
    total_time_spent: float
    average_time_per_question: float
    answers: list[AnswerReview] = field(default_factory=list)


class QuizSessionEngine:
    """
    Single-player timed quiz attempts.

    ACTIVE -> COMPLETED when the last question is answered,
    ACTIVE -> ABANDONED on abandon() or expiry. Answers are accepted strictly
    in sequence, one per question, serialized per attempt id.
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        store: AttemptStore,
        *,
        max_time_bonus_rate: float = MAX_TIME_BONUS_RATE,
        default_question_count: int = 10,
        rng: Random | None = None,
        clock: Callable[[], datetime] = utc_now,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._rate = max_time_bonus_rate
        self._default_count = default_question_count
        self._rng = rng or Random()
        self._clock = clock
        self._locks = locks or KeyedLocks()

    # -------------------------------------------------
    # start
    # -------------------------------------------------

    async def start(
        self,
        user_id: int,
        category_id: int,
        difficulty: Difficulty | str | None = None,
        question_count: int | None = None,
    ) -> StartedQuiz:
        count = self._default_count if question_count is None else question_count

        violations = check_start_quiz(user_id, category_id, count)
        try:
            diff = coerce_difficulty(difficulty)
        except InvalidInputError as e:
            violations += e.violations
            diff = None
        ensure(violations)

        if not await self._catalog.category_exists(category_id):
            raise InvalidInputError([f"category {category_id} does not exist"], code="CATEGORY_NOT_FOUND")

        pool: dict[int, Question] = {}
        for q in await self._catalog.fetch_questions(QuestionFilter(category_id=category_id, difficulty=diff)):
            pool.setdefault(q.id, q)

        if len(pool) < count:
            raise NotEnoughQuestionsError(
                f"Requested {count} questions but only {len(pool)} are available",
                details={"requested": count, "available": len(pool)},
            )

        # order is fixed here for the lifetime of the attempt
        picked = self._rng.sample(list(pool.values()), count)

        async with self._store.transaction() as tx:
            attempt = await tx.create_quiz_attempt(
                QuizAttempt(
                    user_id=user_id,
                    category_id=category_id,
                    question_ids=tuple(q.id for q in picked),
                    created_at=self._clock(),
                )
            )

        log.info(
            "Started quiz attempt %s for user %s with %s questions (category=%s, difficulty=%s)",
            attempt.id, user_id, count, category_id, diff.value if diff else "any",
        )
        return StartedQuiz(attempt=attempt, questions=[QuestionView.of(q) for q in picked])

    # -------------------------------------------------
    # submit answer
    # -------------------------------------------------

    async def submit_answer(
        self,
        attempt_id: int,
        question_id: int,
        selected_answer: str,
        time_spent: float,
        *,
        user_id: int | None = None,
    ) -> AnswerResult:
        ensure(check_submit_answer(attempt_id, question_id, selected_answer, time_spent))

        async with self._locks.hold(("quiz", attempt_id)):
            try:
                async with self._store.transaction() as tx:
                    attempt = await self._load(tx, attempt_id, user_id)

                    if attempt.status is not AttemptStatus.ACTIVE:
                        raise StateConflictError(
                            f"Attempt {attempt_id} is {attempt.status.value}",
                            code="ATTEMPT_NOT_ACTIVE",
                        )

                    expected = attempt.current_question_id
                    if question_id != expected:
                        raise StateConflictError(
                            f"Expected an answer for question {expected}, got {question_id}",
                            code="QUESTION_MISMATCH",
                            details={
                                "expectedQuestionId": expected,
                                "currentIndex": attempt.current_index,
                                "alreadyAnswered": question_id in attempt.question_ids[: attempt.current_index],
                            },
                        )

                    question = await self._question(question_id)
                    result = score(question, selected_answer, time_spent, max_time_bonus_rate=self._rate)

                    await tx.add_answer(
                        AnswerRecord(
                            attempt_id=attempt_id,
                            question_id=question_id,
                            selected_answer=selected_answer,
                            time_spent=float(time_spent),
                            is_correct=result.is_correct,
                            points_earned=result.points_earned,
                            order_index=attempt.current_index,
                        )
                    )

                    attempt.current_index += 1
                    attempt.score += result.points_earned
                    if result.is_correct:
                        attempt.correct_answers += 1
                    if attempt.current_index == attempt.total_questions:
                        attempt.status = AttemptStatus.COMPLETED
                        attempt.completed_at = self._clock()

                    await tx.update_quiz_attempt(attempt)

            except ConcurrentUpdateError as e:
                log.warning("Lost update on quiz attempt %s", attempt_id)
                raise StateConflictError(
                    f"Attempt {attempt_id} was modified concurrently; reload and retry",
                    code="CONCURRENT_MODIFICATION",
                ) from e
            except DuplicateAttemptError as e:
                raise StateConflictError(
                    f"Question {question_id} was already answered in attempt {attempt_id}",
                    code="ALREADY_ANSWERED",
                ) from e

        is_last = attempt.status is AttemptStatus.COMPLETED
        if is_last:
            log.info(
                "Completed quiz attempt %s: %s/%s correct, %s points",
                attempt_id, attempt.correct_answers, attempt.total_questions, attempt.score,
            )

        return AnswerResult(
            is_correct=result.is_correct,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            points_earned=result.points_earned,
            base_points=result.base_points,
            time_bonus=result.time_bonus,
            time_bonus_fraction=result.time_bonus_fraction,
            total_score=attempt.score,
            correct_answers_count=attempt.correct_answers,
            current_index=attempt.current_index,
            is_last_question=is_last,
            status=attempt.status,
        )

    # -------------------------------------------------
    # abandon / expiry
    # -------------------------------------------------

    async def abandon(self, attempt_id: int, *, user_id: int | None = None) -> QuizSummary:
        """ACTIVE -> ABANDONED. Already terminal attempts are returned unchanged."""
        async with self._locks.hold(("quiz", attempt_id)):
            try:
                async with self._store.transaction() as tx:
                    attempt = await self._load(tx, attempt_id, user_id)
                    if not attempt.status.is_terminal:
                        attempt.status = AttemptStatus.ABANDONED
                        attempt.completed_at = self._clock()
                        await tx.update_quiz_attempt(attempt)
                        log.info(
                            "Abandoned quiz attempt %s at question %s/%s",
                            attempt_id, attempt.current_index, attempt.total_questions,
                        )
                    answers = await tx.list_answers(attempt_id)
            except ConcurrentUpdateError as e:
                raise StateConflictError(
                    f"Attempt {attempt_id} was modified concurrently; reload and retry",
                    code="CONCURRENT_MODIFICATION",
                ) from e

        return await self._summary(attempt, answers)

    async def expire_stale(self, max_age: timedelta, *, now: datetime | None = None) -> int:
        """Abandons every ACTIVE attempt created before now - max_age."""
        cutoff = (now or self._clock()) - max_age

        async with self._store.transaction() as tx:
            stale = await tx.list_stale_quiz_attempts(cutoff)

        expired = 0
        for candidate in stale:
            async with self._locks.hold(("quiz", candidate.id)):
                try:
                    async with self._store.transaction() as tx:
                        attempt = await tx.get_quiz_attempt(candidate.id)  # type: ignore[arg-type]
                        if attempt is None or attempt.status is not AttemptStatus.ACTIVE:
                            continue
                        attempt.status = AttemptStatus.ABANDONED
                        attempt.completed_at = self._clock()
                        await tx.update_quiz_attempt(attempt)
                        expired += 1
                except ConcurrentUpdateError:
                    log.warning("Skipped expiring quiz attempt %s: modified concurrently", candidate.id)

        if expired:
            log.info("Expired %s stale quiz attempts (cutoff=%s)", expired, cutoff.isoformat())
        return expired

    # -------------------------------------------------
    # reads
    # -------------------------------------------------

    async def get_session(self, attempt_id: int, *, user_id: int | None = None) -> SessionView:
        async with self._store.transaction() as tx:
            attempt = await self._load(tx, attempt_id, user_id)
            answers = await tx.list_answers(attempt_id)

        questions = await self._catalog.get_questions(attempt.question_ids)
        return SessionView(
            attempt=attempt,
            questions=[QuestionView.of(q) for q in questions],
            answered_question_ids=[a.question_id for a in answers],
        )

    async def summarize(self, attempt_id: int, *, user_id: int | None = None) -> QuizSummary:
        async with self._store.transaction() as tx:
            attempt = await self._load(tx, attempt_id, user_id)
            answers = await tx.list_answers(attempt_id)
        return await self._summary(attempt, answers)

    async def list_sessions(self, user_id: int, *, page: int = 1, limit: int = 20) -> Page:
        ensure(check_pagination(page, limit))
        async with self._store.transaction() as tx:
            items, total = await tx.list_quiz_attempts(user_id, offset=(page - 1) * limit, limit=limit)
        return Page(items=items, total=total, page=page, limit=limit)

    # -------------------------------------------------
    # helpers
    # -------------------------------------------------

    async def _load(self, tx: StoreTransaction, attempt_id: int, user_id: int | None) -> QuizAttempt:
        attempt = await tx.get_quiz_attempt(attempt_id)
        # someone else's attempt is reported exactly like a missing one
        if attempt is None or (user_id is not None and attempt.user_id != user_id):
            raise NotFoundError(f"Quiz attempt {attempt_id} not found", code="ATTEMPT_NOT_FOUND")
        return attempt

    async def _question(self, question_id: int) -> Question:
        found = await self._catalog.get_questions([question_id])
        if not found:
            raise NotFoundError(f"Question {question_id} not found", code="QUESTION_NOT_FOUND")
        return found[0]

    async def _summary(self, attempt: QuizAttempt, answers: list[AnswerRecord]) -> QuizSummary:
        questions = {q.id: q for q in await self._catalog.get_questions(attempt.question_ids)}
        by_question = {a.question_id: a for a in answers}

        answered = len(answers)
        total_time = sum(a.time_spent for a in answers)
        accuracy = round_half_up(attempt.correct_answers * 100 / answered) if answered else 0
        average = round(total_time / answered, 2) if answered else 0.0

        review: list[AnswerReview] = []
        for qid in attempt.question_ids:
            q = questions.get(qid)
            if q is None:
                continue
            a = by_question.get(qid)
            review.append(
                AnswerReview(
                    question_id=qid,
                    content=q.content,
                    type=q.type,
                    difficulty=q.difficulty,
                    options=q.options,
                    selected_answer=a.selected_answer if a else "",
                    correct_answer=q.correct_answer,
                    is_correct=a.is_correct if a else False,
                    explanation=q.explanation,
                    points_earned=a.points_earned if a else 0,
                    time_spent=a.time_spent if a else 0.0,
                )
            )

        return QuizSummary(
            attempt=attempt,
            accuracy=accuracy,
            total_time_spent=total_time,
            average_time_per_question=average,
            answers=review,
        )
