"""Grading of quiz answers and weak-topic derivation."""

from typing import List, Optional, Sequence

from .errors import ValidationError
from .models import ExamResult, Question


def is_correct(question: Question, answer: Optional[int]) -> bool:
    return answer is not None and answer == question.correct_index


def derive_weak_topics(
    questions: Sequence[Question], user_answers: Sequence[Optional[int]]
) -> List[str]:
    """Topics of incorrectly answered or skipped questions, first-seen order."""
    topics: List[str] = []
    for question, answer in zip(questions, user_answers):
        if not is_correct(question, answer) and question.topic not in topics:
            topics.append(question.topic)
    return topics


def grade_answers(
    questions: Sequence[Question], user_answers: Sequence[Optional[int]]
) -> ExamResult:
    """Score a finished quiz.

    Args:
        questions: Questions of the exam
        user_answers: Selected option index per question, None if unanswered

    Raises:
        ValidationError: If the number of answers differs from the questions
    """
    if len(user_answers) != len(questions):
        raise ValidationError(
            f"Expected {len(questions)} answers, got {len(user_answers)}",
            field="user_answers",
        )

    score = sum(1 for q, a in zip(questions, user_answers) if is_correct(q, a))
    total = len(questions)
    return ExamResult(
        score=score,
        total=total,
        percent=round(100.0 * score / total, 1) if total else 0.0,
        weak_topics=derive_weak_topics(questions, user_answers),
    )
