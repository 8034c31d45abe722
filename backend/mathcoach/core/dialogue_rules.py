"""Dialogue Rules — deterministic round arithmetic and fallback tutoring, no IO.

Invariants:
    - Round counter only moves forward and never exceeds total_rounds + 1
    - The final round is the one where current_round == total_rounds
    - Rule-based correctness never ends a session; round counting does
    - fallback_reply always returns non-empty feedback; next_question is None
      only on the final round

Design Decisions:
    - Pure functions over a stateful engine: the shell reads, decides here, writes once
    - Number extraction is one left-to-right scan, so "the last number the
      student wrote" is literally the last one in the text
"""

import re
from dataclasses import dataclass

from mathcoach.core.domain_types import AnswerQuality
from mathcoach.core import feedback_templates as tpl

# ASCII: CJK characters count as word chars in Unicode mode, which would
# hide "3" in "还剩3个". A "-" is a sign only when it does not follow an
# operand, so "5-2" reads as 5 and 2 while "-3" stays negative.
_NUMBER = re.compile(
    r"(?<![\d.])((?:(?<![\d.)\]])-)?\d+(?:\.\d+)?)(?:/(\d+))?(%)?", re.ASCII,
)
_MATH_SYMBOLS = re.compile(r"[+\-*/=×÷]")
_DIGITS_ONLY = re.compile(r"^\d+$")
_NUMBER_TOLERANCE = 0.01


@dataclass(frozen=True)
class AnswerCheck:
    """Outcome of the rule-based correctness check."""
    is_correct: bool
    method: str
    extracted_answer: str | None = None


@dataclass(frozen=True)
class QualityAssessment:
    quality: AnswerQuality
    has_numbers: bool
    has_math_symbols: bool
    has_explanation: bool


# ─── Round arithmetic ────────────────────────────────────────────

def is_final_round(current_round: int, total_rounds: int) -> bool:
    return current_round >= total_rounds


def round_after_answer(current_round: int, total_rounds: int) -> int:
    """Next round value after an answer is accepted. Capped at total + 1."""
    return min(current_round + 1, total_rounds + 1)


# ─── Answer checking ─────────────────────────────────────────────

def extract_numbers(text: str) -> list[float]:
    """Numeric literals in `text`, in reading order.

    Handles integers, decimals, fractions (a/b) and percents (n%).
    """
    numbers: list[float] = []
    for value, denominator, percent in _NUMBER.findall(text):
        number = float(value)
        if denominator:
            if float(denominator) == 0:
                continue
            number /= float(denominator)
        if percent:
            number /= 100
        numbers.append(number)
    return numbers


def check_answer(answer: str, final_answer: str | None) -> AnswerCheck:
    """Compare the student's answer against the expected final answer.

    Numbers on both sides: last student number vs first expected number.
    Otherwise: case-insensitive containment of the expected text.
    """
    student = answer.strip()
    expected = (final_answer or "").strip()
    if not expected:
        return AnswerCheck(is_correct=False, method="no_reference")

    student_numbers = extract_numbers(student)
    expected_numbers = extract_numbers(expected)
    if student_numbers and expected_numbers:
        candidate = student_numbers[-1]
        correct = abs(candidate - expected_numbers[0]) < _NUMBER_TOLERANCE
        return AnswerCheck(
            is_correct=correct,
            method="number_extraction",
            extracted_answer=_format_number(candidate),
        )

    matched = expected.lower() in student.lower()
    return AnswerCheck(
        is_correct=matched,
        method="text_matching",
        extracted_answer=expected if matched else None,
    )


def evaluate_answer_quality(answer: str) -> QualityAssessment:
    text = answer.strip()
    has_numbers = bool(re.search(r"\d", text))
    has_math_symbols = bool(_MATH_SYMBOLS.search(text))
    has_explanation = len(text) > 30 and not _DIGITS_ONLY.match(text)

    if has_numbers and has_math_symbols and has_explanation:
        quality = AnswerQuality.EXCELLENT
    elif has_numbers and has_explanation:
        quality = AnswerQuality.GOOD
    elif has_numbers or has_explanation:
        quality = AnswerQuality.FAIR
    else:
        quality = AnswerQuality.POOR
    return QualityAssessment(quality, has_numbers, has_math_symbols, has_explanation)


# ─── Templated replies ───────────────────────────────────────────

def guidance_question(current_round: int) -> str:
    """Per-round guiding question; rounds beyond the list reuse the last one."""
    questions = tpl.GUIDANCE_QUESTIONS
    index = max(0, min(current_round - 1, len(questions) - 1))
    return questions[index]


def fallback_reply(
    answer: str,
    final_answer: str | None,
    current_round: int,
    total_rounds: int,
) -> tuple[str, str | None, AnswerCheck]:
    """Deterministic feedback + next question when the collaborator is unusable.

    Returns (feedback, next_question, check). next_question is None on the
    final round; on earlier rounds a question is always provided, even for a
    correct answer, since the round still has to advance.
    """
    check = check_answer(answer, final_answer)
    assessment = evaluate_answer_quality(answer)
    final = is_final_round(current_round, total_rounds)

    if check.is_correct:
        feedback = tpl.CORRECT_OPENING
        if check.extracted_answer:
            feedback += tpl.CORRECT_SEEN.format(answer=check.extracted_answer)
        if assessment.quality == AnswerQuality.EXCELLENT:
            feedback += tpl.CORRECT_COMPLETE
        else:
            feedback += tpl.CORRECT_ADD_STEPS
        question = tpl.REFLECT_QUESTION
    else:
        feedback = tpl.INCORRECT_OPENING
        if assessment.quality == AnswerQuality.POOR:
            feedback += tpl.INCORRECT_SHOW_WORK
            question = tpl.EXPLAIN_THINKING_QUESTION
        elif assessment.has_numbers:
            feedback += tpl.INCORRECT_CHECK_CALC
            question = tpl.CHECK_STEPS_QUESTION
        else:
            feedback += tpl.INCORRECT_USE_NUMBERS
            question = guidance_question(current_round)

    if final:
        feedback += tpl.CLOSING_REMARK
        return feedback, None, check
    return feedback, question, check


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"
