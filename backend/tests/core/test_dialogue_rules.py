"""Tests for dialogue_rules — round arithmetic, answer checking and templated replies."""

import pytest

from mathcoach.core import feedback_templates as tpl
from mathcoach.core.dialogue_rules import (
    check_answer, evaluate_answer_quality, extract_numbers, fallback_reply,
    guidance_question, is_final_round, round_after_answer,
)
from mathcoach.core.domain_types import AnswerQuality


# -- Round arithmetic ----------------------------------------------------------

@pytest.mark.parametrize("current,total,expected", [
    (1, 3, False), (2, 3, False), (3, 3, True), (4, 3, True), (1, 1, True),
])
def test_is_final_round(current, total, expected):
    assert is_final_round(current, total) is expected


def test_round_after_answer_advances_by_one():
    assert round_after_answer(1, 3) == 2
    assert round_after_answer(3, 3) == 4


def test_round_after_answer_never_exceeds_total_plus_one():
    assert round_after_answer(4, 3) == 4
    assert round_after_answer(10, 3) == 4


# -- Number extraction ---------------------------------------------------------

def test_extract_numbers_reads_integers_decimals_fractions_and_percents():
    assert extract_numbers("12 and 3.5") == [12.0, 3.5]
    assert extract_numbers("1/4") == [0.25]
    assert extract_numbers("50%") == [0.5]


def test_extract_numbers_finds_digits_between_cjk_characters():
    assert extract_numbers("小明还剩3个苹果") == [3.0]


def test_extract_numbers_keeps_reading_order():
    assert extract_numbers("5 - 2 = 3") == [5.0, 2.0, 3.0]


@pytest.mark.parametrize("text,expected", [
    ("-3", [-3.0]),
    ("温度是-2.5度", [-2.5]),
    ("-1/4", [-0.25]),
    ("5-2=3", [5.0, 2.0, 3.0]),
    ("(4)-1", [4.0, 1.0]),
])
def test_extract_numbers_minus_is_a_sign_unless_it_follows_an_operand(text, expected):
    assert extract_numbers(text) == expected


def test_extract_numbers_skips_zero_denominator():
    assert extract_numbers("3/0") == []


def test_extract_numbers_on_text_without_digits():
    assert extract_numbers("我不知道") == []


# -- Answer checking -----------------------------------------------------------

def test_check_answer_compares_last_student_number():
    check = check_answer("5 - 2 = 3", "3个")
    assert check.is_correct
    assert check.method == "number_extraction"
    assert check.extracted_answer == "3"


def test_check_answer_wrong_number():
    check = check_answer("我算出来是4", "3")
    assert not check.is_correct
    assert check.extracted_answer == "4"


@pytest.mark.parametrize("answer,expected,correct", [
    ("3", "-3", False),
    ("-3", "3", False),
    ("答案是-3", "-3", True),
    ("0 - 3 = -3", "-3", True),
])
def test_check_answer_respects_sign(answer, expected, correct):
    check = check_answer(answer, expected)
    assert check.method == "number_extraction"
    assert check.is_correct is correct


def test_check_answer_tolerates_rounding():
    assert check_answer("0.33", "1/3").is_correct is True
    assert check_answer("0.35", "1/3").is_correct is False


def test_check_answer_falls_back_to_text_matching():
    check = check_answer("答案是直角三角形", "直角三角形")
    assert check.is_correct
    assert check.method == "text_matching"


def test_check_answer_text_matching_is_case_insensitive():
    assert check_answer("the answer is TRUE", "true").is_correct


def test_check_answer_without_reference():
    check = check_answer("3", None)
    assert not check.is_correct
    assert check.method == "no_reference"


# -- Answer quality ------------------------------------------------------------

def test_quality_poor_without_numbers_or_explanation():
    assert evaluate_answer_quality("不会").quality == AnswerQuality.POOR


def test_quality_fair_with_only_numbers():
    assert evaluate_answer_quality("3").quality == AnswerQuality.FAIR


def test_quality_good_with_numbers_and_explanation():
    answer = "因为小明原来有5个苹果，后来吃掉了2个，所以现在还剩下3个苹果呢"
    assessment = evaluate_answer_quality(answer)
    assert assessment.has_explanation
    assert assessment.quality == AnswerQuality.GOOD


def test_quality_excellent_with_symbols_numbers_and_explanation():
    answer = "小明原来有5个苹果，吃掉了2个苹果，所以 5 - 2 = 3，还剩3个"
    assert evaluate_answer_quality(answer).quality == AnswerQuality.EXCELLENT


# -- Templated replies ---------------------------------------------------------

def test_guidance_question_per_round():
    assert guidance_question(1) == tpl.GUIDANCE_QUESTIONS[0]
    assert guidance_question(2) == tpl.GUIDANCE_QUESTIONS[1]


def test_guidance_question_clamps_out_of_range_rounds():
    assert guidance_question(0) == tpl.GUIDANCE_QUESTIONS[0]
    assert guidance_question(99) == tpl.GUIDANCE_QUESTIONS[-1]


def test_fallback_reply_correct_answer_still_asks_next_question():
    feedback, question, check = fallback_reply("3", "3", 1, 3)
    assert check.is_correct
    assert feedback.startswith(tpl.CORRECT_OPENING)
    assert question == tpl.REFLECT_QUESTION


def test_fallback_reply_poor_answer_asks_to_explain():
    feedback, question, check = fallback_reply("不会", "3", 1, 3)
    assert not check.is_correct
    assert tpl.INCORRECT_SHOW_WORK in feedback
    assert question == tpl.EXPLAIN_THINKING_QUESTION


def test_fallback_reply_wrong_number_asks_to_check_steps():
    _, question, _ = fallback_reply("4", "3", 2, 3)
    assert question == tpl.CHECK_STEPS_QUESTION


def test_fallback_reply_final_round_has_no_next_question():
    feedback, question, _ = fallback_reply("3", "3", 3, 3)
    assert question is None
    assert feedback.endswith(tpl.CLOSING_REMARK)


def test_fallback_reply_feedback_never_empty():
    for answer in ["", "x", "3", "很长的解释但是没有数字的回答内容，用来测试解释检测是否生效"]:
        feedback, _, _ = fallback_reply(answer, "3", 1, 3)
        assert feedback
