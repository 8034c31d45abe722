"""Collaborator output parsing — repair, validate, placeholder or invalid_output."""

import json
import logging

import pytest

from mathcoach.core.errors import CollaboratorError
from mathcoach.services.dialogue_coach import parse_dialogue_reply
from mathcoach.services.problem_analyzer import parse_analysis
from mathcoach.services.report_synthesizer import parse_report_evaluation


# --- Analysis -------------------------------------------------------------------

def test_analysis_from_fenced_camel_case_json():
    text = """这是分析结果：
```json
{"questionText": "3 + 4 = ?", "gradeLevel": "一年级", "difficulty": 9,
 "keyNumbers": [3, 4], "finalAnswer": 7, "questions": "3和4是什么？",
 "solutionSteps": ["相加"]}
```"""
    analysis = parse_analysis(text)
    assert not analysis.needs_retake
    assert analysis.problem_text == "3 + 4 = ?"
    assert analysis.difficulty == 5
    assert analysis.key_numbers == ["3", "4"]
    assert analysis.final_answer == "7"
    assert analysis.questions == ["3和4是什么？"]


def test_analysis_difficulty_below_range_is_clamped():
    analysis = parse_analysis(json.dumps({"problem_text": "1+1", "difficulty": -2}))
    assert analysis.difficulty == 1


def test_analysis_non_numeric_difficulty_defaults():
    analysis = parse_analysis(json.dumps({"problem_text": "1+1", "difficulty": "hard"}))
    assert analysis.difficulty == 3


@pytest.mark.parametrize("text", [None, "", "I cannot read this photo", '{"difficulty": 2}'])
def test_unusable_analysis_yields_retake_placeholder(text):
    analysis = parse_analysis(text)
    assert analysis.needs_retake
    assert analysis.questions


# --- Dialogue -------------------------------------------------------------------

def test_dialogue_reply_with_fullwidth_punctuation():
    text = '{“feedback”：“想得很好！”，“nextQuestion”：“接下来呢？”，“isCorrect”：true}'
    reply = parse_dialogue_reply(text)
    assert reply.feedback == "想得很好！"
    assert reply.next_question == "接下来呢？"
    assert reply.is_correct is True


def test_dialogue_reply_blank_question_becomes_none():
    reply = parse_dialogue_reply('{"feedback": "好", "next_question": "  "}')
    assert reply.next_question is None


@pytest.mark.parametrize("text", ["not json", '{"feedback": "   "}', '["a list"]'])
def test_invalid_dialogue_reply_raises_invalid_output(text):
    with pytest.raises(CollaboratorError) as exc:
        parse_dialogue_reply(text)
    assert exc.value.error_type == "invalid_output"


# --- Report ---------------------------------------------------------------------

def _evaluation(**overrides) -> dict:
    data = {
        "score": 82,
        "level": "A+",
        "strengths": "认真思考",
        "thinkingAnalysis": {
            "logicalThinking": 4, "problemSolving": 3,
            "communication": 4, "creativity": 2,
        },
        "knowledgePoints": [{"name": "减法", "mastery": 80}],
        "nextSteps": ["练习两步运算"],
    }
    data.update(overrides)
    return data


def test_report_evaluation_aliases_and_level_derivation():
    evaluation = parse_report_evaluation(json.dumps(_evaluation(), ensure_ascii=False))
    assert evaluation.score == 82
    assert evaluation.level == "良好"
    assert evaluation.strengths == ["认真思考"]
    assert evaluation.thinking.logical_thinking == 4
    assert evaluation.knowledge_points[0].mastery == 80
    assert evaluation.next_steps == ["练习两步运算"]


@pytest.mark.parametrize("overrides", [
    {"score": 120},
    {"score": -1},
    {"strengths": []},
    {"thinkingAnalysis": {"logicalThinking": 9, "problemSolving": 3,
                          "communication": 3, "creativity": 3}},
])
def test_out_of_range_report_is_rejected(overrides):
    with pytest.raises(CollaboratorError) as exc:
        parse_report_evaluation(json.dumps(_evaluation(**overrides)))
    assert exc.value.error_type == "invalid_output"


def test_rejected_outputs_are_logged_as_warnings(caplog):
    caplog.set_level(logging.WARNING)
    with pytest.raises(CollaboratorError):
        parse_dialogue_reply("not json")
    with pytest.raises(CollaboratorError):
        parse_report_evaluation(json.dumps(_evaluation(score=120)))

    by_logger = {r.name: r for r in caplog.records}
    assert by_logger["mathcoach.services.dialogue_coach"].collaborator == "dialogue"
    assert by_logger["mathcoach.services.report_synthesizer"].collaborator == "report"
    assert "failed validation" in by_logger["mathcoach.services.report_synthesizer"].getMessage()
