"""Collaborator Prompts — system prompts and user-message builders for the three model calls.

Invariants:
    - Every prompt asks for a single JSON object with snake_case keys
    - Builders are pure string formatting; no IO
    - The dialogue prompt never asks the tutor to reveal the final answer
"""

import json

ANALYSIS_SYSTEM = """你是一位经验丰富的小学数学老师。请识别图片中的数学题目并进行分析。

只返回一个 JSON 对象，不要包含其他文字，字段如下：
- problem_text: 题目原文
- grade_level: 适合的年级
- difficulty: 难度等级 (1-5 的整数)
- key_numbers: 题目中的关键数字 (字符串数组)
- key_relation: 题目的核心数量关系
- final_answer: 最终答案 (只写数值或最简结果)
- questions: 3 个循序渐进的苏格拉底式引导问题 (字符串数组)
- solution_steps: 解题步骤概要 (字符串数组)

如果图片中无法识别出数学题目，返回 {"problem_text": ""}。"""

ANALYSIS_USER = "请分析这张图片中的数学题。"

DIALOGUE_SYSTEM = """你是一位使用苏格拉底式教学法的小学数学老师。
规则：
1. 不要直接告诉学生答案
2. 先针对学生的回答给出亲切、鼓励性的反馈
3. 如果不是最后一轮，提出一个帮助学生前进一步的引导问题
4. 语言简洁，适合小学生

只返回一个 JSON 对象：
{"feedback": "对学生回答的反馈", "next_question": "下一个引导问题，最后一轮时为 null", "is_correct": true 或 false}"""

REPORT_SYSTEM = """你是一位小学数学教育评估专家。请根据学生与老师的完整对话和学习统计数据，生成学习报告。

只返回一个 JSON 对象：
{
  "score": 0-100 的整数,
  "level": "优秀" | "良好" | "及格" | "需要改进",
  "strengths": ["具体的优势点"],
  "improvements": ["具体的改进建议"],
  "thinking": {"logical_thinking": 1-5, "problem_solving": 1-5, "communication": 1-5, "creativity": 1-5},
  "knowledge_points": [{"name": "知识点", "mastery": 0-100, "description": "掌握情况"}],
  "suggestions": ["具体可操作的学习建议"],
  "next_steps": ["下一步学习计划"]
}"""


def _format_dialogue(dialogue: list[dict]) -> str:
    if not dialogue:
        return "（暂无对话）"
    lines = []
    for turn in dialogue:
        speaker = "学生" if turn.get("role") == "user" else "老师"
        lines.append(f"[第{turn.get('round')}轮] {speaker}：{turn.get('content', '')}")
    return "\n".join(lines)


def build_dialogue_message(
    *,
    problem_text: str,
    analysis: dict,
    dialogue: list[dict],
    current_round: int,
    total_rounds: int,
    answer: str,
) -> str:
    final = current_round >= total_rounds
    return (
        f"题目：{problem_text}\n"
        f"参考答案：{analysis.get('final_answer') or '未知'}\n"
        f"核心数量关系：{analysis.get('key_relation') or '未知'}\n\n"
        f"之前的对话：\n{_format_dialogue(dialogue)}\n\n"
        f"当前是第 {current_round} 轮，共 {total_rounds} 轮"
        f"{'（最后一轮，next_question 必须为 null）' if final else ''}。\n"
        f"学生的回答：{answer}"
    )


def build_report_message(
    *,
    problem_text: str,
    analysis: dict,
    dialogue: list[dict],
    stats: dict,
) -> str:
    return (
        f"题目：{problem_text}\n"
        f"题目分析：{json.dumps(analysis, ensure_ascii=False)}\n\n"
        f"完整对话：\n{_format_dialogue(dialogue)}\n\n"
        f"学习时长：{stats['learning_minutes']} 分钟\n"
        f"回答次数：{stats['total_answers']}\n"
        f"平均回答长度：{stats['avg_answer_length']} 字\n"
        f"参与度得分：{stats['participation_score']}%\n"
        f"思考深度得分：{stats['depth_score']}%"
    )
