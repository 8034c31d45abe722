"""Feedback Templates — fixed Chinese copy used by the deterministic fallbacks.

Invariants:
    - Pure data, no logic
    - Every list is non-empty (fallbacks index into them)
"""

DEFAULT_FIRST_QUESTION = "请告诉我你对这道题的理解？"

GUIDANCE_QUESTIONS = (
    "你能先找出题目中的关键信息吗？",
    "这道题要求我们计算什么？",
    "你觉得应该用什么方法来解决这个问题？",
    "让我们一步一步来，第一步应该做什么？",
    "你能画个图或者列个式子来帮助思考吗？",
)

# Dialogue fallback
CORRECT_OPENING = "太棒了！你的答案是正确的！"
CORRECT_SEEN = "老师看到你得出了 {answer}。"
CORRECT_COMPLETE = "你的解题过程很完整，思路清晰，继续保持！"
CORRECT_ADD_STEPS = "下次可以试着写出更详细的解题步骤哦！"
INCORRECT_OPENING = "你的想法很有意思！不过答案还需要再仔细想想。"
INCORRECT_SHOW_WORK = "可以试着写出你的思考过程，这样老师能更好地帮助你。"
INCORRECT_CHECK_CALC = "老师看到你已经在计算了，这是个好开始！"
INCORRECT_USE_NUMBERS = "你的思路不错，现在试着用数字来验证一下你的想法。"
CLOSING_REMARK = "这道题的学习就到这里，我们来看看你的学习报告吧！"

REFLECT_QUESTION = "你能说说自己是怎么一步步得到这个答案的吗？"
EXPLAIN_THINKING_QUESTION = "你能告诉老师，你是怎么想这道题的吗？"
CHECK_STEPS_QUESTION = "你能检查一下计算步骤，看看哪里可能需要调整吗？"

# Report fallback
STRENGTH_PARTICIPATION = "学习参与度很高，积极回答问题"
IMPROVE_PARTICIPATION = "可以更积极地参与讨论，多表达自己的想法"
STRENGTH_DEPTH = "回答内容较为详细，思考比较深入"
IMPROVE_DEPTH = "可以尝试更详细地解释自己的思路"
STRENGTH_EFFICIENCY = "学习效率较高，能够快速理解问题"
IMPROVE_EFFICIENCY = "可以提高学习效率，更快地抓住问题要点"
DEFAULT_STRENGTH = "认真完成了学习任务"
DEFAULT_IMPROVEMENT = "继续保持学习的积极性"

DEFAULT_KNOWLEDGE_POINT = "数学基础"
KNOWLEDGE_DESCRIPTION = "通过本次学习，对相关知识点有了{level}的掌握"

REPORT_SUGGESTIONS = (
    "继续保持学习的积极性和好奇心",
    "多练习类似的题目来巩固知识",
    "尝试用不同的方法解决同一个问题",
    "注意仔细审题，理解题目要求",
)

REPORT_NEXT_STEPS = (
    "复习本次学习的相关知识点",
    "寻找更多同类型的练习题",
    "培养独立思考和解决问题的能力",
    "定期回顾和总结学习内容",
)

# Analysis placeholder (unreadable photo)
RETAKE_PROBLEM_TEXT = "题目识别失败，请重新拍照"
RETAKE_QUESTIONS = (
    "你能告诉我这道题在问什么吗？",
    "你觉得解决这道题需要用到什么数学知识？",
    "你有什么想法来解决这个问题？",
)
RETAKE_SOLUTION_STEPS = ("理解题意", "分析数据", "选择方法", "计算求解", "检验答案")
