from __future__ import annotations

import math
import re
from typing import Any, Dict, List

SCALE_OPTIONS = ["1", "2", "3", "4", "5"]


def _scale(question_id: str, category: str, text: str, labels: List[str]) -> Dict[str, Any]:
    return {
        "id": question_id,
        "category": category,
        "text": text,
        "type": "scale",
        "options": SCALE_OPTIONS,
        "labels": dict(zip(SCALE_OPTIONS, labels)),
    }


def _yesno(question_id: str, category: str, text: str) -> Dict[str, Any]:
    return {"id": question_id, "category": category, "text": text, "type": "yesno"}


QUESTIONS: List[Dict[str, Any]] = [
    _yesno("goal_clarity", "Strategy & Goals", "Are your AI implementation goals clearly documented and communicated?"),
    _yesno("budget_allocated", "Strategy & Goals", "Is there a dedicated budget allocated for AI tools and training?"),
    _scale(
        "leadership_buyin",
        "Strategy & Goals",
        "How strong is leadership buy-in for AI initiatives?",
        ["Very Low", "Low", "Moderate", "High", "Very High"],
    ),
    _scale(
        "strategy_alignment",
        "Strategy & Goals",
        "How closely is your AI strategy aligned with overall business objectives?",
        ["Not at all aligned", "Slightly aligned", "Moderately aligned", "Mostly aligned", "Completely aligned"],
    ),
    _scale(
        "data_quality",
        "Data Readiness",
        "How would you rate the quality and completeness of your customer data?",
        ["Very Poor", "Poor", "Average", "Good", "Excellent"],
    ),
    _yesno("data_governance", "Data Readiness", "Do you have clear data governance policies in place?"),
    {
        "id": "data_integration",
        "category": "Data Readiness",
        "text": "How easily can data be shared between your key marketing/sales systems?",
        "type": "radio",
        "options": ["Very Difficult", "Difficult", "Moderate", "Easy", "Very Easy"],
    },
    {
        "id": "data",
        "category": "Data Readiness",
        "text": "How much of your customer data is centralized and easily accessible?",
        "type": "radio",
        "options": ["Very Little", "Some", "Most", "Fully Centralized"],
    },
    _yesno("tools", "Tool Adoption", "Are you currently using any AI tools in your marketing or sales workflow?"),
    {
        "id": "tool_usage_freq",
        "category": "Tool Adoption",
        "text": "If using AI tools, how frequently are they utilized by the intended teams?",
        "type": "radio",
        "options": ["Rarely", "Occasionally", "Regularly", "Daily"],
    },
    _scale(
        "tool_satisfaction",
        "Tool Adoption",
        "How satisfied is your team with the current AI tools?",
        ["Very Dissatisfied", "Dissatisfied", "Neutral", "Satisfied", "Very Satisfied"],
    ),
    _yesno(
        "tool_evaluation",
        "Tool Adoption",
        "Do you have a process to regularly evaluate the effectiveness of your AI tools?",
    ),
    _scale(
        "familiarity",
        "Team Skills",
        "How familiar is your team with current AI marketing/sales tools?",
        ["Not at all familiar", "Slightly familiar", "Moderately familiar", "Very familiar", "Extremely familiar"],
    ),
    _yesno("team_training", "Team Skills", "Has your team received specific training on AI tools or concepts?"),
    _scale(
        "analytical_skills",
        "Team Skills",
        "How would you rate your team's ability to interpret data and AI-driven insights?",
        ["Very Low", "Low", "Moderate", "High", "Very High"],
    ),
    {
        "id": "skill_gap",
        "category": "Team Skills",
        "text": "What specific AI skill gaps do you need to address on your team?",
        "type": "textarea",
    },
    _yesno("kpis", "Process Integration", "Do you have clearly defined KPIs for your marketing/sales efforts?"),
    _yesno(
        "process_mapping",
        "Process Integration",
        "Have you mapped out the specific processes where AI will be integrated?",
    ),
    _yesno(
        "change_management",
        "Process Integration",
        "Is there a change management plan to handle the introduction of AI tools?",
    ),
    {
        "id": "bottleneck",
        "category": "Process Integration",
        "text": "What's the biggest bottleneck in your current sales process?",
        "type": "textarea",
    },
]

# Radio answers score by position in their option list.
RADIO_POINTS = {
    "data_integration": {"Very Difficult": 1, "Difficult": 2, "Moderate": 3, "Easy": 4, "Very Easy": 5},
    "data": {"Very Little": 1, "Some": 2, "Most": 3, "Fully Centralized": 4},
    "tool_usage_freq": {"Rarely": 1, "Occasionally": 2, "Regularly": 3, "Daily": 4},
}

RECOMMENDATIONS = {
    "Beginner": [
        "Focus on foundational AI education for your team.",
        "Identify 1-2 high-impact, low-complexity processes for an initial AI pilot.",
        "Prioritize improving data collection and organization.",
        "Explore introductory AI tools for tasks like content ideation or basic automation.",
        "Start with a small budget allocation specifically for AI experimentation.",
    ],
    "Intermediate": [
        "Expand AI tool usage to more team members and processes.",
        "Focus on integrating AI tools with your existing CRM and marketing platforms.",
        "Develop clear SOPs and best practices for AI tool usage.",
        "Invest in training to enhance data analysis and prompt engineering skills.",
        "Begin measuring ROI on existing AI implementations to justify further expansion.",
    ],
    "Advanced": [
        "Explore advanced AI applications like hyper-personalization and predictive analytics.",
        "Automate complex workflows using multi-step AI processes.",
        "Focus on optimizing AI model performance and ROI tracking.",
        "Establish an internal AI 'Center of Excellence' to share knowledge and drive innovation.",
        "Consider developing custom AI solutions for your unique business challenges.",
    ],
}

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _scale_points(answer: Any) -> int:
    if answer is None or isinstance(answer, bool):
        return 0
    # leading integer, so "3.5" and "4 stars" both count
    match = _LEADING_INT.match(str(answer))
    if not match:
        return 0
    value = int(match.group(1))
    return value if 1 <= value <= 5 else 0


def question_points(question: Dict[str, Any], answer: Any) -> tuple:
    """Return ``(points, max_points)`` for one answered question."""
    kind = question["type"]
    if kind == "yesno":
        return (2 if answer is True else 0), 2
    if kind == "scale":
        return _scale_points(answer), 5
    if kind == "radio":
        mapping = RADIO_POINTS.get(question["id"], {})
        points = mapping.get(answer, 0) if isinstance(answer, str) else 0
        return points, len(question.get("options") or [])
    if kind == "textarea":
        return (1 if isinstance(answer, str) and answer.strip() else 0), 1
    return 0, 0


def calculate_score(answers: Dict[str, Any], questions: List[Dict[str, Any]] = QUESTIONS) -> Dict[str, int]:
    total = maximum = 0
    for question in questions:
        points, max_points = question_points(question, answers.get(question["id"]))
        total += points
        maximum += max_points
    # half-up, not banker's rounding
    percent = int(math.floor(total / maximum * 100 + 0.5)) if maximum else 0
    return {"scorePercent": percent, "totalPoints": total, "maxPoints": maximum}


def get_score_category(score_percent: float) -> str:
    if score_percent <= 33:
        return "Beginner"
    if score_percent <= 66:
        return "Intermediate"
    return "Advanced"


def get_recommendations(score_percent: float) -> List[str]:
    return RECOMMENDATIONS[get_score_category(score_percent)]
