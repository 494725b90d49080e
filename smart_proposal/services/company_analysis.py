from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from smart_proposal.logging_config import get_logger
from smart_proposal.services.analytics import increment_counter
from smart_proposal.services.glm import GLMApiClient, is_fallback
from smart_proposal.services.storage import CompanyAnalysisStorageManager, company_analysis_storage

logger = get_logger("company_analysis")

CACHE_TTL = timedelta(hours=24)

COMPLEXITY_KEYWORDS = {
    "high": ["complex", "advanced", "sophisticated", "enterprise", "scalable", "ai", "machine learning"],
    "low": ["simple", "basic", "straightforward", "minimal"],
}
URGENCY_KEYWORDS = {
    "high": ["asap", "urgent", "immediately", "rush", "quick"],
    "low": ["flexible", "when ready", "no rush", "long term"],
}
HIGH_RISK_KEYWORDS = ["urgent", "asap", "cheap", "budget", "quick", "rush"]
MEDIUM_RISK_KEYWORDS = ["complex", "advanced", "enterprise", "scalable"]
LOW_RISK_KEYWORDS = ["flexible", "long term", "professional", "quality"]

TOOL_RULES = [
    (
        ["website", "web", "landing"],
        [
            {
                "toolId": "website_scanner",
                "toolName": "Website Intelligence Scanner",
                "relevanceScore": 0.9,
                "reasoning": "Job involves website work - tool can analyze current site and competitors",
                "priority": "high",
                "estimatedValue": "High - provides competitive intelligence and technical insights",
            }
        ],
    ),
    (
        ["ai", "artificial intelligence", "machine learning"],
        [
            {
                "toolId": "pollinations-assistant",
                "toolName": "AI Chat Assistant",
                "relevanceScore": 0.95,
                "reasoning": "AI-focused project - demonstrate AI capabilities directly",
                "priority": "high",
                "estimatedValue": "Very High - showcases AI expertise relevant to project",
            }
        ],
    ),
    (
        ["brand", "design", "logo", "identity"],
        [
            {
                "toolId": "brand_foundation",
                "toolName": "Brand Foundation Builder",
                "relevanceScore": 0.85,
                "reasoning": "Branding project - tool helps establish brand strategy",
                "priority": "high",
                "estimatedValue": "High - directly relevant to brand development needs",
            },
            {
                "toolId": "image_generator",
                "toolName": "Smart Image Generator",
                "relevanceScore": 0.8,
                "reasoning": "Visual content needs - tool can generate brand assets",
                "priority": "medium",
                "estimatedValue": "Medium - useful for creating visual mockups and concepts",
            },
        ],
    ),
    (
        ["executive", "ceo", "leadership", "c-suite"],
        [
            {
                "toolId": "executive_persona",
                "toolName": "Executive Persona Analyzer",
                "relevanceScore": 0.9,
                "reasoning": "Executive-level project - tool provides leadership insights",
                "priority": "high",
                "estimatedValue": "High - helps understand decision-maker psychology",
            }
        ],
    ),
    (
        ["content", "marketing", "copy"],
        [
            {
                "toolId": "voiceover_generator",
                "toolName": "Voice Synthesis Studio",
                "relevanceScore": 0.7,
                "reasoning": "Content creation project - tool adds multimedia capabilities",
                "priority": "medium",
                "estimatedValue": "Medium - enhances content with professional audio",
            }
        ],
    ),
    (
        ["customer", "audience", "target", "user"],
        [
            {
                "toolId": "icp_builder",
                "toolName": "ICP Builder",
                "relevanceScore": 0.85,
                "reasoning": "Customer-focused project - tool helps define target audience",
                "priority": "high",
                "estimatedValue": "High - essential for understanding target market",
            }
        ],
    ),
]


def _mentions(text: str, keywords: List[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def extract_job_insights(job_description: str) -> Dict[str, str]:
    text = job_description.lower()
    if _mentions(text, COMPLEXITY_KEYWORDS["high"]):
        complexity = "high"
    elif _mentions(text, COMPLEXITY_KEYWORDS["low"]):
        complexity = "low"
    else:
        complexity = "medium"
    if _mentions(text, URGENCY_KEYWORDS["high"]):
        urgency = "high"
    elif _mentions(text, URGENCY_KEYWORDS["low"]):
        urgency = "low"
    else:
        urgency = "medium"
    return {"projectComplexity": complexity, "urgency": urgency}


def generate_tool_recommendations(job_description: str) -> List[Dict[str, Any]]:
    text = job_description.lower()
    recommendations: List[Dict[str, Any]] = []
    for keywords, tools in TOOL_RULES:
        if _mentions(text, keywords):
            recommendations.extend(dict(tool) for tool in tools)
    return recommendations


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


def calculate_risk(analysis: Dict[str, Any], job_description: str) -> Dict[str, Any]:
    current = analysis.get("riskAssessment")
    current = current if isinstance(current, dict) else {}
    factors = current.get("riskFactors")
    factors = list(factors) if isinstance(factors, list) else []
    strategies = current.get("mitigationStrategies")
    strategies = list(strategies) if isinstance(strategies, list) else []
    text = job_description.lower()
    score = 0.0

    for keyword in HIGH_RISK_KEYWORDS:
        if keyword not in text:
            continue
        score += 0.2
        if keyword in ("urgent", "asap"):
            factors.append("Tight timeline pressure")
            strategies.append("Set clear expectations about realistic timelines")
        if keyword in ("cheap", "budget"):
            factors.append("Budget constraints indicated")
            strategies.append("Emphasize value over cost, provide tiered pricing")

    for keyword in MEDIUM_RISK_KEYWORDS:
        if keyword in text:
            score += 0.1
            factors.append("Complex project requirements")
            strategies.append("Break project into phases, ensure clear specifications")

    for keyword in LOW_RISK_KEYWORDS:
        if keyword in text:
            score -= 0.1

    # sums of tenths drift, e.g. 0.2 + 0.1 > 0.3
    score = round(score, 2)
    if score <= 0.3:
        level = "low"
    elif score <= 0.6:
        level = "medium"
    else:
        level = "high"

    return {
        "riskLevel": level,
        "riskFactors": _unique(factors),
        "mitigationStrategies": _unique(strategies),
        "confidenceScore": round(max(0.1, min(1.0, 1 - score)), 2),
    }


class CompanyAnalysisEngine:
    """Runs a company analysis end to end, reporting progress as it goes.

    ``progress_callback`` receives dicts with ``stage``, ``message``,
    ``progress`` (0-100) and ``timestamp``.
    """

    def __init__(
        self,
        progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None,
        client: Optional[GLMApiClient] = None,
        storage: Optional[CompanyAnalysisStorageManager] = None,
    ):
        self.progress_callback = progress_callback
        self.client = client or GLMApiClient()
        self.storage = storage or company_analysis_storage

    def update_progress(self, stage: str, message: str, progress: int) -> None:
        update = {"stage": stage, "message": message, "progress": progress, "timestamp": datetime.now(timezone.utc)}
        if self.progress_callback:
            self.progress_callback(update)
        logger.info("[Analysis] %s: %s (%s%%)", stage, message, progress)

    def find_recent(self, company_name: str) -> Optional[Dict[str, Any]]:
        now = datetime.now(timezone.utc)
        for analysis in self.storage.get_by_company(company_name):
            if is_fallback(analysis):
                continue
            stamp = analysis.get("analysisTimestamp")
            if isinstance(stamp, datetime) and now - stamp < CACHE_TTL:
                return analysis
        return None

    async def analyze_company(self, form: Dict[str, Any]) -> Dict[str, Any]:
        try:
            self.update_progress("initializing", "Starting company analysis...", 0)
            if not all(str(form.get(field) or "").strip() for field in ("companyName", "personName", "jobDescription")):
                raise ValueError(
                    "Missing required fields: company name, person name, and job description are required"
                )

            self.update_progress("researching", "Gathering company intelligence...", 20)
            cached = self.find_recent(form["companyName"])
            if cached:
                self.update_progress("complete", "Using recent analysis from cache", 100)
                return cached

            self.update_progress("analyzing", "AI analyzing opportunity with GLM 4.5 Flash...", 40)
            analysis = await self.client.analyze_company(form)

            self.update_progress("processing", "Processing and structuring results...", 80)
            enhanced = self.enhance_analysis(analysis, form)

            self.update_progress("processing", "Saving analysis results...", 90)
            saved = self.storage.save(enhanced)
            increment_counter("analyses")
            if is_fallback(saved):
                increment_counter("fallback_analyses")

            self.update_progress("complete", "Company analysis complete!", 100)
            return saved
        except Exception as exc:
            self.update_progress("error", f"Analysis failed: {exc}", 0)
            raise

    def enhance_analysis(self, analysis: Dict[str, Any], form: Dict[str, Any]) -> Dict[str, Any]:
        job_description = form.get("jobDescription", "")
        insights = analysis.get("opportunityInsights")
        insights = {**(insights if isinstance(insights, dict) else {}), **extract_job_insights(job_description)}
        tools = analysis.get("recommendedTools")
        tools = (tools if isinstance(tools, list) else []) + generate_tool_recommendations(job_description)
        return {
            **analysis,
            "opportunityInsights": insights,
            "recommendedTools": tools,
            "riskAssessment": calculate_risk(analysis, job_description),
        }

    def get_analysis_stats(self) -> Dict[str, Any]:
        analyses = self.storage.get_recent(100)
        recent = self.storage.get_recent(30)
        confidences = [
            float((analysis.get("riskAssessment") or {}).get("confidenceScore") or 0) for analysis in analyses
        ]
        average = sum(confidences) / len(confidences) if confidences else 0
        industries = Counter((analysis.get("companyProfile") or {}).get("industry", "Unknown") for analysis in analyses)
        return {
            "totalAnalyses": len(analyses),
            "recentAnalyses": len(recent),
            "averageConfidenceScore": round(average, 2),
            "topIndustries": [industry for industry, _ in industries.most_common(5)],
        }
