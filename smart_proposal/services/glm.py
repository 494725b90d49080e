"""Z.ai GLM chat-completion client used for company analysis."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services.http import async_client
from smart_proposal.services.storage import timestamp_id
from smart_proposal.utils.json_text import extract_json_object

logger = get_logger("glm")

MAX_TOKENS = 4000
TEMPERATURE = 0.7

FREELANCE_HELPER_PROMPT = (
    "You are FreelanceHelper, an expert AI consultant specializing in freelance business intelligence "
    "and opportunity analysis. Your role is to analyze job opportunities and provide strategic insights "
    "for freelancers.\n\n"
    "When analyzing a company and job opportunity, provide a comprehensive analysis covering:\n\n"
    "1. COMPANY PROFILE: Industry, size, funding status, tech stack, recent news\n"
    "2. OPPORTUNITY INSIGHTS: Budget range, timeline, decision makers, pain points, success factors\n"
    "3. COMPETITIVE ANALYSIS: Competition level, advantages, differentiation opportunities\n"
    "4. RISK ASSESSMENT: Risk level, factors, mitigation strategies\n"
    "5. TOOL RECOMMENDATIONS: Which AI tools would be most valuable for this client\n\n"
    "Be specific, actionable, and business-focused. Format your response as structured JSON."
)

ANALYSIS_SCHEMA = """{
  "companyProfile": {
    "name": "string",
    "industry": "string",
    "size": "string",
    "fundingStatus": "string",
    "techStack": ["string"],
    "recentNews": [{"title": "string", "url": "string", "publishedAt": "ISO date", "source": "string", "summary": "string"}],
    "website": "string",
    "location": "string",
    "foundedYear": number,
    "employeeCount": "string"
  },
  "opportunityInsights": {
    "budgetRange": "string",
    "timelineExpectation": "string",
    "decisionMakers": ["string"],
    "painPoints": ["string"],
    "successFactors": ["string"],
    "projectComplexity": "low|medium|high",
    "urgency": "low|medium|high"
  },
  "competitiveAnalysis": {
    "competitorCount": number,
    "competitiveAdvantages": ["string"],
    "differentiationOpportunities": ["string"],
    "marketPosition": "string",
    "competitiveLandscape": "string"
  },
  "recommendedTools": [
    {
      "toolId": "string",
      "toolName": "string",
      "relevanceScore": number,
      "reasoning": "string",
      "priority": "high|medium|low",
      "estimatedValue": "string"
    }
  ],
  "riskAssessment": {
    "riskLevel": "low|medium|high",
    "riskFactors": ["string"],
    "mitigationStrategies": ["string"],
    "confidenceScore": number
  }
}"""


class GLMApiError(RuntimeError):
    pass


def build_analysis_prompt(form: Dict[str, Any]) -> str:
    lines = [
        FREELANCE_HELPER_PROMPT,
        "",
        f"COMPANY: {form.get('companyName', '')}",
        f"CONTACT: {form.get('personName', '')}",
        f"JOB DESCRIPTION: {form.get('jobDescription', '')}",
    ]
    if form.get("additionalContext"):
        lines.append(f"ADDITIONAL CONTEXT: {form['additionalContext']}")
    lines.append("")
    lines.append(
        "Analyze this opportunity and provide a comprehensive assessment. "
        "Return your analysis as a JSON object with this exact structure:"
    )
    lines.append("")
    lines.append(ANALYSIS_SCHEMA)
    return "\n".join(lines)


def create_fallback_analysis(form: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "analysisId": f"fallback-{int(time.time() * 1000)}",
        "analysisTimestamp": datetime.now(timezone.utc),
        "companyProfile": {
            "name": form.get("companyName", ""),
            "industry": "Unknown",
            "size": "Unknown",
            "fundingStatus": "Unknown",
            "techStack": [],
            "recentNews": [],
            "website": "",
            "location": "Unknown",
            "foundedYear": None,
            "employeeCount": "Unknown",
        },
        "opportunityInsights": {
            "budgetRange": "To be determined",
            "timelineExpectation": "To be determined",
            "decisionMakers": [form.get("personName", "")],
            "painPoints": ["Analysis unavailable - API error"],
            "successFactors": ["Manual analysis required"],
            "projectComplexity": "medium",
            "urgency": "medium",
        },
        "competitiveAnalysis": {
            "competitorCount": 0,
            "competitiveAdvantages": ["Manual analysis required"],
            "differentiationOpportunities": ["Manual analysis required"],
            "marketPosition": "Unknown",
            "competitiveLandscape": "Unknown",
        },
        "recommendedTools": [],
        "riskAssessment": {
            "riskLevel": "medium",
            "riskFactors": ["API analysis unavailable"],
            "mitigationStrategies": ["Conduct manual research", "Follow up with client directly"],
            "confidenceScore": 0.3,
        },
    }


def is_fallback(analysis: Dict[str, Any]) -> bool:
    return str(analysis.get("analysisId", "")).startswith("fallback-")


def message_content(data: Any) -> str:
    """Text of the first choice, raising :class:`GLMApiError` on any other shape."""
    choices = data.get("choices") if isinstance(data, dict) else None
    first = choices[0] if isinstance(choices, list) and choices else None
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        raise GLMApiError("Invalid response format from Z.ai API")
    content = message.get("content")
    if not isinstance(content, str) or not content:
        raise GLMApiError("Empty response from Z.ai API")
    return content


class GLMApiClient:
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else config.ZAI_API_KEY
        self.base_url = base_url or config.ZAI_API_URL
        self.model = model or config.ZAI_MODEL

    async def make_request(self, messages: List[Dict[str, str]], model: Optional[str] = None, **extra) -> Dict[str, Any]:
        payload = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
            "stream": False,
        }
        payload.update(extra)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "Accept-Language": "en-US,en;q=0.9",
        }
        try:
            async with async_client(timeout=config.ZAI_TIMEOUT) as client:
                response = await client.post(self.base_url, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise GLMApiError("Request timeout - Z.ai API took too long to respond") from exc
        except httpx.HTTPError as exc:
            raise GLMApiError(f"Z.ai API request failed: {exc}") from exc

        if response.status_code >= 400:
            message = response.reason_phrase
            try:
                message = response.json().get("error", {}).get("message") or message
            except (ValueError, AttributeError):
                pass
            raise GLMApiError(f"Z.ai API Error: {message}")
        try:
            return response.json()
        except ValueError as exc:
            raise GLMApiError("Invalid JSON response from Z.ai API") from exc

    async def analyze_company(self, form: Dict[str, Any]) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": FREELANCE_HELPER_PROMPT},
            {"role": "user", "content": build_analysis_prompt(form)},
        ]
        try:
            data = await self.make_request(messages)
            content = message_content(data)
            parsed = extract_json_object(content)
            if not isinstance(parsed, dict):
                raise GLMApiError("No valid JSON found in API response")
        except GLMApiError as exc:
            logger.warning("Company analysis failed, using fallback: %s", exc)
            return create_fallback_analysis(form)

        parsed["analysisTimestamp"] = datetime.now(timezone.utc)
        parsed["analysisId"] = timestamp_id("analysis")
        return parsed

    async def test_connection(self) -> Dict[str, Any]:
        started = time.monotonic()
        messages = [
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": 'Say "Connection test successful" and nothing else.'},
        ]
        try:
            message_content(await self.make_request(messages))
        except GLMApiError as exc:
            return {"success": False, "message": str(exc)}
        latency = int((time.monotonic() - started) * 1000)
        return {"success": True, "message": "Z.ai API connection successful", "latency": latency}

    def get_usage_stats(self) -> Dict[str, Any]:
        return {"model": self.model, "endpoint": self.base_url, "configured": bool(self.api_key)}
