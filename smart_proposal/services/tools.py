"""Sales tools callable from chat: executive persona, ICP builder and website scanner."""

from __future__ import annotations

import copy
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations, scraper, search
from smart_proposal.services.deal_writer import ensure_protocol

logger = get_logger("tools")

AVAILABLE_TOOLS: List[Dict[str, Any]] = [
    {
        "name": "Website Intelligence Scanner",
        "description": "Analyze a website to extract business intelligence and insights",
        "triggerPhrases": ["analyze website", "scan website", "website intelligence", "website analysis"],
        "requiredParameters": [
            {"name": "url", "label": "Website URL", "type": "url", "placeholder": "https://example.com", "required": True},
        ],
        "apiEndpoint": "/api/tools/website-scanner",
    },
    {
        "name": "Executive Persona",
        "description": "Generate an executive persona based on name, title, and company",
        "triggerPhrases": ["executive persona", "create executive profile", "analyze executive"],
        "requiredParameters": [
            {"name": "name", "label": "Executive Name", "type": "text", "placeholder": "John Smith", "required": True},
            {"name": "title", "label": "Title", "type": "text", "placeholder": "CEO", "required": True},
            {"name": "company", "label": "Company", "type": "text", "placeholder": "Acme Inc", "required": True},
        ],
        "apiEndpoint": "/api/tools/executive-persona",
    },
    {
        "name": "ICP Builder",
        "description": "Build ideal customer profiles from successful customer examples",
        "triggerPhrases": ["icp builder", "ideal customer profile", "customer analysis", "build icp"],
        "requiredParameters": [
            {
                "name": "customers",
                "label": "Customer Examples",
                "type": "textarea",
                "placeholder": "Jane Doe - Example Corp\nJohn Smith - TechCorp Inc",
                "required": True,
            },
        ],
        "apiEndpoint": "/api/tools/icp-builder",
    },
]

URL_RE = re.compile(r"https?://[^\s]+")

ICP_SYSTEM_PROMPT = (
    "You are an expert sales strategist and customer intelligence analyst. Always respond with valid JSON only."
)

FALLBACK_ICP = {
    "customerPatterns": {
        "demographics": [
            "Mid-market companies with 50-500 employees",
            "Technology-forward organizations",
            "Companies in growth phase",
        ],
        "psychographics": [
            "Innovation-driven leadership",
            "Results-oriented culture",
            "Value efficiency and automation",
        ],
        "behaviors": [
            "Research solutions thoroughly before buying",
            "Prefer proven technologies with strong support",
            "Make decisions based on ROI and business impact",
        ],
        "painPoints": [
            "Manual processes slowing growth",
            "Difficulty scaling operations",
            "Need for better data insights",
        ],
    },
    "idealProfile": {
        "companySize": "50-500 employees",
        "industry": ["Technology", "Professional Services", "SaaS"],
        "revenue": "$5M-$50M annual revenue",
        "geography": ["North America", "Europe"],
        "decisionMakers": ["CEO", "CTO", "VP of Operations"],
    },
    "buyingSignals": {
        "triggers": ["Rapid company growth", "New funding rounds", "Technology modernization initiatives"],
        "timing": [
            "Q1 and Q3 budget planning cycles",
            "After funding announcements",
            "During digital transformation projects",
        ],
        "channels": [
            "LinkedIn and professional networks",
            "Industry conferences and events",
            "Referrals from existing customers",
        ],
    },
    "recommendations": {
        "prospecting": [
            "Target companies that recently announced funding",
            "Focus on fast-growing companies in target industries",
            "Leverage LinkedIn Sales Navigator for precise targeting",
        ],
        "messaging": [
            "Lead with ROI and efficiency benefits",
            "Share case studies from similar companies",
            "Emphasize scalability and growth enablement",
        ],
        "channels": [
            "LinkedIn outreach to decision makers",
            "Industry-specific conferences and events",
            "Referral programs with existing customers",
        ],
        "timing": [
            "Early in budget cycles (Q1, Q3)",
            "Within 30 days of funding announcements",
            "During known growth phases",
        ],
    },
    "summary": (
        "Based on the customer analysis, your ideal customers are mid-market, technology-forward companies in "
        "growth phases with 50-500 employees and $5M-$50M in annual revenue. They value innovation, efficiency, "
        "and proven solutions that can scale with their business. Decision makers sit in C-suite and VP roles "
        "and prioritize ROI and business impact. Reach them during budget planning cycles or growth phases, "
        "leading with efficiency and scalability benefits and using professional networks and referrals for "
        "warm introductions."
    ),
}


def detect_tool_request(message: str) -> Optional[Dict[str, Any]]:
    normalized = (message or "").lower()
    for tool in AVAILABLE_TOOLS:
        if any(phrase.lower() in normalized for phrase in tool["triggerPhrases"]):
            return tool
    return None


def extract_parameters(message: str, tool: Dict[str, Any]) -> Dict[str, str]:
    """Pull ``url`` and ``name: value`` style parameters out of a chat message."""
    params: Dict[str, str] = {}
    for param in tool["requiredParameters"]:
        if param["type"] == "url":
            match = URL_RE.search(message)
            if match:
                params[param["name"]] = match.group(0)
        match = re.search(rf"{re.escape(param['name'])}s?:\s*([^,\n]+)", message, re.IGNORECASE)
        if match:
            params[param["name"]] = match.group(1).strip()
    return params


def has_all_required_parameters(params: Dict[str, str], tool: Dict[str, Any]) -> bool:
    return all(
        (params.get(param["name"]) or "").strip()
        for param in tool["requiredParameters"]
        if param.get("required", True)
    )


def create_tool_result(
    tool_name: str,
    content: Any,
    summary: str,
    parameters: Optional[Dict[str, Any]] = None,
    url: Optional[str] = None,
) -> Dict[str, Any]:
    result_id = str(uuid.uuid4())
    return {
        "id": result_id,
        "toolName": tool_name,
        "url": url,
        "content": content,
        "summary": summary,
        "parameters": parameters,
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "shareUrl": f"/shared/tool-result/{result_id}",
    }


async def executive_research(name: str, company: str) -> Dict[str, Any]:
    executive = await search.web_search(f'"{name}" "{company}" executive CEO founder LinkedIn')
    company_data = await search.web_search(f'"{company}" company business about')
    news = await search.news_search(f'"{name}" "{company}"')
    return {
        "organic": executive["organic"],
        "knowledgeGraph": executive["knowledgeGraph"],
        "companyInfo": company_data["organic"],
        "companyKnowledgeGraph": company_data["knowledgeGraph"],
        "news": news,
        "relatedSearches": executive["relatedSearches"],
    }


def build_persona(name: str, title: str, company: str, research: Dict[str, Any]) -> Dict[str, Any]:
    organic = research.get("organic") or []
    knowledge_graph = research.get("knowledgeGraph") or {}
    company_info = research.get("companyInfo") or []
    company_graph = research.get("companyKnowledgeGraph") or {}
    news = research.get("news") or []

    background = (
        (organic[0].get("snippet") if organic else None)
        or knowledge_graph.get("description")
        or f"{name} serves as {title} at {company}. Professional background information available from search results."
    )
    first_company_snippet = company_info[0].get("snippet") if company_info else None
    company_description = (
        company_graph.get("description") or first_company_snippet or f"{company} - Professional services organization"
    )
    recent_news = [
        {"title": item.get("title"), "snippet": item.get("snippet") or item.get("link"), "date": item.get("date") or "Recent"}
        for item in news[:3]
    ]
    industry = company_graph.get("type") or (
        "Technology" if first_company_snippet and "technology" in first_company_snippet else "Business Services"
    )

    return {
        "persona": {
            "name": name,
            "title": title,
            "company": company,
            "background": background,
            "professional_summary": f"{name} is {title} at {company}. {background}",
            "search_results_found": len(organic),
            "news_coverage": len(recent_news),
            "has_knowledge_graph": bool(knowledge_graph),
            "recent_news": recent_news,
            "related_searches": [item.get("query") for item in (research.get("relatedSearches") or [])[:5]],
        },
        "company_info": {
            "name": company,
            "description": company_description,
            "industry": industry,
            "knowledge_graph_available": bool(company_graph),
            "website": company_graph.get("website") or "",
            "search_results_found": len(company_info),
        },
        "research_metadata": {
            "executive_search_results": len(organic),
            "company_search_results": len(company_info),
            "news_articles_found": len(news),
            "has_executive_knowledge_graph": bool(knowledge_graph),
            "has_company_knowledge_graph": bool(company_graph),
            "data_source": "serper_api" if config.SERPER_API_KEY else "duckduckgo",
            "search_timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }


async def executive_persona(name: str, title: str, company: str) -> Dict[str, Any]:
    research = await executive_research(name, company)
    persona = build_persona(name, title, company, research)
    meta = persona["research_metadata"]
    executive_graph = "Executive profile available" if meta["has_executive_knowledge_graph"] else "Limited executive data"
    company_graph = "Company profile available" if meta["has_company_knowledge_graph"] else "Limited company data"
    summary = "\n".join(
        [
            f"Executive Research: {name}, {title} at {company}",
            "",
            f"Search Results: {meta['executive_search_results']} executive results, "
            f"{meta['company_search_results']} company results",
            f"News Coverage: {meta['news_articles_found']} recent articles found",
            f"Knowledge Graph: {executive_graph}, {company_graph}",
            "",
            f"Background: {persona['persona']['background']}",
            f"Company: {persona['company_info']['description']}",
            f"Industry: {persona['company_info']['industry']}",
        ]
    )
    return create_tool_result("Executive Persona", persona, summary, {"name": name, "title": title, "company": company})


def parse_customers(customers: str) -> List[str]:
    return [line.strip() for line in (customers or "").split("\n") if line.strip()]


def icp_prompt(customer_list: List[str]) -> str:
    examples = "\n".join(f"{index}. {customer}" for index, customer in enumerate(customer_list, start=1))
    return f"""You are an expert sales strategist and customer intelligence analyst. Analyze the following customer examples to build a comprehensive Ideal Customer Profile (ICP).

Customer Examples:
{examples}

Based on these customers, provide a detailed analysis in the following JSON format:

{{
  "customerPatterns": {{
    "demographics": ["specific demographic patterns you identify"],
    "psychographics": ["personality traits, values, motivations"],
    "behaviors": ["buying behaviors, usage patterns, decision-making styles"],
    "painPoints": ["common problems these customers face"]
  }},
  "idealProfile": {{
    "companySize": "specific size range (e.g., 50-200 employees)",
    "industry": ["primary industries"],
    "revenue": "revenue range",
    "geography": ["geographic regions"],
    "decisionMakers": ["typical decision maker roles"]
  }},
  "buyingSignals": {{
    "triggers": ["events that trigger buying decisions"],
    "timing": ["when they typically buy"],
    "channels": ["where they research and buy"]
  }},
  "recommendations": {{
    "prospecting": ["specific strategies for finding similar prospects"],
    "messaging": ["key messages that resonate"],
    "channels": ["best channels to reach them"],
    "timing": ["optimal timing for outreach"]
  }},
  "summary": "A comprehensive 2-3 paragraph executive summary of the ideal customer profile and key insights"
}}

Focus on actionable insights that will help sales teams identify and engage similar high-value prospects. Be specific and practical in your recommendations.
"""


async def build_icp(customer_list: List[str]) -> Dict[str, Any]:
    messages = [
        {"role": "system", "content": ICP_SYSTEM_PROMPT},
        {"role": "user", "content": icp_prompt(customer_list)},
    ]
    try:
        analysis = await pollinations.chat_json(messages, model="openai")
    except pollinations.PollinationsError as exc:
        logger.warning("ICP analysis failed, using template: %s", exc)
        return copy.deepcopy(FALLBACK_ICP)
    if not isinstance(analysis, dict):
        logger.warning("ICP analysis returned %s, using template", type(analysis).__name__)
        return copy.deepcopy(FALLBACK_ICP)
    return analysis


async def website_scanner(url: str) -> Dict[str, Any]:
    data = await scraper.scrape(ensure_protocol(url.strip()))
    analysis = data.get("analysis") or {}
    lines = [
        f"Website: {data['url']}",
        f"Title: {data.get('title') or 'Unknown'}",
        f"Description: {data.get('description') or 'No description found'}",
        f"Links found: {len(data.get('links') or [])}, images found: {len(data.get('images') or [])}",
    ]
    for section, text in list(analysis.items())[:3]:
        lines.append(f"{section}: {text}")
    return create_tool_result("Website Intelligence Scanner", data, "\n".join(lines), {"url": url}, url=data["url"])
