"""Contextual deal writer.

Website intelligence, an executive communication profile and the caller's
offering are combined into one personalised proposal. Each of the three
steps degrades to templated content, so a proposal is always produced and
stored in ``proposals.json`` under a shareable id.
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from smart_proposal import config
from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations, scraper
from smart_proposal.services.analytics import increment_counter

logger = get_logger("deal_writer")

PROPOSALS_FILENAME = "proposals.json"
REQUIRED_FIELDS = ("companyUrl", "executiveName", "companyName", "offeringDetails", "proposalGoal")
FALLBACK_SIGNATURE = "[Your Name]"


class ProposalStoreError(Exception):
    def __init__(self, status_code: int, error: str):
        super().__init__(error)
        self.status_code = status_code
        self.error = error


def proposals_file() -> Path:
    return config.data_dir() / PROPOSALS_FILENAME


def load_proposals() -> List[Dict[str, Any]]:
    path = proposals_file()
    if not path.exists():
        raise ProposalStoreError(404, "Proposals file not found")
    try:
        proposals = json.loads(path.read_text(encoding="utf-8"))
    except ValueError:
        raise ProposalStoreError(500, "Invalid proposals data format")
    if not isinstance(proposals, list):
        raise ProposalStoreError(500, "Invalid proposals data structure")
    return proposals


def get_proposal(proposal_id: str) -> Dict[str, Any]:
    for proposal in load_proposals():
        if isinstance(proposal, dict) and proposal.get("id") == proposal_id:
            return proposal
    raise ProposalStoreError(404, "Proposal not found")


def save_proposal(record: Dict[str, Any]) -> bool:
    path = proposals_file()
    proposals: List[Any] = []
    if path.exists():
        try:
            proposals = json.loads(path.read_text(encoding="utf-8"))
        except ValueError as exc:
            logger.error("Error reading proposals file: %s", exc)
        if not isinstance(proposals, list):
            proposals = []
    else:
        logger.info("Proposals file not found, creating new one.")
    proposals.append(record)
    try:
        path.write_text(json.dumps(proposals, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        logger.error("Error saving proposal %s: %s", record.get("id"), exc)
        return False
    logger.info("Proposal saved with ID: %s", record.get("id"))
    return True


def ensure_protocol(url: str) -> str:
    if url.startswith(("http://", "https://")):
        return url
    return "https://" + url


def domain_from_url(url: str) -> str:
    domain = re.sub(r"^(?:https?://)?(?:www\.)?", "", url, flags=re.IGNORECASE)
    domain = domain.split("/")[0].split(":")[0]
    return domain[:1].upper() + domain[1:]


def fallback_website_data(url: str, description: str) -> Dict[str, Any]:
    domain = domain_from_url(url)
    return {
        "url": url,
        "title": domain,
        "description": description,
        "analysis": {
            "Company Name & Brand Identity": domain,
            "Products/Services Offered": "General business products/services",
            "Target Audience/Market": "Business professionals and organizations",
            "Company Mission/Values/About": "Delivering value to customers through quality products/services",
            "Unique Value Propositions": "Professional solutions tailored to customer needs",
            "Technologies Used": "Modern business technology solutions",
        },
        "usedFallback": True,
    }


async def analyze_website(url: str) -> Dict[str, Any]:
    target = ensure_protocol(url)
    try:
        return await scraper.scrape(target)
    except scraper.ScrapeError as exc:
        logger.warning("Website analysis returned status %s. Using fallback data.", exc.status_code)
        return fallback_website_data(
            target, "Website content could not be analyzed in detail. Using general information."
        )
    except Exception as exc:
        logger.error("Error in website analysis: %s", exc)
        return fallback_website_data(url, "Website content could not be analyzed. Proceeding with limited information.")


def fallback_executive_profile(executive_name: str, company_name: str) -> Dict[str, Any]:
    return {
        "profileSummary": (
            f"{executive_name} is a business professional at {company_name}. "
            "Limited information is available from public sources."
        ),
        "inferredStyle": "Professional and business-oriented communication style",
        "communicationTips": [
            "Focus on clear, concise communication",
            "Emphasize the business value of your offering",
            "Be respectful of their time",
            "Provide relevant case studies or examples",
            "Follow up appropriately after meetings",
        ],
        "preferencesAndTraits": {
            "data_orientation": {"score": 7, "description": "Likely values data-backed proposals and clear metrics"},
            "relationship_focus": {"score": 6, "description": "Balanced approach to relationships and business outcomes"},
            "decision_speed": {"score": 6, "description": "Makes reasonably timely decisions with adequate information"},
            "risk_tolerance": {"score": 5, "description": "Moderate approach to risk, looks for balanced solutions"},
            "communication_formality": {"score": 7, "description": "Generally formal in business communications"},
        },
        "discProfile": {
            "primaryType": "Conscientiousness",
            "secondaryType": "Dominance",
            "description": (
                "Likely values accuracy, quality, and expertise. "
                "May prefer detailed information and logical arguments."
            ),
            "strengths": [
                "Analytical thinking",
                "Attention to detail",
                "Process-oriented",
                "Problem-solving abilities",
                "Quality focus",
            ],
            "challenges": [
                "May overanalyze decisions",
                "Could be perceived as overly critical",
                "Might resist rapid change without sufficient data",
            ],
        },
        "insightsByContext": {
            "sales": (
                "Present clear value propositions with supporting evidence. "
                "Avoid overpromising and focus on realistic deliverables."
            ),
            "presentations": "Use well-organized, data-driven presentations with clear sections and supporting evidence.",
            "email": "Keep emails professional, concise, and well-structured with clear action items or questions.",
        },
        "usedFallback": True,
    }


def executive_prompt(executive_name: str, company_name: str) -> str:
    return f"""
Find publicly available professional information, focusing on LinkedIn if possible, for executive "{executive_name}" at company "{company_name}".

Analyze their profile summary, job titles, company information, and any recent public posts or articles.
Based ONLY on this public information, infer their likely professional communication style and personality traits.

Generate a concise report as a JSON object with these exact keys:
- profileSummary: String summarizing key career points/focus found
- inferredStyle: String describing likely communication preferences
- communicationTips: Array of 5 actionable tips for effectively engaging with this person
- preferencesAndTraits: Object containing communication preferences with scores (1-10) and descriptions
  - data_orientation: How strongly they prefer data/facts
  - relationship_focus: How important relationships are to them
  - decision_speed: How quickly they tend to make decisions
  - risk_tolerance: Their approach to risk-taking
  - communication_formality: How formal their communication style is
- discProfile: Object containing DISC personality profile assessment
  - primaryType: The dominant DISC type (Dominance, Influence, Steadiness, or Conscientiousness)
  - secondaryType: Secondary DISC type, if applicable
  - description: Detailed explanation of their DISC style and how it manifests
  - strengths: Array of 3-5 strengths associated with this DISC profile
  - challenges: Array of 3-5 potential challenges or blind spots
- insightsByContext: Object with keys representing different business contexts, values are insights
  - sales: Tips for selling to this executive
  - presentations: How to structure presentations for this executive
  - email: Tips for effective email communication

Format the response as a VALID JSON object with the structure described above.
"""


async def analyze_executive(executive_name: str, company_name: str) -> Dict[str, Any]:
    try:
        profile = await pollinations.chat_json(
            [{"role": "user", "content": executive_prompt(executive_name, company_name)}],
            model="searchgpt",
            temperature=0.7,
        )
    except pollinations.PollinationsError as exc:
        logger.warning("Executive profile analysis failed, using fallback: %s", exc)
        return fallback_executive_profile(executive_name, company_name)
    if not isinstance(profile, dict):
        logger.warning("Executive profile was not a JSON object, using fallback")
        return fallback_executive_profile(executive_name, company_name)
    return profile


def _first_sentence(text: Any, default: str) -> str:
    return text.split(".")[0] if isinstance(text, str) and text else default


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def proposal_prompt(
    website: Dict[str, Any], profile: Dict[str, Any], offering_details: str, format: str, proposal_goal: str
) -> str:
    analysis = _mapping(website.get("analysis"))
    traits = _mapping(profile.get("preferencesAndTraits"))
    disc = _mapping(profile.get("discProfile"))
    insights = _mapping(profile.get("insightsByContext"))

    def trait(name: str) -> str:
        value = traits.get(name)
        return (value or {}).get("description", "Unknown") if isinstance(value, dict) else "Unknown"

    return f"""
I need to write a highly personalized business proposal. I have analyzed the prospect's website and the executive's LinkedIn profile, and I need you to craft a compelling, persuasive proposal based on this data.

## WEBSITE INTELLIGENCE:
Company: {website.get("title") or "Unknown"}
Website: {website.get("url") or "Unknown"}
Description: {website.get("description") or "No description found"}

Company & Brand Identity: {analysis.get("Company Name & Brand Identity", "Unknown")}
Products/Services: {analysis.get("Products/Services Offered", "Unknown")}
Target Audience: {analysis.get("Target Audience/Market", "Unknown")}
Mission/Values: {analysis.get("Company Mission/Values/About", "Unknown")}
UVP: {analysis.get("Unique Value Propositions", "Unknown")}
Technologies: {analysis.get("Technologies Used", "Unknown")}

## EXECUTIVE PROFILE:
Name: {_first_sentence(profile.get("profileSummary"), "Unknown Executive")}
Profile Summary: {profile.get("profileSummary") or "Unknown"}
Communication Style: {profile.get("inferredStyle") or "Unknown"}
Primary DISC Type: {disc.get("primaryType", "Unknown")}
DISC Description: {disc.get("description", "Unknown")}

Communication Preferences:
- Data Orientation: {trait("data_orientation")}
- Relationship Focus: {trait("relationship_focus")}
- Decision Speed: {trait("decision_speed")}
- Risk Tolerance: {trait("risk_tolerance")}
- Communication Formality: {trait("communication_formality")}

Sales Approach: {insights.get("sales", "Unknown")}
Presentation Style: {insights.get("presentations", "Unknown")}

## MY OFFERING:
{offering_details}

## SPECIFIC PROPOSAL GOAL:
{proposal_goal}

## GUIDELINES:
1. Write a highly personalized {format} proposal addressed directly to this executive.
2. Tailor your tone, structure, and content to match their DISC profile and communication preferences.
3. Demonstrate understanding of their business challenges based on website data.
4. Connect my offering directly to their specific needs, pain points, and goals.
5. Use their preferred communication style (data-driven, relationship-focused, etc.).
6. Include specific insights from their company's website that show I've done my homework.
7. Keep the proposal concise but impactful, focusing on value and ROI.
8. Make it conversational but professional, matching their formality level.
9. Include a clear, specific call to action aligned with their decision-making style.
10. Ensure the proposal directly addresses the specific proposal goal provided above.

Format the proposal as a finished, ready-to-send document with appropriate sections. I should be able to use this proposal immediately without editing.
"""


def fallback_proposal(
    website: Dict[str, Any], profile: Dict[str, Any], offering_details: str, format: str, proposal_goal: str
) -> str:
    analysis = _mapping(website.get("analysis"))
    company_name = website.get("title") or analysis.get("Company Name & Brand Identity") or "your company"
    executive_name = _first_sentence(profile.get("profileSummary"), "Valued Executive")
    description = website.get("description")
    understanding = f"is {description}" if description else "is focused on delivering value to your customers"
    products = analysis.get("Products/Services Offered")
    offered = f"You offer {products}." if products else ""
    title = format[:1].upper() + format[1:]

    return f"""# {title} Proposal for {company_name}

Dear {executive_name},

## Introduction

I'm reaching out to discuss how our services can help address your business needs. After reviewing your company information, I believe there's a strong opportunity for us to collaborate.

## Our Understanding of Your Business

From our research, we understand that {company_name} {understanding}. {offered}

## Our Offering

{offering_details}

## How We Can Help Achieve Your Goals

Our primary goal is to: {proposal_goal}

Based on our understanding of your company, we believe we can provide significant value by:
- Delivering tailored solutions that address your specific business challenges
- Providing expertise and support throughout implementation
- Ensuring measurable results aligned with your business objectives

## Next Steps

I would welcome the opportunity to discuss this proposal in more detail. Please let me know if you're available for a brief call next week to explore how we might work together.

Thank you for considering our proposal. I look forward to the possibility of working with {company_name}.

Best regards,
{FALLBACK_SIGNATURE}
[Your Title]
[Contact Information]
"""


async def generate_proposal(
    website: Dict[str, Any], profile: Dict[str, Any], offering_details: str, format: str, proposal_goal: str
) -> str:
    prompt = proposal_prompt(website, profile, offering_details, format, proposal_goal)
    try:
        content = await pollinations.chat_completion(
            [{"role": "user", "content": prompt}], model="openai", temperature=0.7
        )
    except pollinations.PollinationsError as exc:
        logger.warning("Proposal generation failed, using fallback proposal: %s", exc)
        return fallback_proposal(website, profile, offering_details, format, proposal_goal)
    if not content:
        logger.warning("Empty proposal from Pollinations, using fallback proposal")
        return fallback_proposal(website, profile, offering_details, format, proposal_goal)
    return content


def missing_fields(payload: Dict[str, Any]) -> List[str]:
    return [field for field in REQUIRED_FIELDS if not str(payload.get(field) or "").strip()]


def analysis_steps(
    payload: Dict[str, Any], website: Dict[str, Any], profile: Dict[str, Any], proposal: str
) -> Dict[str, Any]:
    analysis = website.get("analysis") or {}
    goal = payload["proposalGoal"]
    return {
        "website": {
            "url": payload["companyUrl"],
            "success": bool(website) and not website.get("error"),
            "foundData": any(
                isinstance(value, str) and value and "Unknown" not in value for value in analysis.values()
            ),
            "usedFallback": bool(website.get("usedFallback")),
        },
        "executive": {
            "name": payload["executiveName"],
            "company": payload["companyName"],
            "success": bool(profile) and not profile.get("error"),
            "usedFallback": "Limited information is available" in str(profile.get("profileSummary") or ""),
        },
        "proposal": {
            "format": payload["format"],
            "goal": goal[:50] + ("..." if len(goal) > 50 else ""),
            "length": len(proposal),
            "usedFallback": FALLBACK_SIGNATURE in proposal,
        },
    }


async def write_deal(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Run the pipeline for a validated request and return the response body."""
    payload = {**payload, "format": payload.get("format") or "email"}

    website = await analyze_website(payload["companyUrl"])
    profile = await analyze_executive(payload["executiveName"], payload["companyName"])
    proposal = await generate_proposal(
        website, profile, payload["offeringDetails"], payload["format"], payload["proposalGoal"]
    )

    proposal_id = str(uuid.uuid4())
    timestamp = datetime.now(timezone.utc).isoformat()
    save_proposal(
        {
            "id": proposal_id,
            "timestamp": timestamp,
            "input": {field: payload[field] for field in (*REQUIRED_FIELDS, "format")},
            "websiteAnalysis": website,
            "executiveProfile": profile,
            "proposal": proposal,
        }
    )
    increment_counter("proposals_generated")

    return {
        "proposal": proposal,
        "websiteAnalysis": website,
        "executiveProfile": profile,
        "id": proposal_id,
        "shareableUrl": f"{config.APP_URL.rstrip('/')}/proposal/{proposal_id}",
        "generatedAt": timestamp,
        "analysisSteps": analysis_steps(payload, website, profile, proposal),
    }
