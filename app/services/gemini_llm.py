"""
Gemini LLM Service
==================

Integration with Google Gemini via LangChain for:
- Journal sentiment and needs analysis
- Personal relationship insights
- Anonymized partner suggestions
- Cycle-phase partner suggestions

Every method returns ``None`` when the model is unavailable or replies with
something unusable; callers fall back to rule-based output.
"""

import json
import logging
from typing import Any, Optional

from app.config import settings
from app.services.content_filter import filtering_guidelines

logger = logging.getLogger(__name__)


STAGE_GUIDANCE = {
    "single": "Focus on self-development and preparing for future relationships",
    "new": "Focus on building trust, establishing communication patterns, and learning about each other",
    "developing": "Focus on deepening intimacy, navigating conflicts constructively, and aligning future goals",
    "established": "Focus on maintaining connection, managing routine, and continuing growth together",
    "longterm": "Focus on rekindling romance, navigating life changes, and celebrating your journey together",
}

RELATIONSHIP_SUGGESTION_TYPES = (
    "quality_time",
    "words_of_affirmation",
    "physical_touch",
    "acts_of_service",
    "receiving_gifts",
    "emotional_support",
    "communication",
    "stress_support",
)

_TYPE_CHOICES = "|".join(RELATIONSHIP_SUGGESTION_TYPES)

_RELATIONSHIP_SUGGESTION_KEYS = (
    "suggestion_type",
    "suggestion_text",
    "anonymized_context",
    "priority_score",
    "confidence_score",
    "source_need_intensity",
)


def _strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
    return content.strip()


def _join(values: Optional[list], sep: str = ", ", default: str = "unknown") -> str:
    return sep.join(str(v) for v in values) if values else default


class GeminiLLMService:
    """
    Service for LLM operations using Google Gemini via LangChain.

    Features:
    - Journal sentiment analysis
    - Relationship-aware insight generation
    - Privacy-preserving partner suggestions
    """

    def __init__(self):
        self.api_key = settings.GOOGLE_GEMINI_API_KEY
        self.model_name = settings.GEMINI_MODEL
        self._llm = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def llm(self):
        """Get or create LLM instance."""
        if self._llm is None:
            if not self.api_key:
                raise ValueError(
                    "Gemini API not configured. "
                    "Set GOOGLE_GEMINI_API_KEY environment variable."
                )

            from langchain_google_genai import ChatGoogleGenerativeAI

            self._llm = ChatGoogleGenerativeAI(
                model=self.model_name,
                google_api_key=self.api_key,
                temperature=0.7,
                max_tokens=2048,
                timeout=30,
                max_retries=2,
            )

        return self._llm

    async def _invoke_json(self, prompt: str, purpose: str) -> Optional[Any]:
        """Run ``prompt`` and parse the reply as JSON, ``None`` on any failure."""
        if not self.is_configured:
            return None

        try:
            response = await self.llm.ainvoke(prompt)
            return json.loads(_strip_fences(response.content))
        except json.JSONDecodeError as e:
            logger.error("JSON parse error in %s: %s", purpose, e)
            return None
        except Exception as e:
            logger.error("Gemini %s error: %s", purpose, e)
            return None

    # ── Journal analysis ──────────────────────────────────────────

    async def analyze_journal_sentiment(self, content: str) -> Optional[dict]:
        """
        Sentiment and needs for a single journal entry.

        Returns:
            ``{overall_sentiment, confidence_score, emotional_state,
            relationship_needs}`` or ``None``.
        """
        prompt = f"""You are an empathetic relationship coach reading a private journal entry.

Journal Entry: {content}

Return ONLY a JSON object with:
1. overall_sentiment: one of positive, neutral, negative, mixed
2. confidence_score: 0.0 to 1.0
3. emotional_state: {{"primary_emotion": "...", "secondary_emotions": ["...", "..."]}}
4. relationship_needs: array of up to 3 objects {{"need_type": "emotional_support|quality_time|physical_affection|help|communication", "urgency": "now|soon|when_possible"}}

No markdown, no explanation."""

        analysis = await self._invoke_json(prompt, "journal sentiment analysis")
        if not isinstance(analysis, dict):
            return None

        if analysis.get("overall_sentiment") not in ("positive", "neutral", "negative", "mixed"):
            logger.warning("Missing or invalid overall_sentiment in journal analysis")
            return None

        return analysis

    # ── Personal insights ─────────────────────────────────────────

    async def generate_personal_insight(
        self,
        journal_content: str,
        profile: dict,
    ) -> Optional[dict]:
        """
        Supportive insight for the journal's author.

        Returns:
            ``{priority, title, insight, category, actionableSteps}`` or ``None``.
        """
        prompt = f"""You are a compassionate relationship coach analyzing a journal entry to provide supportive personal insights. Help the user process emotions constructively while maintaining a positive view of their relationship.

Journal Entry: "{journal_content}"

User Context:
- Communication Style: {profile.get('communication_style') or 'unknown'}
- Love Languages: {_join(profile.get('love_languages'))}
- Relationship Goals: {_join(profile.get('goals'))}
- Conflict Style: {profile.get('conflict_style') or 'unknown'}

Generate a supportive personal insight that:
1. Validates their feelings without judgment
2. Offers constructive reframing or perspective
3. Provides actionable steps for personal growth
4. Focuses on what THEY can control

Return ONLY JSON with this structure:
{{
  "priority": "high|medium|low",
  "title": "Brief supportive title",
  "insight": "2-3 sentence insight that validates and guides",
  "category": "emotional_processing|communication|self_awareness|relationship_skills",
  "actionableSteps": ["step1", "step2", "step3"]
}}"""

        insight = await self._invoke_json(prompt, "personal insight")
        if not isinstance(insight, dict) or not insight.get("title") or not insight.get("insight"):
            return None

        if insight.get("priority") not in ("high", "medium", "low"):
            insight["priority"] = "medium"
        return insight

    async def generate_relationship_insights(self, context: dict) -> Optional[list[dict]]:
        """
        2-4 insights for the insights feed from aggregated patterns.

        ``context`` carries the patterns computed by ``InsightService``.
        """
        stage = context.get("relationship_stage", "single")
        prompt = f"""You are an expert relationship coach analyzing user data to provide personalized insights. Generate 2-4 specific, actionable insights that consider their relationship status and partner dynamics.

USER & RELATIONSHIP CONTEXT:
- Relationship stage: {stage}
- Has active partnership: {context.get('has_active_partnership')}
- Partner count: {context.get('partner_count', 0)}
- Relationship types: {_join(context.get('relationship_types'), default='none')}
- Conflict style: {context.get('conflict_style') or 'unknown'}
- Shows love through: {_join(context.get('love_language_give'), ' and ')}
- Receives love through: {_join(context.get('love_language_receive'), ' and ')}
- Primary goals: {_join(context.get('goals'), default='general improvement')}

CURRENT PATTERNS:
- Connection score: {context.get('avg_connection_score')}/10 (trend {context.get('trend')})
- Average mood: {context.get('avg_mood_from_checkins')}/10
- Gratitude notes: {context.get('gratitude_count', 0)} | Challenges noted: {context.get('challenge_count', 0)}
- Total activity: {context.get('total_activity', 0)} entries

STAGE GUIDANCE: {STAGE_GUIDANCE.get(stage, '')}

Return ONLY a JSON array of 2-4 insights with this exact structure:
[
  {{
    "type": "suggestion|appreciation|milestone|pattern",
    "priority": "high|medium|low",
    "title": "Brief descriptive title",
    "description": "Specific actionable insight"
  }}
]"""

        insights = await self._invoke_json(prompt, "relationship insights")
        if not isinstance(insights, list) or not insights:
            return None

        return [
            {
                "type": item.get("type") or "suggestion",
                "priority": item.get("priority") if item.get("priority") in ("high", "medium", "low") else "medium",
                "title": item.get("title") or "Relationship Insight",
                "description": item.get("description") or "Continue building your relationship.",
                "category": "ai-generated",
            }
            for item in insights[:4]
            if isinstance(item, dict)
        ] or None

    # ── Partner suggestions ───────────────────────────────────────

    async def generate_partner_suggestion(
        self,
        journal_content: str,
        profile: dict,
        relationship_type: str,
    ) -> Optional[dict]:
        """
        One anonymized suggestion for the author's partner.

        Returns:
            ``{type, text, context, priority, confidence}`` or ``None``.
        """
        prompt = f"""You are a relationship coach analyzing a private journal entry to generate an actionable suggestion for their partner. The suggestion should help meet the user's needs WITHOUT revealing the private journal content.

Journal Entry (PRIVATE): "{journal_content}"

User's Preferences:
- Love Languages: {_join(profile.get('love_languages'))}
- Communication Style: {profile.get('communication_style') or 'unknown'}
- Relationship Type: {relationship_type}

Generate a partner suggestion that:
1. Addresses the underlying need without revealing the journal content
2. Is actionable and specific
3. Feels natural, not demanding
4. Considers the user's love languages

Return ONLY JSON:
{{
  "type": "affection|quality_time|support|communication|appreciation",
  "text": "Specific actionable suggestion for the partner",
  "context": "Brief anonymized context (why this would help)",
  "priority": 1-10,
  "confidence": 1-10
}}"""

        suggestion = await self._invoke_json(prompt, "partner suggestion")
        if not isinstance(suggestion, dict):
            return None
        if not all(suggestion.get(key) for key in ("type", "text", "context")):
            return None

        try:
            suggestion["priority"] = max(1, min(10, int(suggestion.get("priority", 5))))
            suggestion["confidence"] = max(1, min(10, int(suggestion.get("confidence", 5))))
        except (TypeError, ValueError):
            return None
        return suggestion

    async def generate_relationship_suggestions(
        self,
        journal_entries: list[str],
        recipient_name: str,
        recipient_profile: dict,
        relationship_type: str,
        max_suggestions: int,
    ) -> Optional[list[dict]]:
        """
        Suggestions for one member built from the other members' journals.

        Items missing any of the required keys are dropped.
        """
        journal_block = "\n\n".join(journal_entries)
        prompt = f"""You are an expert relationship coach analyzing private journal entries to generate actionable suggestions for someone in a {relationship_type} relationship. Help them support the other person without revealing the private journal content.

PRIVATE JOURNAL CONTENT (DO NOT REVEAL DIRECTLY):
{journal_block}

RECIPIENT CONTEXT:
- Name: {recipient_name}
- Preferred Love Languages: {_join(recipient_profile.get('love_languages'))}
- Communication Style: {recipient_profile.get('communication_style') or 'unknown'}

{filtering_guidelines(relationship_type)}

TASK: Generate {max_suggestions} specific, actionable suggestions for {recipient_name}.

REQUIREMENTS:
1. DO NOT quote or reference the journal content directly
2. Focus on actionable behaviors and gestures
3. Make suggestions feel natural and non-demanding
4. Keep them appropriate for a {relationship_type} relationship

Return ONLY a JSON array with exactly this structure:
[
  {{
    "suggestion_type": "{_TYPE_CHOICES}",
    "suggestion_text": "Specific actionable suggestion (2-3 sentences max)",
    "anonymized_context": "Brief explanation of why this would be helpful",
    "priority_score": 1-10,
    "confidence_score": 0.1-1.0,
    "source_need_intensity": 1-10
  }}
]"""

        suggestions = await self._invoke_json(prompt, "relationship suggestions")
        if not isinstance(suggestions, list):
            return None

        validated = []
        for item in suggestions:
            if not isinstance(item, dict) or any(item.get(k) is None for k in _RELATIONSHIP_SUGGESTION_KEYS):
                continue
            try:
                confidence = float(item["confidence_score"])
                priority = int(item["priority_score"])
                intensity = int(item["source_need_intensity"])
            except (TypeError, ValueError):
                continue
            validated.append({
                "suggestion_type": str(item["suggestion_type"]),
                "suggestion_text": str(item["suggestion_text"]),
                "anonymized_context": str(item["anonymized_context"]),
                "priority_score": max(1, min(10, priority)),
                "confidence_score": max(0.1, min(1.0, confidence)),
                "source_need_intensity": max(1, min(10, intensity)),
            })

        return validated or None

    # ── Cycle ─────────────────────────────────────────────────────

    async def generate_cycle_suggestion(self, phase: str) -> Optional[str]:
        """Short anonymized partner tip for the current cycle phase."""
        if not self.is_configured:
            return None

        prompt = f"""Based on the {phase} phase of a menstrual cycle, provide one constructive, anonymized suggestion for a partner in a single sentence.
Example: "Your partner might appreciate extra space this week."
Respond with the sentence only."""

        try:
            response = await self.llm.ainvoke(prompt)
            text = _strip_fences(response.content).strip('"')
            return text or None
        except Exception as e:
            logger.error("Gemini cycle suggestion error: %s", e)
            return None


# Singleton instance
_gemini_service: Optional[GeminiLLMService] = None


def get_gemini_service() -> GeminiLLMService:
    """Get or create Gemini service instance."""
    global _gemini_service

    if _gemini_service is None:
        _gemini_service = GeminiLLMService()

    return _gemini_service
