"""
Suggestion Quality
==================

Rule-based quality scoring for partner suggestions before they are saved.

Five sub-scores, each clamped to 1-10, are blended into an overall score:

    relevance 30% | actionability 25% | privacy 25% | naturalness 15% | feedback 5%

A suggestion passes at 7.0 or above.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

PASS_THRESHOLD = 7.0

EMOTIONAL_KEYWORDS = ("tired", "stressed", "overwhelmed", "sad", "frustrated", "anxious")
CONNECTION_KEYWORDS = ("miss", "together", "quality time", "date", "connection", "close")
SUPPORT_KEYWORDS = ("help", "support", "overwhelmed", "busy", "alone")

ACTION_WORDS = ("plan", "offer", "suggest", "schedule", "prepare", "organize", "ask", "propose")
VAGUE_WORDS = ("maybe", "perhaps", "consider", "might", "could", "try to")
SPECIFIC_WORDS = ("tonight", "this weekend", "tomorrow", "specific", "particular")

PRIVATE_EMOTIONS = ("angry", "frustrated", "sad", "disappointed", "hurt", "confused")

DEMANDING_WORDS = ("should", "must", "need to", "have to", "required")
GENTLE_WORDS = ("might", "could", "consider", "perhaps", "maybe")
NATURAL_PHRASES = ("how about", "what if", "you could", "it might be nice")

# Primary love language -> suggestion type that speaks to it
LOVE_LANGUAGE_TYPES = {
    "acts_of_service": "support",
    "quality_time": "quality_time",
    "physical_touch": "affection",
    "words_of_affirmation": "appreciation",
}


@dataclass
class QualityReport:
    relevance: float
    actionability: float
    privacy: float
    naturalness: float
    feedback: float
    overall: float
    is_valid: bool
    confidence_adjustment: int
    improvements: list[str] = field(default_factory=list)

    def metrics(self) -> dict:
        return {
            "relevance_score": self.relevance,
            "actionability_score": self.actionability,
            "privacy_score": self.privacy,
            "naturalness_score": self.naturalness,
            "feedback_integration": self.feedback,
            "overall_quality": round(self.overall, 2),
        }


def _clamp_score(value: float) -> float:
    return min(10.0, max(1.0, value))


def _contains_any(text: str, words: Sequence[str]) -> bool:
    return any(word in text for word in words)


def relevance_score(
    suggestion_type: str,
    journal: str,
    primary_love_language: Optional[str] = None,
) -> float:
    score = 5.0
    journal = journal.lower()

    if _contains_any(journal, EMOTIONAL_KEYWORDS):
        score += 2.0 if suggestion_type in ("support", "affection") else 0.5
    if _contains_any(journal, CONNECTION_KEYWORDS):
        score += 2.0 if suggestion_type in ("quality_time", "affection") else 0.5
    if _contains_any(journal, SUPPORT_KEYWORDS):
        score += 2.0 if suggestion_type == "support" else 0.5

    if primary_love_language and LOVE_LANGUAGE_TYPES.get(primary_love_language) == suggestion_type:
        score += 1.5

    return _clamp_score(score)


def actionability_score(text: str) -> float:
    score = 5.0
    text = text.lower()

    if _contains_any(text, ACTION_WORDS):
        score += 2.0
    if sum(1 for word in VAGUE_WORDS if word in text) > 1:
        score -= 1.5
    if _contains_any(text, SPECIFIC_WORDS):
        score += 1.0
    if len(text) < 30 or len(text) > 200:
        score -= 1.0

    return _clamp_score(score)


def privacy_score(text: str, context: str, journal: str) -> float:
    """Penalise suggestions that echo the private journal."""
    score = 8.0
    journal = journal.lower()
    text = text.lower()
    context = (context or "").lower()

    journal_words = [w for w in journal.split(" ") if len(w) > 3]
    text_words = [w for w in text.split(" ") if w]
    matches = sum(
        1 for jw in journal_words
        if any(jw in tw or tw in jw for tw in text_words)
    )
    ratio = matches / max(len(journal_words), 1)
    if ratio > 0.3:
        score -= 4.0
    elif ratio > 0.15:
        score -= 2.0

    if any(e in journal and (e in text or e in context) for e in PRIVATE_EMOTIONS):
        score -= 1.5

    return _clamp_score(score)


def naturalness_score(text: str) -> float:
    score = 6.0
    text = text.lower()

    score -= 1.5 * sum(1 for word in DEMANDING_WORDS if word in text)
    if _contains_any(text, GENTLE_WORDS):
        score += 1.0
    if _contains_any(text, NATURAL_PHRASES):
        score += 2.0
    if "your partner" in text or "they might" in text:
        score += 1.0

    return _clamp_score(score)


def feedback_score(suggestion_type: str, past_feedback: Sequence[Any]) -> float:
    """``past_feedback`` rows need ``rating`` and ``suggestion_type``."""
    if not past_feedback:
        return 7.0

    score = 5.0
    same_type = [f for f in past_feedback if f.suggestion_type == suggestion_type]
    negative = [f for f in same_type if f.rating and f.rating <= 2]
    positive = [f for f in same_type if f.rating and f.rating >= 4]
    if len(negative) > 2:
        score -= 2.0
    if len(positive) > 2:
        score += 1.5

    return _clamp_score(score)


def overall_quality(
    relevance: float,
    actionability: float,
    privacy: float,
    naturalness: float,
    feedback: float,
) -> float:
    return (
        relevance * 30
        + actionability * 25
        + privacy * 25
        + naturalness * 15
        + feedback * 5
    ) / 100


def confidence_adjustment(overall: float) -> int:
    if overall >= 9:
        return 2
    if overall >= 8:
        return 1
    if overall >= 7:
        return 0
    if overall >= 6:
        return -1
    if overall >= 5:
        return -2
    return -3


def improvement_messages(report: QualityReport) -> list[str]:
    messages = []
    if report.relevance < 6:
        messages.append("Suggestion doesn't clearly address the user's emotional needs from their journal")
    if report.actionability < 6:
        messages.append("Make the suggestion more specific and actionable with concrete steps")
    if report.privacy < 6:
        messages.append("Suggestion reveals too much private information from the journal")
    if report.naturalness < 6:
        messages.append("Language feels too demanding - use gentler, more natural phrasing")
    if report.feedback < 5:
        messages.append("Consider past feedback patterns for this suggestion type")
    return messages


def validate_suggestion(
    suggestion_type: str,
    text: str,
    context: str,
    journal: str,
    primary_love_language: Optional[str] = None,
    past_feedback: Sequence[Any] = (),
) -> QualityReport:
    relevance = relevance_score(suggestion_type, journal, primary_love_language)
    actionability = actionability_score(text)
    privacy = privacy_score(text, context, journal)
    naturalness = naturalness_score(text)
    feedback = feedback_score(suggestion_type, past_feedback)
    overall = overall_quality(relevance, actionability, privacy, naturalness, feedback)

    report = QualityReport(
        relevance=relevance,
        actionability=actionability,
        privacy=privacy,
        naturalness=naturalness,
        feedback=feedback,
        overall=overall,
        is_valid=overall >= PASS_THRESHOLD,
        confidence_adjustment=confidence_adjustment(overall),
    )
    report.improvements = improvement_messages(report)
    return report


def adjusted_confidence(confidence: float, report: QualityReport) -> int:
    return int(min(10, max(1, round(confidence + report.confidence_adjustment))))
