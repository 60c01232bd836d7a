"""
Content Filter
==============

Per-relationship-type boundary checks for generated suggestion text.

A prohibited pattern counts as a high-severity violation and rejects the
content outright. Boundary violations carry their own severity; when the
worst one is medium the content is kept with prohibited phrases masked.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from app.models.relationship import RelationshipType

logger = logging.getLogger(__name__)

FILTERED_TOKEN = "[CONTENT_FILTERED]"

SEVERITY_NONE = "none"
SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"

_SEVERITY_RANK = {SEVERITY_NONE: 0, SEVERITY_LOW: 1, SEVERITY_MEDIUM: 2, SEVERITY_HIGH: 3}


def _rx(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class BoundaryRule:
    pattern: re.Pattern
    violation: str
    severity: str


@dataclass(frozen=True)
class ContentRules:
    prohibited: tuple[re.Pattern, ...]
    boundaries: tuple[BoundaryRule, ...]


@dataclass
class FilterResult:
    is_valid: bool
    filtered_content: Optional[str]
    violations: list[str] = field(default_factory=list)
    severity: str = SEVERITY_NONE

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "filtered_content": self.filtered_content,
            "violations": self.violations,
            "severity": self.severity,
        }


# =============================================================================
# Rules by relationship type
# =============================================================================

CONTENT_RULES: dict[RelationshipType, ContentRules] = {
    RelationshipType.ROMANTIC: ContentRules(
        prohibited=(
            _rx(r"\b(analyze|assessment|intervention|clinical|therapeutic protocol)\b"),
            _rx(r"\b(sweetheart|honey|darling|babe)\b"),
        ),
        boundaries=(
            BoundaryRule(
                _rx(r"\b(I'm so touched|I feel|my heart)\b"),
                "AI expressing personal emotions inappropriately",
                SEVERITY_MEDIUM,
            ),
        ),
    ),
    RelationshipType.WORK: ContentRules(
        prohibited=(
            _rx(r"\b(intimate|intimacy|romantic|sexual|attraction|feelings for|crush|love)\b"),
            _rx(r"\b(hug|touch|kiss|cuddle|massage|physical affection|hold hands)\b"),
            _rx(r"\b(emotional support|share your feelings|open up emotionally|personal problems)\b"),
            _rx(r"\b(personal relationship|family issues|dating life|romantic problems)\b"),
        ),
        boundaries=(
            BoundaryRule(
                _rx(r"\b(share personal|emotional vulnerability|personal life|private matters)\b"),
                "Suggesting inappropriate personal sharing in workplace",
                SEVERITY_HIGH,
            ),
            BoundaryRule(
                _rx(r"\b(romantic|sexual|intimate|attraction)\b"),
                "Romantic/sexual content in professional context",
                SEVERITY_HIGH,
            ),
            BoundaryRule(
                _rx(r"\b(hug|kiss|touch|physical)\b"),
                "Physical contact suggestions in workplace",
                SEVERITY_HIGH,
            ),
        ),
    ),
    RelationshipType.FAMILY: ContentRules(
        prohibited=(
            _rx(r"\b(romantic|sexual|intimate partner|attraction|dating|crush)\b"),
            _rx(r"\b(romantic touch|sexual|intimate physical)\b"),
            _rx(r"\b(they're wrong|you should cut them off|they're toxic|you deserve better)\b"),
        ),
        boundaries=(
            BoundaryRule(
                _rx(r"\b(cut them off|go no contact|they're toxic|family is toxic)\b"),
                "Inappropriately advising family estrangement",
                SEVERITY_HIGH,
            ),
            BoundaryRule(
                _rx(r"\b(romantic|sexual|intimate relationship)\b"),
                "Romantic content in family context",
                SEVERITY_HIGH,
            ),
        ),
    ),
    RelationshipType.FRIEND: ContentRules(
        prohibited=(
            _rx(r"\b(romantic feelings|attraction|dating potential|romantic relationship|crush)\b"),
            _rx(r"\b(depend on them emotionally|they owe you|you should expect|demand support)\b"),
            _rx(r"\b(family relationship|workplace issue|professional advice|career guidance)\b"),
        ),
        boundaries=(
            BoundaryRule(
                _rx(r"\b(romantic potential|dating|attraction|romantic feelings)\b"),
                "Romantic implications in friendship context",
                SEVERITY_MEDIUM,
            ),
            BoundaryRule(
                _rx(r"\b(they owe you|you deserve|demand|expect them to)\b"),
                "Encouraging unhealthy friendship expectations",
                SEVERITY_MEDIUM,
            ),
        ),
    ),
    RelationshipType.OTHER: ContentRules(
        prohibited=(
            _rx(r"\b(obviously romantic|clearly family|definitely work|this is a)\b"),
            _rx(r"\b(you should definitely|the best approach is always|everyone should)\b"),
        ),
        boundaries=(
            BoundaryRule(
                _rx(r"\b(this is obviously|you should definitely|the only way)\b"),
                "Making assumptions about unclear relationship context",
                SEVERITY_MEDIUM,
            ),
        ),
    ),
}


def _rules_for(relationship_type) -> ContentRules:
    try:
        return CONTENT_RULES[RelationshipType(relationship_type)]
    except ValueError:
        return CONTENT_RULES[RelationshipType.OTHER]


def filter_content(content: str, relationship_type) -> FilterResult:
    """
    Check ``content`` against the rules for ``relationship_type``.

    Unknown relationship types use the ``other`` rules.
    """
    rules = _rules_for(relationship_type)
    violations: list[str] = []
    severity = SEVERITY_NONE

    for pattern in rules.prohibited:
        if pattern.search(content):
            violations.append(
                f"Contains prohibited content for {relationship_type} relationship: {pattern.pattern}"
            )
            severity = SEVERITY_HIGH

    for rule in rules.boundaries:
        if rule.pattern.search(content):
            violations.append(rule.violation)
            if _SEVERITY_RANK[rule.severity] > _SEVERITY_RANK[severity]:
                severity = rule.severity

    if severity == SEVERITY_HIGH:
        logger.info(
            "Rejected %s suggestion content: %s", relationship_type, "; ".join(violations)
        )
        return FilterResult(False, None, violations, severity)

    filtered = content
    if severity == SEVERITY_MEDIUM:
        for pattern in rules.prohibited:
            filtered = pattern.sub(FILTERED_TOKEN, filtered)

    return FilterResult(True, filtered, violations, severity)


def filtering_guidelines(relationship_type) -> str:
    """Prompt section listing what generated text must avoid."""
    rules = _rules_for(relationship_type)
    lines = [f"CONTENT BOUNDARIES FOR {str(getattr(relationship_type, 'value', relationship_type)).upper()} RELATIONSHIP:"]
    lines.extend(f"- Never match: {p.pattern}" for p in rules.prohibited)
    lines.extend(f"- Avoid: {b.violation} (severity: {b.severity})" for b in rules.boundaries)
    return "\n".join(lines)
