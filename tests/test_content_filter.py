"""
Content Filter Tests
====================
"""

from app.models.relationship import RelationshipType
from app.services.content_filter import filter_content, filtering_guidelines


def test_clean_romantic_suggestion_passes_unchanged():
    text = "How about planning a quiet dinner at home this weekend?"

    result = filter_content(text, RelationshipType.ROMANTIC)

    assert result.is_valid is True
    assert result.filtered_content == text
    assert result.violations == []
    assert result.severity == "none"


def test_physical_contact_at_work_is_rejected():
    result = filter_content("Offer your colleague a hug after the meeting", RelationshipType.WORK)

    assert result.is_valid is False
    assert result.filtered_content is None
    assert result.severity == "high"
    assert "Physical contact suggestions in workplace" in result.violations
    assert result.to_dict()["is_valid"] is False


def test_pet_names_are_prohibited_for_romantic():
    result = filter_content("Tell your darling you appreciate them", RelationshipType.ROMANTIC)

    assert result.is_valid is False
    assert result.severity == "high"


def test_medium_boundary_keeps_content():
    text = "I feel you could ask how their day went"

    result = filter_content(text, RelationshipType.ROMANTIC)

    assert result.is_valid is True
    assert result.severity == "medium"
    assert result.filtered_content == text
    assert result.violations == ["AI expressing personal emotions inappropriately"]


def test_family_estrangement_advice_is_rejected():
    result = filter_content("Maybe you should go no contact for a while", RelationshipType.FAMILY)

    assert result.is_valid is False
    assert "Inappropriately advising family estrangement" in result.violations


def test_unknown_type_uses_other_rules():
    result = filter_content("You should definitely call them", "acquaintance")

    assert result.is_valid is False
    assert result.severity == "high"


def test_matching_is_case_insensitive():
    assert filter_content("A ROMANTIC gesture for your manager", RelationshipType.WORK).is_valid is False


def test_guidelines_name_the_type():
    guidelines = filtering_guidelines(RelationshipType.FRIEND)

    assert guidelines.startswith("CONTENT BOUNDARIES FOR FRIEND RELATIONSHIP:")
    assert "Encouraging unhealthy friendship expectations" in guidelines
