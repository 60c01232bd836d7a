"""
Suggestion Quality Tests
========================
"""

from types import SimpleNamespace

import pytest

from app.services import suggestion_quality as quality


def _feedback(rating, suggestion_type="support"):
    return SimpleNamespace(rating=rating, suggestion_type=suggestion_type)


class TestRelevance:

    def test_support_for_stressed_journal_with_matching_love_language(self):
        score = quality.relevance_score(
            "support",
            "I'm so stressed and overwhelmed, nobody helps around the house",
            "acts_of_service",
        )

        assert score == 10.0

    def test_unrelated_journal_stays_at_baseline(self):
        assert quality.relevance_score("appreciation", "Went for a run this morning") == 5.0


class TestActionability:

    def test_concrete_plan(self):
        text = "Plan a walk together this weekend to talk about the week ahead"

        assert quality.actionability_score(text) == 8.0

    def test_vague_and_short(self):
        # two vague words and under 30 characters
        assert quality.actionability_score("maybe consider it") == 2.5


class TestPrivacy:

    def test_unrelated_text_keeps_full_score(self):
        score = quality.privacy_score(
            "how about cooking dinner tonight",
            "",
            "work deadlines keep piling up",
        )

        assert score == 8.0

    def test_echoing_the_journal_is_penalised(self):
        score = quality.privacy_score(
            "they seem frustrated about money worries",
            "",
            "feeling frustrated about money worries",
        )

        assert score == 2.5


class TestNaturalness:

    def test_demanding_language(self):
        assert quality.naturalness_score("You must call them") == 4.5

    def test_gentle_natural_phrasing_caps_at_ten(self):
        text = "How about a quiet dinner? Your partner might enjoy it"

        assert quality.naturalness_score(text) == 10.0


class TestFeedback:

    def test_no_history(self):
        assert quality.feedback_score("support", []) == 7.0

    def test_repeated_negative_feedback(self):
        history = [_feedback(1), _feedback(2), _feedback(1), _feedback(5, "quality_time")]

        assert quality.feedback_score("support", history) == 3.0

    def test_repeated_positive_feedback(self):
        history = [_feedback(5), _feedback(4), _feedback(5)]

        assert quality.feedback_score("support", history) == 6.5


class TestValidateSuggestion:

    def test_overall_is_weighted_blend(self):
        assert quality.overall_quality(10, 10, 10, 10, 10) == pytest.approx(10.0)
        assert quality.overall_quality(8, 6, 4, 10, 2) == pytest.approx(6.5)

    @pytest.mark.parametrize(
        "overall, adjustment",
        [(9.5, 2), (8.0, 1), (7.2, 0), (6.0, -1), (5.5, -2), (3.0, -3)],
    )
    def test_confidence_adjustment(self, overall, adjustment):
        assert quality.confidence_adjustment(overall) == adjustment

    def test_private_echo_fails_with_improvements(self):
        report = quality.validate_suggestion(
            suggestion_type="support",
            text="they seem frustrated about money worries",
            context="",
            journal="feeling frustrated about money worries",
        )

        assert report.privacy == 2.5
        assert report.is_valid == (report.overall >= quality.PASS_THRESHOLD)
        assert any("private information" in message for message in report.improvements)
        assert set(report.metrics()) == {
            "relevance_score",
            "actionability_score",
            "privacy_score",
            "naturalness_score",
            "feedback_integration",
            "overall_quality",
        }

    def test_adjusted_confidence_is_bounded(self):
        report = quality.validate_suggestion("support", "x", "", "y")

        assert 1 <= quality.adjusted_confidence(8, report) <= 10
        assert quality.adjusted_confidence(1, report) >= 1
