"""Tests for profile enhancement suggestions and completeness"""

import json

import pytest
from unittest.mock import Mock
from pathlib import Path
import sys

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from faddl_ai.data.schema import (
    PartnerPreferences,
    PersonalizationContext,
    PracticeLevel,
    Priority,
    ProfileSection,
)
from faddl_ai.llm.router import LLMRole
from faddl_ai.personalization.profile_enhancement import (
    BIO_FALLBACK,
    BIO_GUIDANCE,
    FALLBACK_SUGGESTIONS,
    MAX_SUGGESTIONS,
    PHOTO_GUIDANCE,
    ProfileEnhancer,
    calculate_profile_completeness,
    has_islamic_interests,
    preferences_restrictiveness,
)

from tests.fakes import REFERENCE_YEAR, FakeRouter, make_profile

LLM_REPLY = json.dumps({
    "suggestions": [
        {
            "suggestion": "Say what kind of family life you hope to build",
            "reasoning": "Family goals are central for most families",
            "islamicGuidance": "Marriage is half of the deen",
            "priority": "high",
            "estimatedImpact": 0.8,
        },
        {"suggestion": "Mention how you spend your weekends"},
    ]
})


def context_for(profile=None, preferences=None, cultural_background="mixed"):
    profile = profile or make_profile()
    return PersonalizationContext(
        user_id=profile.user_id,
        profile=profile,
        preferences=preferences or PartnerPreferences(),
        cultural_background=cultural_background,
    )


class TestBioAnalysis:
    def test_short_bio_asks_for_more(self):
        router = FakeRouter(LLM_REPLY)
        enhancer = ProfileEnhancer(llm_router=router, reference_year=REFERENCE_YEAR)

        result = enhancer.analyze_bio(context_for(make_profile(bio="Salam"), cultural_background="arab"))

        assert len(result) == 1
        assert result[0].section == ProfileSection.BIO
        assert result[0].priority == Priority.HIGH
        assert result[0].cultural_consideration == BIO_GUIDANCE["arab"]
        assert router.calls == []

    def test_missing_bio_counts_as_short(self):
        enhancer = ProfileEnhancer(llm_router=FakeRouter(LLM_REPLY))
        result = enhancer.analyze_bio(context_for(make_profile(bio=None), cultural_background="unknown"))
        assert result[0].estimated_impact == 0.85
        assert result[0].cultural_consideration == "Express your authentic Islamic identity and values"

    def test_llm_review_parsed(self):
        router = FakeRouter(LLM_REPLY)
        enhancer = ProfileEnhancer(llm_router=router, reference_year=REFERENCE_YEAR)

        result = enhancer.analyze_bio(context_for())

        assert [s.section for s in result] == [ProfileSection.BIO, ProfileSection.BIO]
        assert result[0].islamic_guidance == "Marriage is half of the deen"
        assert result[0].priority == Priority.HIGH
        assert result[1].priority == Priority.MEDIUM
        assert result[1].estimated_impact == 0.7

        call = router.calls[0]
        assert call["role"] == LLMRole.ENHANCEMENT
        assert call["json_mode"] is True
        assert "Age: 30" in call["messages"][0]["content"]

    def test_llm_review_accepts_bare_list(self):
        reply = json.dumps([{"suggestion": "Add your favourite halal recipes", "priority": "low"}])
        enhancer = ProfileEnhancer(llm_router=FakeRouter(reply))

        result = enhancer.analyze_bio(context_for())

        assert len(result) == 1
        assert result[0].priority == Priority.LOW

    @pytest.mark.parametrize("reply", [
        None,
        "not json at all",
        json.dumps({"suggestions": []}),
        json.dumps({"advice": "be yourself"}),
        json.dumps([{"suggestion": "x", "priority": "urgent"}]),
        json.dumps([{"suggestion": "x", "estimatedImpact": 3}]),
    ])
    def test_llm_failure_falls_back(self, reply):
        enhancer = ProfileEnhancer(llm_router=FakeRouter(reply))
        result = enhancer.analyze_bio(context_for())
        assert result == [BIO_FALLBACK]


class TestSectionRules:
    @pytest.fixture
    def enhancer(self):
        return ProfileEnhancer(llm_router=FakeRouter(None))

    def test_low_prayer_frequency(self, enhancer):
        profile = make_profile(prayer_frequency=PracticeLevel.NEVER, modest_dress=PracticeLevel.NEVER)
        result = enhancer.analyze_values(context_for(profile))
        assert len(result) == 1
        assert result[0].estimated_impact == 0.6

    def test_inconsistent_practice(self, enhancer):
        profile = make_profile(prayer_frequency=PracticeLevel.ALWAYS, modest_dress=PracticeLevel.OFTEN)
        result = enhancer.analyze_values(context_for(profile))
        assert len(result) == 1
        assert "consistently" in result[0].suggestion

    def test_consistent_practice_has_no_values_suggestion(self, enhancer):
        profile = make_profile(prayer_frequency=PracticeLevel.ALWAYS, modest_dress=PracticeLevel.ALWAYS)
        assert enhancer.analyze_values(context_for(profile)) == []

    def test_bio_with_interests_and_faith(self, enhancer):
        assert enhancer.analyze_interests(context_for()) == []

    def test_bio_without_interests(self, enhancer):
        profile = make_profile(bio="Software engineer based in Toronto, close to my parents and siblings.")
        result = enhancer.analyze_interests(context_for(profile, cultural_background="convert"))

        assert [s.priority for s in result] == [Priority.MEDIUM, Priority.HIGH]
        assert result[0].cultural_consideration.startswith("Share how Islamic interests")

    def test_interest_words_match_whole_words(self):
        assert not has_islamic_interests("Graduate student of linguistics")
        assert has_islamic_interests("I love to study and learn")

    def test_photos(self, enhancer):
        none_yet = enhancer.analyze_photos(context_for(make_profile(photo_count=0), cultural_background="arab"))
        unknown = enhancer.analyze_photos(context_for(make_profile()))

        assert none_yet[0].suggestion.startswith("Add at least one")
        assert none_yet[0].cultural_consideration == PHOTO_GUIDANCE["arab"]
        assert unknown[0].suggestion.startswith("Ensure")
        assert unknown[0].priority == Priority.HIGH

    def test_restrictive_preferences(self, enhancer):
        preferences = PartnerPreferences(
            min_age=25, max_age=28,
            location_zones=("uk_london",),
            marital_statuses=("never_married",),
        )
        result = enhancer.analyze_preferences(context_for(preferences=preferences))
        assert [s.estimated_impact for s in result] == [0.75]

    def test_children_intentions(self, enhancer):
        preferences = PartnerPreferences(wants_children=False)

        without = enhancer.analyze_preferences(context_for(preferences=preferences))
        with_children = enhancer.analyze_preferences(
            context_for(make_profile(has_children=True, children_count=1), preferences=preferences)
        )

        assert without[0].priority == Priority.HIGH
        assert with_children == []

    def test_restrictiveness(self):
        assert preferences_restrictiveness(PartnerPreferences()) == 0.0
        assert preferences_restrictiveness(PartnerPreferences(min_age=25, max_age=32)) == 0.125
        strict = PartnerPreferences(
            min_age=25, max_age=27,
            location_zones=("uk_london",),
            marital_statuses=("never_married",),
            education_level="masters",
        )
        assert preferences_restrictiveness(strict) == 1.0


class TestGenerateSuggestions:
    def test_cultural_suggestion_added(self):
        enhancer = ProfileEnhancer(llm_router=FakeRouter(None))

        arab = enhancer.generate_suggestions(context_for(cultural_background="arab"))
        other = enhancer.generate_suggestions(context_for(cultural_background="nordic"))

        assert any(s.cultural_consideration and "Quranic Arabic" in s.cultural_consideration for s in arab)
        assert len(arab) == len(other) + 1

    def test_ranked_and_capped(self):
        profile = make_profile(
            bio="Hello there",
            prayer_frequency=PracticeLevel.NEVER,
            modest_dress=PracticeLevel.ALWAYS,
        )
        preferences = PartnerPreferences(
            min_age=25, max_age=28,
            location_zones=("uk_london",),
            marital_statuses=("never_married",),
            wants_children=False,
        )
        enhancer = ProfileEnhancer(llm_router=FakeRouter(None))

        result = enhancer.generate_suggestions(context_for(profile, preferences, "convert"))

        assert len(result) == MAX_SUGGESTIONS
        keys = [(s.priority.rank, s.estimated_impact) for s in result]
        assert keys == sorted(keys, reverse=True)
        assert result[0].section == ProfileSection.PHOTOS
        assert all(s.estimated_impact > 0.6 for s in result)

    def test_unexpected_failure_returns_general_suggestions(self):
        router = Mock()
        router.chat.side_effect = RuntimeError("boom")
        enhancer = ProfileEnhancer(llm_router=router)

        result = enhancer.generate_suggestions(context_for())

        assert result == list(FALLBACK_SUGGESTIONS)
        assert [s.section for s in result] == [ProfileSection.BIO, ProfileSection.VALUES, ProfileSection.INTERESTS]


class TestProfileCompleteness:
    def test_bare_profile(self):
        profile = make_profile(bio=None, languages=(), photo_count=0)
        assert calculate_profile_completeness(profile) == 0.2

    def test_default_profile(self):
        # medium bio with faith interests, languages only, photo count unknown
        assert calculate_profile_completeness(make_profile()) == 0.7

    def test_complete_profile(self):
        bio = (
            "Alhamdulillah, I pray five times a day and volunteer with the community food bank. "
            "I enjoy reading, cooking for my family and learning Arabic at the local masjid on weekends."
        )
        profile = make_profile(bio=bio, education="masters", profession="pharmacist", photo_count=4)

        assert calculate_profile_completeness(profile) == 1.0
        assert ProfileEnhancer().calculate_completeness(profile) == 1.0

    @pytest.mark.parametrize("photos", [None, 0, 1, 2, 3, 10])
    def test_bounded(self, photos):
        score = calculate_profile_completeness(make_profile(photo_count=photos))
        assert 0.0 <= score <= 1.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
