import pytest
from pydantic import ValidationError

from tutor_assessment.models.analysis_model import NO_TEXT_FEEDBACK
from tutor_assessment.models.fluency_model import FluencyAnalysisConfig
from tutor_assessment.services.fluency_service import (
    AUDIO_TOO_SHORT_FEEDBACK,
    MISMATCH_FEEDBACK,
    FluencyAnalyzer,
    align_words,
    calculate_composite_fluency_score,
    calculate_pace_score,
    calculate_rhythm_score,
    generate_encouraging_feedback,
    generate_pace_feedback,
    generate_pronunciation_feedback,
)
from tests.helpers import llm_client_returning, make_context, make_pcm_audio, transcription_service_returning

# 25 words
PICNIC_TEXT = (
    "I went to the market this morning and bought some fresh bread, cheese and apples "
    "for a picnic with my friends in the park today."
)

FLUENCY_CRITIQUE = {
    "fluencyScore": 0.8,
    "rhythmScore": 0.9,
    "feedback": [{"type": "fluency", "text": "Smooth delivery with natural pauses", "confidence": 0.8}],
    "suggestions": ["Use more linking words between ideas"],
}


@pytest.fixture
def analyzer():
    return FluencyAnalyzer(
        llm_client=llm_client_returning(FLUENCY_CRITIQUE),
        transcription_service=transcription_service_returning(PICNIC_TEXT, confidence=0.9),
    )


class TestRhythmAndPace:

    def test_fast_speech_gets_low_pace_and_slow_down_feedback(self, analyzer):
        rhythm = analyzer.analyze_rhythm(make_pcm_audio(6), PICNIC_TEXT, 16000)

        assert rhythm.words_per_minute == pytest.approx(250)
        assert rhythm.pace_score < 0.7
        assert rhythm.pace_score == pytest.approx(1 - 70 / 180)
        assert any("too quickly" in item for item in rhythm.feedback)

    def test_slow_speech_gets_too_slowly_feedback(self, analyzer):
        rhythm = analyzer.analyze_rhythm(make_pcm_audio(25), PICNIC_TEXT, 16000)

        assert rhythm.words_per_minute == pytest.approx(60)
        assert rhythm.pace_score == pytest.approx(0.5)
        assert any("too slowly" in item for item in rhythm.feedback)

    def test_optimal_pace_scores_one(self, analyzer):
        rhythm = analyzer.analyze_rhythm(make_pcm_audio(10), PICNIC_TEXT, 16000)

        assert 120 <= rhythm.words_per_minute <= 180
        assert rhythm.pace_score == 1.0
        assert rhythm.audio_duration == pytest.approx(10)

    def test_no_audio_means_no_pace(self, analyzer):
        rhythm = analyzer.analyze_rhythm(None, PICNIC_TEXT, 16000)

        assert rhythm.pace_score == 0
        assert rhythm.words_per_minute == 0
        assert rhythm.rhythm_score > 0

    def test_pace_score_is_relative_to_violated_bound(self):
        assert calculate_pace_score(150) == 1.0
        assert calculate_pace_score(360) == 0.0
        assert calculate_pace_score(90, 120, 180) == pytest.approx(0.75)

    def test_fillers_lower_rhythm(self):
        clean, clean_fillers = calculate_rhythm_score("I go to the park on Sunday.")
        filled, fillers = calculate_rhythm_score("Um, I, like, you know, go to the park.")

        assert clean_fillers == 0
        assert fillers == 3
        assert filled < clean

    def test_uneven_sentences_lower_rhythm(self):
        even, _ = calculate_rhythm_score("I drink tea. She drinks coffee. We drink juice.")
        uneven, _ = calculate_rhythm_score("Hi. I went to the big market yesterday with my whole family and friends.")

        assert uneven < even


class TestPronunciation:

    def test_word_alignment_scores_misrecognized_words(self):
        word_scores, accuracy = align_words("think three rivers", "sink tree rivers")

        assert [score.word for score in word_scores] == ["think", "three", "rivers"]
        assert word_scores[0].recognized_as == "sink"
        assert word_scores[2].score == 1.0
        assert 0 < accuracy < 1

    def test_missing_words_score_zero(self):
        word_scores, accuracy = align_words("see you later", "see you")

        assert word_scores[-1].word == "later"
        assert word_scores[-1].score == 0
        assert accuracy == pytest.approx(2 / 3)

    async def test_problem_areas_come_from_misrecognized_words(self):
        analyzer = FluencyAnalyzer(
            llm_client=llm_client_returning(FLUENCY_CRITIQUE),
            transcription_service=transcription_service_returning("I sink tree rivers", confidence=0.8),
        )

        result = await analyzer.analyze_pronunciation(make_pcm_audio(2), "I think three rivers")

        assert "th sounds" in result.problem_areas
        assert result.transcription_confidence == pytest.approx(0.8)
        assert result.overall_score < 0.6 + 0.4 * 0.8

    async def test_low_confidence_produces_guidance(self):
        analyzer = FluencyAnalyzer(
            llm_client=llm_client_returning(FLUENCY_CRITIQUE),
            transcription_service=transcription_service_returning("I think so", confidence=0.4),
        )

        result = await analyzer.analyze_pronunciation(make_pcm_audio(2), "I think so")

        assert result.guidance
        assert result.guidance[0].kind == "pronunciation-guide"
        assert "quite low" in result.guidance[0].description
        assert any("quite low" in item and "needs attention" in item for item in result.feedback)

    async def test_high_confidence_has_no_guidance(self):
        analyzer = FluencyAnalyzer(
            llm_client=llm_client_returning(FLUENCY_CRITIQUE),
            transcription_service=transcription_service_returning("I think so", confidence=0.95),
        )

        result = await analyzer.analyze_pronunciation(make_pcm_audio(2), "I think so")

        assert result.overall_score == pytest.approx(0.6 + 0.4 * 0.95)
        assert result.guidance == []

    async def test_transcription_failure_is_reported(self, failing_transcription_service):
        analyzer = FluencyAnalyzer(
            llm_client=llm_client_returning(FLUENCY_CRITIQUE),
            transcription_service=failing_transcription_service,
        )

        result = await analyzer.analyze_pronunciation(make_pcm_audio(2), "I think so")

        assert result.overall_score == 0
        assert result.degraded_sources == ["speech-to-text"]


class TestFluencyAnalyzer:

    async def test_empty_text_returns_zero_result(self, analyzer):
        result = await analyzer.analyze_fluency(None, "", make_context())

        assert result.fluency_score == 0
        assert result.confidence == 0
        assert NO_TEXT_FEEDBACK in result.feedback

    async def test_full_analysis_with_audio(self, analyzer):
        result = await analyzer.analyze_fluency(make_pcm_audio(10), PICNIC_TEXT, make_context())

        assert result.pronunciation_score == pytest.approx(0.6 + 0.4 * 0.9)
        assert result.pace_score == 1.0
        assert result.transcription_confidence == pytest.approx(0.9)
        assert result.confidence == pytest.approx((0.8 + 0.9) / 2)
        assert result.degraded_sources == []
        assert "Smooth delivery with natural pauses" in result.feedback
        assert "Use more linking words between ideas" in result.suggestions
        assert 0 < result.fluency_score <= 1

    async def test_text_only_excludes_audio_signals(self, analyzer):
        result = await analyzer.analyze_fluency(None, PICNIC_TEXT, make_context())

        assert result.pronunciation_score == 0
        assert result.pace_score == 0
        assert result.confidence == pytest.approx(0.7)
        analyzer.transcription_service.transcribe_audio.assert_not_called()

    async def test_language_model_failure_keeps_fluency_above_zero(self, failing_llm_client):
        analyzer = FluencyAnalyzer(
            llm_client=failing_llm_client,
            transcription_service=transcription_service_returning(PICNIC_TEXT),
        )

        result = await analyzer.analyze_fluency(None, "Test sentence.", make_context())

        assert result.fluency_score > 0
        assert result.confidence < 0.7
        assert result.confidence == pytest.approx(0.45)
        assert result.degraded_sources == ["language-model"]

    async def test_language_model_failure_with_confident_transcript_stays_below_baseline(self, failing_llm_client):
        analyzer = FluencyAnalyzer(
            llm_client=failing_llm_client,
            transcription_service=transcription_service_returning(PICNIC_TEXT, confidence=0.95),
        )

        result = await analyzer.analyze_fluency(make_pcm_audio(10), PICNIC_TEXT, make_context())

        assert result.degraded_sources == ["language-model"]
        assert result.transcription_confidence == pytest.approx(0.95)
        assert result.confidence < 0.7
        assert result.confidence == pytest.approx(0.65)
        assert result.fluency_score > 0

    async def test_punctuation_only_text_is_treated_as_empty(self, analyzer):
        result = await analyzer.analyze_fluency(make_pcm_audio(2), "?!...", make_context())

        assert result.fluency_score == 0
        assert result.confidence == 0
        assert NO_TEXT_FEEDBACK in result.feedback
        analyzer.llm_client.complete.assert_not_called()
        analyzer.transcription_service.transcribe_audio.assert_not_called()

    async def test_malformed_critique_uses_fallback(self):
        analyzer = FluencyAnalyzer(
            llm_client=llm_client_returning("Invalid JSON response {malformed"),
            transcription_service=transcription_service_returning(PICNIC_TEXT),
        )

        result = await analyzer.analyze_fluency(None, "Test sentence.", make_context())

        assert result.fluency_score > 0
        assert "language-model" in result.degraded_sources

    async def test_transcription_failure_degrades_confidence(self, failing_transcription_service):
        analyzer = FluencyAnalyzer(
            llm_client=llm_client_returning(FLUENCY_CRITIQUE),
            transcription_service=failing_transcription_service,
        )

        result = await analyzer.analyze_fluency(make_pcm_audio(10), PICNIC_TEXT, make_context())

        assert result.pronunciation_score == 0
        assert result.pace_score == 1.0
        assert result.confidence == pytest.approx(0.65)
        assert result.degraded_sources == ["speech-to-text"]

    async def test_short_audio_falls_back_to_text(self, analyzer):
        result = await analyzer.analyze_fluency(make_pcm_audio(0.5), "Hi.", make_context())

        assert AUDIO_TOO_SHORT_FEEDBACK in result.feedback
        assert result.confidence < 0.7
        assert result.pace_score == 0
        analyzer.transcription_service.transcribe_audio.assert_not_called()

    async def test_mismatched_audio_and_text(self):
        analyzer = FluencyAnalyzer(
            llm_client=llm_client_returning(FLUENCY_CRITIQUE),
            transcription_service=transcription_service_returning("Hi.", confidence=0.8),
        )

        result = await analyzer.analyze_fluency(make_pcm_audio(10), "Hi.", make_context())

        assert MISMATCH_FEEDBACK in result.feedback
        assert result.confidence < 0.8

    async def test_strictness_adjusts_score(self, analyzer):
        lenient = await analyzer.analyze_fluency(
            None, PICNIC_TEXT, make_context(), FluencyAnalysisConfig(strictness_level="lenient"))
        strict = await analyzer.analyze_fluency(
            None, PICNIC_TEXT, make_context(), FluencyAnalysisConfig(strictness_level="strict"))

        assert strict.fluency_score < lenient.fluency_score


class TestCompositeScore:

    def test_composite_is_weighted_mean(self):
        scores = {"pronunciation": 0.85, "rhythm": 0.75, "pace": 0.8, "transcription_confidence": 0.9}

        result = calculate_composite_fluency_score(scores)

        assert 0.7 < result < 1.0
        assert result == pytest.approx((0.25 * 0.85 + 0.2 * 0.75 + 0.15 * 0.8 + 0.1 * 0.9) / 0.7)

    def test_beginners_weight_pronunciation_more(self):
        scores = {"pronunciation": 0.9, "rhythm": 0.6, "pace": 0.65, "transcription_confidence": 0.85}

        beginner = calculate_composite_fluency_score(scores, "beginner")
        advanced = calculate_composite_fluency_score(scores, "advanced")

        assert beginner > advanced

    def test_low_transcription_confidence_lowers_score(self):
        high = {"pronunciation": 0.8, "rhythm": 0.75, "pace": 0.8, "transcription_confidence": 0.95}
        low = dict(high, transcription_confidence=0.4)

        assert calculate_composite_fluency_score(high) > calculate_composite_fluency_score(low)

    def test_no_signals_scores_zero(self):
        assert calculate_composite_fluency_score({}) == 0.0


class TestFeedback:

    def test_pronunciation_feedback_names_problem_sounds(self):
        feedback = generate_pronunciation_feedback(["th sounds", "r sounds"], 0.85, "intermediate")

        assert any("th" in item for item in feedback)
        assert any("r sounds" in item for item in feedback)

    def test_pace_feedback_for_fast_speech(self):
        feedback = generate_pace_feedback(250, 0.45)
        assert any("slow down" in item for item in feedback)

    def test_encouraging_feedback_for_good_performance(self):
        feedback = generate_encouraging_feedback(0.88, [])
        assert any("great" in item.lower() for item in feedback)


def test_inverted_wpm_band_is_rejected():
    with pytest.raises(ValidationError):
        FluencyAnalysisConfig(optimal_wpm_min=200, optimal_wpm_max=150)


def test_non_positive_sample_rate_is_rejected():
    with pytest.raises(ValidationError):
        FluencyAnalysisConfig(sample_rate=0)
