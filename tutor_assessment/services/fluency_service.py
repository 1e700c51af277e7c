import asyncio
import difflib
import json
import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from tutor_assessment.core.config import (
    BASELINE_CONFIDENCE,
    LLM_FALLBACK_SCORE,
    MIN_AUDIO_SECONDS,
    MISMATCH_MAX_WPM,
    MISMATCH_MIN_WPM,
    OPTIMAL_WPM_MAX,
    OPTIMAL_WPM_MIN,
)
from tutor_assessment.models.analysis_model import (
    NO_TEXT_FEEDBACK,
    ConversationContext,
    DetectedIssue,
    clamp_score,
)
from tutor_assessment.models.fluency_model import (
    FluencyAnalysisConfig,
    FluencyCritique,
    FluencyResult,
    PronunciationResult,
    RhythmResult,
    WordScore,
)
from tutor_assessment.services.llm_service import LanguageModelClient, parse_model_payload
from tutor_assessment.services.transcription_service import AzureTranscriptionService, TranscriptionService
from tutor_assessment.utils.audio_utils import assess_audio_quality, audio_duration
from tutor_assessment.utils.signal_utils import guarded_call
from tutor_assessment.utils.text_processing import count_actual_words, count_fillers, extract_words, split_sentences

# Setup logging
logger = logging.getLogger(__name__)

AUDIO_TOO_SHORT_FEEDBACK = "Audio too short for reliable analysis"
MISMATCH_FEEDBACK = "Mismatch between audio length and text"

# Graphemes that learners commonly misarticulate, with how to practise them
PROBLEM_SOUNDS: Tuple[Tuple[str, str, str], ...] = (
    ("th", "th sounds", "Place your tongue between your teeth and blow air gently"),
    ("r", "r sounds", "Curl your tongue back without touching the roof of your mouth"),
    ("l", "l sounds", "Touch the tip of your tongue to the roof of your mouth behind your teeth"),
    ("v", "v sounds", "Touch your bottom lip to your top teeth and vibrate your vocal cords"),
    ("w", "w sounds", 'Round your lips like saying "oo", then move quickly to the next sound'),
    ("sh", "sh sounds", "Push your lips forward and let the air flow over your tongue"),
    ("ng", "ng sounds", "Press the back of your tongue against your soft palate"),
)

WORD_MATCH_THRESHOLD = 0.8

# Highest confidence a result can report once the critique has failed
DEGRADED_CRITIQUE_CEILING = 0.65


def calculate_pace_score(words_per_minute: float, optimal_min: float = OPTIMAL_WPM_MIN,
                         optimal_max: float = OPTIMAL_WPM_MAX) -> float:
    """1.0 inside the optimal band, falling off linearly relative to the violated bound"""
    if optimal_min <= words_per_minute <= optimal_max:
        return 1.0
    if words_per_minute > optimal_max:
        return clamp_score(1 - (words_per_minute - optimal_max) / optimal_max)
    return clamp_score(1 - (optimal_min - words_per_minute) / optimal_min)


def generate_pace_feedback(words_per_minute: float, pace_score: float,
                           optimal_min: float = OPTIMAL_WPM_MIN, optimal_max: float = OPTIMAL_WPM_MAX) -> List[str]:
    if words_per_minute > optimal_max:
        return [f"You are speaking too quickly, try to slow down a little ({words_per_minute:.0f} words per minute)"]
    if words_per_minute < optimal_min:
        return [f"You are speaking too slowly, try to keep your speech flowing ({words_per_minute:.0f} words per minute)"]
    if pace_score >= 0.9:
        return ["Your speaking pace is natural and easy to follow"]
    return []


def calculate_rhythm_score(text: str) -> Tuple[float, int]:
    """Text-based rhythm estimate from sentence-length variability and filler words"""
    words = extract_words(text)
    if not words:
        return 0.0, 0

    lengths = np.array([count_actual_words(sentence) for sentence in split_sentences(text)], dtype=float)
    if lengths.size > 1 and lengths.mean() > 0:
        variability = float(lengths.std() / lengths.mean())
    else:
        variability = 0.0

    fillers = count_fillers(text)
    filler_ratio = fillers / len(words)

    score = 1.0 - min(0.4, variability * 0.4) - min(0.4, filler_ratio * 2)
    return clamp_score(score), fillers


def align_words(reference: str, recognized: str) -> Tuple[List[WordScore], float]:
    """Per-word match of the reference text against what speech-to-text heard"""
    reference_words = extract_words(reference)
    recognized_words = extract_words(recognized)
    if not reference_words:
        return [], 0.0

    word_scores = []
    matcher = difflib.SequenceMatcher(None, reference_words, recognized_words)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            word_scores.extend(WordScore(word=word, score=1.0, recognized_as=word) for word in reference_words[i1:i2])
        elif tag == "replace":
            heard = recognized_words[j1:j2]
            for offset, word in enumerate(reference_words[i1:i2]):
                candidate = heard[offset] if offset < len(heard) else None
                similarity = difflib.SequenceMatcher(None, word, candidate).ratio() if candidate else 0.0
                word_scores.append(WordScore(word=word, score=similarity, recognized_as=candidate))
        elif tag == "delete":
            word_scores.extend(WordScore(word=word, score=0.0) for word in reference_words[i1:i2])

    accuracy = sum(score.score for score in word_scores) / len(reference_words)
    return word_scores, accuracy


def identify_problem_areas(word_scores: List[WordScore]) -> List[str]:
    areas = []
    for score in word_scores:
        if score.score >= WORD_MATCH_THRESHOLD:
            continue
        for grapheme, area, _ in PROBLEM_SOUNDS:
            if grapheme in score.word and area not in areas:
                areas.append(area)
    return areas


def generate_pronunciation_feedback(problem_areas: List[str], confidence: float,
                                    learner_level: str = "intermediate") -> List[str]:
    feedback = []
    if confidence >= 0.85 and not problem_areas:
        feedback.append("Great pronunciation, your words were recognized clearly")
    elif confidence < 0.5:
        feedback.append("Pronunciation clarity is quite low and needs attention; slow down and articulate each sound")
    elif confidence < 0.7:
        feedback.append("Some sounds were unclear; try to make them more distinct")

    tips = {area: tip for _, area, tip in PROBLEM_SOUNDS}
    for area in problem_areas:
        feedback.append(f"Practice {area}: {tips.get(area, 'repeat the word slowly')}")

    if problem_areas and learner_level in ("beginner", "elementary"):
        feedback.append("Focus on one sound at a time; clarity matters more than speed")
    return feedback


def generate_pronunciation_guidance(transcription_confidence: float, problem_areas: List[str]) -> List[DetectedIssue]:
    """Phonetic guidance items for low-confidence transcriptions"""
    if transcription_confidence >= 0.7:
        return []

    if transcription_confidence < 0.5:
        description = "The transcription confidence was quite low, which suggests pronunciation needs attention"
    else:
        description = "There were some unclear sounds. Let's work on making them more distinct"

    guidance = [DetectedIssue(
        kind="pronunciation-guide",
        severity="high" if transcription_confidence < 0.5 else "medium",
        description=description,
        suggestion="Try speaking more slowly and exaggerating the mouth movements for each sound",
        confidence=1 - transcription_confidence,
        source="heuristic",
    )]

    tips = {area: tip for _, area, tip in PROBLEM_SOUNDS}
    for area in problem_areas[:3]:
        guidance.append(DetectedIssue(
            kind="pronunciation-guide",
            severity="low",
            description=f"Work on {area}",
            suggestion=tips[area],
            confidence=0.6,
            source="heuristic",
        ))
    return guidance


def calculate_composite_fluency_score(scores: Dict[str, float], learner_level: str = "intermediate",
                                      config: Optional[FluencyAnalysisConfig] = None) -> float:
    """
    Weighted mean over the signals present in scores.

    Signals that are absent (no audio, failed transcription, no critique)
    are left out and the remaining weights renormalised. Beginners and
    elementary learners move weight from pace and transcription confidence
    onto pronunciation.
    """
    config = config or FluencyAnalysisConfig()
    weights = dict(config.weights)

    shift = config.pronunciation_shift.get(learner_level, 0.0)
    if shift and "pronunciation" in scores:
        donors = [name for name in ("pace", "transcription_confidence") if name in scores]
        for donor in donors:
            moved = min(weights.get(donor, 0.0), shift / len(donors))
            weights[donor] = weights.get(donor, 0.0) - moved
            weights["pronunciation"] = weights.get("pronunciation", 0.0) + moved

    total_weight = sum(weights.get(name, 0.0) for name in scores)
    if total_weight <= 0:
        return 0.0

    score = sum(weights.get(name, 0.0) * value for name, value in scores.items()) / total_weight
    score += config.strictness_adjustments.get(config.strictness_level, 0.0)
    return clamp_score(score)


def generate_encouraging_feedback(fluency_score: float, problem_areas: List[str]) -> List[str]:
    if fluency_score >= 0.8 and not problem_areas:
        return ["Great job! Your speech flows naturally"]
    if fluency_score >= 0.6:
        return ["Good effort, keep practicing to make your speech even smoother"]
    return ["Keep practicing, every conversation builds your fluency"]


def build_fluency_prompt(text: str, context: ConversationContext, words_per_minute: float,
                         duration: float) -> str:
    timing = (
        f"Speaking rate: {words_per_minute:.0f} words per minute over {duration:.1f} seconds"
        if duration else "No audio timing available"
    )
    return f"""
You are an expert in evaluating spoken English fluency. Assess this transcript of a learner's speech.
Ignore transcription-related punctuation issues.

Transcript: {json.dumps(text)}
Student Level: {context.learner_level}
Conversation Topic: {context.topic}
{timing}

Output format:
{{
  "fluencyScore": 0.8,
  "rhythmScore": 0.75,
  "feedback": [
    {{"type": "fluency", "text": "Specific observation", "confidence": 0.8}}
  ],
  "suggestions": ["Actionable suggestion"]
}}

Scores are between 0 and 1.
Provide ONLY the JSON object. No other text or markdown formatting.
"""


class FluencyAnalyzer:
    """Rhythm, pace, pronunciation and holistic critique fused into a fluency result"""

    def __init__(self, llm_client: Optional[LanguageModelClient] = None,
                 transcription_service: Optional[TranscriptionService] = None):
        self.llm_client = llm_client or LanguageModelClient()
        self.transcription_service = transcription_service or AzureTranscriptionService()

    async def _critique(self, text: str, context: ConversationContext, rhythm: RhythmResult) -> Optional[FluencyCritique]:
        prompt = build_fluency_prompt(text, context, rhythm.words_per_minute, rhythm.audio_duration)
        content = await self.llm_client.complete(prompt)
        return parse_model_payload(content, FluencyCritique)

    def analyze_rhythm(self, audio: Optional[bytes], text: str, sample_rate: int,
                       optimal_wpm_min: float = OPTIMAL_WPM_MIN,
                       optimal_wpm_max: float = OPTIMAL_WPM_MAX) -> RhythmResult:
        rhythm_score, fillers = calculate_rhythm_score(text)
        feedback = []
        if fillers:
            feedback.append(f"Try to reduce filler words ({fillers} found)")

        if not audio:
            return RhythmResult(rhythm_score=rhythm_score, pace_score=0.0, feedback=feedback)

        duration = audio_duration(audio, sample_rate)
        words_per_minute = count_actual_words(text) / (duration / 60) if duration > 0 else 0.0
        pace_score = calculate_pace_score(words_per_minute, optimal_wpm_min, optimal_wpm_max)
        feedback.extend(generate_pace_feedback(words_per_minute, pace_score, optimal_wpm_min, optimal_wpm_max))

        return RhythmResult(
            rhythm_score=rhythm_score,
            pace_score=pace_score,
            words_per_minute=round(words_per_minute, 1),
            audio_duration=duration,
            feedback=feedback,
        )

    async def analyze_pronunciation(self, audio: bytes, text: str,
                                    config: Optional[FluencyAnalysisConfig] = None,
                                    learner_level: str = "intermediate") -> PronunciationResult:
        config = config or FluencyAnalysisConfig()
        quality = assess_audio_quality(audio)

        transcription, ok = await guarded_call(
            "speech-to-text",
            self.transcription_service.transcribe_audio(audio, config.target_language, config.sample_rate),
            None,
        )
        if not ok:
            return PronunciationResult(
                overall_score=0.0,
                confidence=0.0,
                recommendations=quality.recommendations,
                feedback=["Pronunciation could not be assessed for this recording"],
                degraded_sources=["speech-to-text"],
            )

        word_scores, accuracy = align_words(text, transcription.transcript)
        overall_score = 0.6 * accuracy + 0.4 * transcription.confidence
        problem_areas = identify_problem_areas(word_scores)

        feedback = []
        guidance = []
        if config.include_pronunciation_feedback:
            feedback = generate_pronunciation_feedback(problem_areas, transcription.confidence, learner_level)
            guidance = generate_pronunciation_guidance(transcription.confidence, problem_areas)

        logger.info(f"Pronunciation: accuracy={accuracy:.2f}, stt confidence={transcription.confidence:.2f}")

        return PronunciationResult(
            overall_score=overall_score,
            confidence=transcription.confidence,
            transcription_confidence=transcription.confidence,
            transcript=transcription.transcript,
            word_scores=word_scores,
            problem_areas=problem_areas,
            recommendations=quality.recommendations,
            feedback=feedback,
            guidance=guidance,
        )

    async def analyze_fluency(self, audio: Optional[bytes], text: Optional[str],
                              context: Optional[ConversationContext] = None,
                              config: Optional[FluencyAnalysisConfig] = None) -> FluencyResult:
        context = context or ConversationContext()
        config = config or FluencyAnalysisConfig()

        if not extract_words(text or ""):
            return FluencyResult(fluency_score=0.0, confidence=0.0, feedback=[NO_TEXT_FEEDBACK])

        logger.info(f"Starting fluency analysis (audio={'yes' if audio else 'no'}, text length={len(text)})")

        feedback = []
        confidence_penalty = 0.0

        if audio and audio_duration(audio, config.sample_rate) < MIN_AUDIO_SECONDS:
            logger.warning("Audio shorter than the minimum duration, falling back to text-only analysis")
            feedback.append(AUDIO_TOO_SHORT_FEEDBACK)
            confidence_penalty += 0.2
            audio = None

        rhythm = self.analyze_rhythm(audio, text, config.sample_rate, config.optimal_wpm_min, config.optimal_wpm_max)

        if audio and not MISMATCH_MIN_WPM <= rhythm.words_per_minute <= MISMATCH_MAX_WPM:
            logger.warning(f"Implausible speaking rate of {rhythm.words_per_minute} words per minute")
            feedback.append(MISMATCH_FEEDBACK)
            confidence_penalty += 0.2

        pronunciation_call = (
            self.analyze_pronunciation(audio, text, config, context.learner_level)
            if audio and config.include_transcription_analysis else _no_signal()
        )
        critique_call = (
            guarded_call("language-model", self._critique(text, context, rhythm), None)
            if config.enable_contextual_analysis else _no_signal((None, None))
        )
        pronunciation, (critique, llm_ok) = await asyncio.gather(pronunciation_call, critique_call)

        degraded_sources = []
        scores: Dict[str, float] = {}

        rhythm_score = rhythm.rhythm_score
        if critique is not None and critique.rhythm_score is not None:
            rhythm_score = (rhythm_score + critique.rhythm_score) / 2
        if config.include_rhythm_analysis:
            scores["rhythm"] = rhythm_score
            if audio:
                scores["pace"] = rhythm.pace_score

        stt_ok = None
        if pronunciation is not None:
            stt_ok = not pronunciation.degraded_sources
            degraded_sources.extend(pronunciation.degraded_sources)
            if stt_ok:
                scores["pronunciation"] = pronunciation.overall_score
                scores["transcription_confidence"] = pronunciation.transcription_confidence

        if llm_ok is not None:
            scores["holistic"] = critique.fluency_score if critique is not None else LLM_FALLBACK_SCORE
            if not llm_ok:
                degraded_sources.append("language-model")

        fluency_score = calculate_composite_fluency_score(scores, context.learner_level, config)

        confidence = BASELINE_CONFIDENCE
        if llm_ok is True:
            confidence += 0.1
        if stt_ok is True:
            confidence = (confidence + pronunciation.transcription_confidence) / 2
        elif stt_ok is False:
            confidence -= 0.15
        if llm_ok is False:
            # after the transcription average
            confidence = min(confidence - 0.15, DEGRADED_CRITIQUE_CEILING)
        if not audio:
            confidence -= 0.1
        confidence -= confidence_penalty
        confidence = max(0.05, min(1.0, confidence))

        problem_areas = pronunciation.problem_areas if pronunciation else []
        feedback.extend(rhythm.feedback)
        if pronunciation is not None:
            feedback.extend(pronunciation.feedback)
        if critique is not None:
            feedback.extend(item.text for item in critique.feedback)
        feedback.extend(generate_encouraging_feedback(fluency_score, problem_areas))

        suggestions = list(critique.suggestions) if critique else []
        if pronunciation is not None:
            suggestions.extend(pronunciation.recommendations)

        logger.info(f"Fluency analysis complete: score={fluency_score:.2f}, confidence={confidence:.2f}")

        return FluencyResult(
            fluency_score=fluency_score,
            pronunciation_score=scores.get("pronunciation", 0.0),
            rhythm_score=rhythm_score,
            pace_score=scores.get("pace", 0.0),
            transcription_confidence=scores.get("transcription_confidence", 0.0),
            words_per_minute=rhythm.words_per_minute,
            audio_duration=rhythm.audio_duration,
            problem_areas=problem_areas,
            feedback=feedback,
            suggestions=suggestions,
            guidance=pronunciation.guidance if pronunciation else [],
            confidence=confidence,
            degraded_sources=degraded_sources,
        )


async def _no_signal(value=None):
    return value
