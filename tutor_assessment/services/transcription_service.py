import asyncio
import json
import logging
from typing import Optional, Protocol

import azure.cognitiveservices.speech as speechsdk

from tutor_assessment.core.config import AZURE_SPEECH_KEY, AZURE_SPEECH_REGION
from tutor_assessment.core.errors import ExternalServiceError
from tutor_assessment.models.transcription_model import TranscriptAlternative, TranscriptionResult

# Setup logging
logger = logging.getLogger(__name__)

SERVICE_NAME = "speech-to-text"


class TranscriptionService(Protocol):
    """Speech-to-text used for pronunciation assessment"""

    async def transcribe_audio(self, audio: bytes, language_code: str, sample_rate: int) -> TranscriptionResult: ...


class AzureTranscriptionService:
    """Service for transcribing raw 16-bit mono PCM with Azure Speech Services"""

    def __init__(self, speech_key: Optional[str] = None, region: Optional[str] = None):
        self.speech_key = speech_key if speech_key is not None else AZURE_SPEECH_KEY
        self.region = region or AZURE_SPEECH_REGION

    async def transcribe_audio(self, audio: bytes, language_code: str, sample_rate: int) -> TranscriptionResult:
        if not self.speech_key:
            raise ExternalServiceError(SERVICE_NAME, "no Azure speech key configured")
        if not audio:
            raise ExternalServiceError(SERVICE_NAME, "empty audio buffer")

        logger.info(f"Starting transcription of {len(audio)} bytes at {sample_rate} Hz")
        return await asyncio.to_thread(self._recognize, audio, language_code, sample_rate)

    def _recognize(self, audio: bytes, language_code: str, sample_rate: int) -> TranscriptionResult:
        speech_config = speechsdk.SpeechConfig(subscription=self.speech_key, region=self.region)
        speech_config.speech_recognition_language = language_code
        speech_config.output_format = speechsdk.OutputFormat.Detailed

        stream_format = speechsdk.audio.AudioStreamFormat(
            samples_per_second=sample_rate, bits_per_sample=16, channels=1
        )
        push_stream = speechsdk.audio.PushAudioInputStream(stream_format=stream_format)
        push_stream.write(audio)
        push_stream.close()

        audio_config = speechsdk.audio.AudioConfig(stream=push_stream)
        recognizer = speechsdk.SpeechRecognizer(speech_config=speech_config, audio_config=audio_config)
        result = recognizer.recognize_once()

        if result.reason == speechsdk.ResultReason.RecognizedSpeech:
            logger.info("Speech recognized successfully")
            json_result = result.properties.get(speechsdk.PropertyId.SpeechServiceResponse_JsonResult)
            return parse_azure_result(json_result, result.text, language_code)

        if result.reason == speechsdk.ResultReason.NoMatch:
            logger.warning(f"No speech recognized: {result.no_match_details}")
            raise ExternalServiceError(SERVICE_NAME, "no speech recognized")

        cancellation = result.cancellation_details
        error_msg = f"Recognition canceled: {cancellation.reason}"
        if cancellation.reason == speechsdk.CancellationReason.Error:
            error_msg += f", {cancellation.error_details}"
        logger.error(error_msg)
        raise ExternalServiceError(SERVICE_NAME, error_msg)


def parse_azure_result(json_result: Optional[str], display_text: str, language_code: str) -> TranscriptionResult:
    """Turn Azure's detailed JSON output into a TranscriptionResult"""
    if not json_result:
        raise ExternalServiceError(SERVICE_NAME, "no detailed result returned")

    try:
        azure_result = json.loads(json_result)
    except json.JSONDecodeError as e:
        raise ExternalServiceError(SERVICE_NAME, f"malformed detailed result: {e}")

    n_best = azure_result.get("NBest") or []
    if not n_best:
        raise ExternalServiceError(SERVICE_NAME, "detailed result had no NBest entries")

    best = n_best[0]
    alternatives = [
        TranscriptAlternative(
            transcript=candidate.get("Display", candidate.get("Lexical", "")),
            confidence=candidate.get("Confidence", 0),
        )
        for candidate in n_best[1:]
    ]

    return TranscriptionResult(
        transcript=best.get("Display", display_text or azure_result.get("DisplayText", "")),
        confidence=best.get("Confidence", 0),
        language_code=language_code,
        alternatives=alternatives,
    )
