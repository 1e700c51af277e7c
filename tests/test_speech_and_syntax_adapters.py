import json
import threading
import pytest
import spacy
from unittest.mock import Mock, patch

from tutor_assessment.core.errors import ExternalServiceError
from tutor_assessment.services.syntax_service import (
    SpacySyntaxService,
    entity_complexity,
    phrase_relevance,
)
from tutor_assessment.services.transcription_service import (
    AzureTranscriptionService,
    parse_azure_result,
)
from tests.helpers import make_pcm_audio


class TestAzureTranscription:

    def test_detailed_result_is_parsed(self):
        json_result = json.dumps({
            "DisplayText": "I went to the market.",
            "NBest": [
                {"Display": "I went to the market.", "Lexical": "i went to the market", "Confidence": 0.92},
                {"Display": "I want to the market.", "Lexical": "i want to the market", "Confidence": 0.61},
            ],
        })

        result = parse_azure_result(json_result, "I went to the market.", "en-US")

        assert result.transcript == "I went to the market."
        assert result.confidence == pytest.approx(0.92)
        assert result.language_code == "en-US"
        assert [alt.transcript for alt in result.alternatives] == ["I want to the market."]

    @pytest.mark.parametrize("json_result", [None, "", "{not json", json.dumps({"NBest": []})])
    def test_unusable_results_raise(self, json_result):
        with pytest.raises(ExternalServiceError) as exc_info:
            parse_azure_result(json_result, "", "en-US")

        assert exc_info.value.service == "speech-to-text"

    async def test_missing_key_raises_before_calling_azure(self):
        service = AzureTranscriptionService(speech_key="")

        with patch.object(service, "_recognize") as recognize:
            with pytest.raises(ExternalServiceError):
                await service.transcribe_audio(make_pcm_audio(1), "en-US", 16000)

        recognize.assert_not_called()

    async def test_empty_audio_raises(self):
        service = AzureTranscriptionService(speech_key="test_azure_key", region="eastus")

        with pytest.raises(ExternalServiceError):
            await service.transcribe_audio(b"", "en-US", 16000)


class TestSpacySyntaxService:

    def test_entity_complexity(self):
        assert entity_complexity("GPE") == "basic"
        assert entity_complexity("ORG") == "intermediate"
        assert entity_complexity("WORK_OF_ART") == "advanced"

    def test_phrase_relevance(self):
        assert phrase_relevance("the market") == pytest.approx(0.5)
        assert phrase_relevance("old market") == pytest.approx(1.0)
        assert phrase_relevance("") == 0.0

    async def test_non_english_text_is_rejected(self):
        service = SpacySyntaxService()

        with pytest.raises(ExternalServiceError) as exc_info:
            await service.detect_syntax("Je suis allé au marché.", "fr-FR")

        assert exc_info.value.service == "syntax"

    async def test_missing_model_raises_service_error(self):
        service = SpacySyntaxService(model_name="en_missing_model")

        with patch("tutor_assessment.services.syntax_service.spacy.load", side_effect=OSError("not found")):
            with pytest.raises(ExternalServiceError):
                await service.detect_entities("I live in Paris.", "en-US")

    async def test_tokens_carry_offsets(self):
        service = SpacySyntaxService()
        service.nlp_processor = spacy.blank("en")

        analysis = await service.detect_syntax("He don't like it.", "en-US")

        assert [token.text for token in analysis.tokens][:2] == ["He", "do"]
        assert analysis.tokens[0].begin_offset == 0
        assert analysis.tokens[0].end_offset == 2
        assert analysis.confidence == pytest.approx(0.85)
        assert analysis.entities == []

    async def test_model_loads_off_the_event_loop_thread(self):
        service = SpacySyntaxService()
        loaded_on = []

        def fake_load(name):
            loaded_on.append(threading.current_thread())
            return spacy.blank("en")

        with patch("tutor_assessment.services.syntax_service.spacy.load", side_effect=fake_load):
            await service.detect_syntax("I live in Paris.", "en-US")
            await service.detect_syntax("I live in Rome.", "en-US")

        assert len(loaded_on) == 1
        assert loaded_on[0] is not threading.main_thread()

    async def test_entities_and_key_phrases_share_one_parse(self):
        doc = Mock()
        doc.ents = []
        doc.noun_chunks = []
        service = SpacySyntaxService()
        service.nlp_processor = Mock(return_value=doc)

        entities, key_phrases = await service.detect_entities_and_key_phrases("I visited the old market.", "en-US")

        assert entities == []
        assert key_phrases == []
        service.nlp_processor.assert_called_once_with("I visited the old market.")
