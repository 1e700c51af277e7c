import re
import asyncio
import json
import logging
import aiohttp
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from tutor_assessment.core.config import (
    OPENAI_API_KEY,
    OPENAI_API_URL,
    OPENAI_MAX_RETRIES,
    OPENAI_MODEL,
    OPENAI_TIMEOUT_SECONDS,
)
from tutor_assessment.core.errors import ExternalServiceError

# Setup logging
logger = logging.getLogger(__name__)

SERVICE_NAME = "language-model"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LanguageModelClient:
    """Chat-completions client for the language model critique service"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else OPENAI_API_KEY
        self.api_url = api_url or OPENAI_API_URL
        self.model = model or OPENAI_MODEL
        self.max_retries = OPENAI_MAX_RETRIES if max_retries is None else max_retries
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or OPENAI_TIMEOUT_SECONDS)

    async def complete(self, prompt: str) -> str:
        """Call the API with a retry mechanism for format validation and return the raw content"""
        if not self.api_key:
            raise ExternalServiceError(SERVICE_NAME, "no API key configured")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}"
        }

        current_prompt = prompt
        last_error = "no attempts made"

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                format_emphasis = """
                IMPORTANT: Your previous response was not in the expected JSON format.
                You MUST ONLY return a valid JSON object without any explanation text, markdown formatting, or code blocks.
                DO NOT include ```json or ``` markers.
                ONLY return the raw JSON object.
                """
                current_prompt = format_emphasis + "\n\n" + prompt

            logger.info(f"Language model call attempt {attempt + 1}/{self.max_retries + 1}")

            payload = {
                "model": self.model,
                "messages": [{"role": "user", "content": current_prompt}],
                "temperature": 0.1,
                "response_format": {"type": "json_object"}
            }

            try:
                async with aiohttp.ClientSession(timeout=self.timeout) as session:
                    async with session.post(self.api_url, headers=headers, json=payload) as response:
                        if response.status != 200:
                            error_content = await response.text()
                            last_error = f"HTTP {response.status}: {error_content[:200]}"
                            logger.error(f"API error: {last_error}")
                            continue

                        result = await response.json()
                        content = result.get("choices", [{}])[0].get("message", {}).get("content", "")

                        if extract_json_object(content) is None:
                            last_error = "response did not contain a JSON object"
                            logger.warning(f"Invalid format on attempt {attempt + 1}: {content[:200]}")
                            continue

                        return content

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = str(e) or e.__class__.__name__
                logger.error(f"Error in API call: {last_error}")

        raise ExternalServiceError(SERVICE_NAME, last_error)


def extract_json_object(content: str) -> Optional[dict]:
    """Pull the first JSON object out of a model response, tolerating code fences"""
    if not content:
        return None

    if "```" in content:
        match = re.search(r"```(?:json)?\s*(.*?)\s*```", content, re.DOTALL)
        if match:
            content = match.group(1)

    match = re.search(r"\{[\s\S]*\}", content)
    if not match:
        return None

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON: {e}")
        return None

    return parsed if isinstance(parsed, dict) else None


def parse_model_payload(content: str, schema: Type[SchemaT]) -> Optional[SchemaT]:
    """Validate a model response against a strict schema; None when it does not fit"""
    parsed = extract_json_object(content)
    if parsed is None:
        return None

    try:
        return schema.model_validate(parsed)
    except ValidationError as e:
        logger.warning(f"Language model payload rejected by {schema.__name__}: {e.error_count()} errors")
        return None
