"""LLM client implementing the reservation extraction service"""
import json
import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from .config import (
    LLM_MAX_INPUT_CHARS,
    LLM_MAX_RETRIES,
    LLM_MODEL,
    LLM_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
)
from .errors import ExtractionError
from .extraction import ExtractionContract

logger = logging.getLogger(__name__)


class LLMClient:
    """Client for OpenAI API (structured reservation extraction)"""

    def __init__(self,
                 api_key: Optional[str] = OPENAI_API_KEY,
                 model: str = LLM_MODEL,
                 timeout: float = LLM_TIMEOUT_SECONDS,
                 max_retries: int = LLM_MAX_RETRIES,
                 max_input_chars: int = LLM_MAX_INPUT_CHARS):
        if not api_key:
            raise ExtractionError("OPENAI_API_KEY not set in environment variables")
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self.model = model
        self.max_input_chars = max_input_chars

    def build_prompt(self, text: str, contract: ExtractionContract) -> str:
        fields_description = "\n".join([
            f"- {field_name}: {description}"
            for field_name, description in contract.fields.items()
        ])
        document_text = text[:self.max_input_chars]
        example_row = {field_name: "" for field_name in contract.fields}

        return f"""Document Text:
{document_text}

Fields to extract for each reservation:
{fields_description}

Return your response as a JSON object in this format:
{json.dumps({"reservations": [example_row]}, indent=2)}
"""

    def extract(self, text: str, contract: ExtractionContract) -> str:
        """
        Ask the model for the reservation rows of a control sheet

        Returns:
            The raw message content (normally a JSON string)

        Raises:
            ExtractionError: on API errors, timeouts or an empty answer
        """
        if len(text) > self.max_input_chars:
            logger.warning("Document text truncated from %d to %d chars", len(text), self.max_input_chars)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": contract.system_prompt},
                    {"role": "user", "content": self.build_prompt(text, contract)}
                ],
                response_format={"type": "json_object"},
                temperature=contract.temperature,
                max_tokens=contract.max_tokens,
            )
        except OpenAIError as e:
            raise ExtractionError(f"Extraction service call failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExtractionError("Extraction service returned an empty answer")
        return content
