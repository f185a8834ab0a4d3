"""
OpenAI service for JobTracker
Handles AI extraction of structured job information from posting pages
"""

import os
import json
import logging
from typing import Dict, Any, Optional

from openai import OpenAI
from openai.types.chat import ChatCompletion

from jobtracker.errors import UpstreamFailure
from jobtracker.models.posting import ParsedJobPosting

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 15000

JOB_POSTING_PROMPT = """
You are an expert job posting analyzer. Extract structured information from job postings.
Your task is to analyze the HTML content of a job posting and extract the following information:

1. Company name
2. Job position/title
3. Location (including remote if specified)
4. Salary information (if available)
5. Job description (summarized in 3-4 sentences)
6. Key requirements (as bullet points)
7. Qualifications (as bullet points)

Return the information in JSON format with the following keys:
{
  "company": string,
  "position": string,
  "location": string,
  "salary": string or null if not found,
  "description": string,
  "requirements": array of strings,
  "qualifications": array of strings
}

If you cannot determine a particular field, use null for that field.
Do not include any explanations or additional information outside the JSON object.
"""


def _clean_posting(data: Dict[str, Any]) -> ParsedJobPosting:
    """Coerce a model reply into ParsedJobPosting; nulls and stray types become empty."""
    fields = {}
    for key in ("company", "position", "location", "salary", "description"):
        value = data.get(key)
        fields[key] = str(value).strip() if value not in (None, "") else None
    for key in ("requirements", "qualifications"):
        items = data.get(key)
        if isinstance(items, str):
            items = [items]
        fields[key] = [str(item).strip() for item in items or [] if str(item).strip()] if isinstance(items, list) else []
    return ParsedJobPosting(**fields)


class OpenAIService:
    """Service for OpenAI API interactions"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.client = OpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"))
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")  # Default model for cost/speed balance

    async def analyze_job_posting(self, content: str, url: Optional[str] = None) -> ParsedJobPosting:
        """
        Extract company, position and the rest of a posting from page content
        """
        user_message = f"Job URL: {url or ''}\n\nHTML Content: {content[:MAX_CONTENT_CHARS]}"
        response = await self._get_chat_completion(
            system_prompt=JOB_POSTING_PROMPT,
            user_message=user_message,
            response_format={"type": "json_object"},
            max_tokens=1500,
        )
        if response is None:
            raise UpstreamFailure("Failed to analyze job content")

        try:
            data = json.loads(response)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing OpenAI response: {e}")
            raise UpstreamFailure("Failed to parse job information") from e
        if not isinstance(data, dict):
            logger.error(f"Unexpected OpenAI response shape: {type(data).__name__}")
            raise UpstreamFailure("Failed to parse job information")

        posting = _clean_posting(data)
        logger.info(f"AI extraction results - Position: {posting.position}, Company: {posting.company}")
        return posting

    async def _get_chat_completion(
        self,
        system_prompt: str,
        user_message: str,
        response_format: Optional[Dict[str, str]] = None,
        max_tokens: int = 500,
    ) -> Optional[str]:
        """
        Get chat completion from OpenAI API

        Args:
            system_prompt: The system prompt to guide the model
            user_message: The user message to respond to
            response_format: Optional format specification, e.g. {"type": "json_object"}
        """
        try:
            params = {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message}
                ],
                "max_tokens": max_tokens,
                "temperature": 0.1
            }

            # Add response_format if specified
            if response_format:
                params["response_format"] = response_format

            response: ChatCompletion = self.client.chat.completions.create(**params)

            return response.choices[0].message.content

        except Exception as e:
            logger.error(f"OpenAI API error: {str(e)}")
            return None
