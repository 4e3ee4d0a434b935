"""
Transcript analysis through the Anthropic Messages API
"""

import json
import re
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from meeting_copilot.config import settings
from meeting_copilot.core.exceptions import AnalysisServiceException
from meeting_copilot.core.logging import analysis_logger as logger
from meeting_copilot.schemas.meeting import Suggestions, Summary

LIVE_SYSTEM_PROMPT = """You extract meeting information in real time.
Turn transcript excerpts into JSON for the UI.
- Answer ONLY with JSON matching the LIVE schema, no text outside it.
- If the excerpt is noisy or uninformative, return empty arrays.
- Never invent assignees or dates that were not mentioned.
- Ignore unrelated asides (jokes, noise)."""

FINAL_SYSTEM_PROMPT = """You summarize meetings into a concise, actionable report.
- Output strict JSON matching the FINAL schema, no text outside it.
- No hallucinations: leave out what was not said.
- Write in the dominant language of the transcript.
- For topics, list the main themes with a short synthesis of each.
- Even for a short or informal conversation, summarize what was said."""

LIVE_SCHEMA = """{
  "topics": ["string"],
  "decisions": [{"text":"string","confidence":0.0}],
  "actions": [{"text":"string","assignee":"string|null","due_date":"YYYY-MM-DD|null","confidence":0.0}]
}"""

FINAL_SCHEMA = """{
  "summary": "string",
  "actions": [{"text":"string","assignee":"string|null","due_date":"YYYY-MM-DD|null","priority":"low|medium|high|null"}],
  "decisions": [{"text":"string"}],
  "open_questions": ["string"],
  "topics": [{"title":"string","summary":"string"}]
}"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Pull the outermost JSON object out of a model reply."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class AnalysisClient:
    """Calls Claude to extract live suggestions and final summaries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self.base_url = base_url or settings.anthropic_base_url
        self.timeout = timeout or settings.analysis_timeout
        self.transport = transport

    async def _complete(
        self, system: str, prompt: str, max_tokens: int, temperature: float
    ) -> str:
        if not self.api_key:
            raise AnalysisServiceException("Analysis service not configured")

        request_data = {
            "model": self.model,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self.transport,
            ) as client:
                response = await client.post("/v1/messages", json=request_data)
        except httpx.HTTPError as e:
            raise AnalysisServiceException(f"Analysis request failed: {e}") from e

        if response.status_code != 200:
            raise AnalysisServiceException(
                f"Analysis request failed: {response.status_code} - {response.text}"
            )

        try:
            data = response.json()
            blocks = data.get("content") or []
            text_blocks = [block.get("text", "") for block in blocks if block.get("type") == "text"]
        except (ValueError, AttributeError, TypeError) as e:
            raise AnalysisServiceException(f"Malformed analysis response: {e}") from e
        if not text_blocks or not isinstance(text_blocks[0], str):
            raise AnalysisServiceException("Unexpected analysis response")
        return text_blocks[0]

    async def analyze_live_transcript(self, transcript: str) -> Suggestions:
        """
        Extract topics, decisions and actions from a recent transcript window.

        Live suggestions are best effort: any failure yields empty suggestions.
        """
        prompt = (
            f"TRANSCRIPT_RAW:\n{transcript}\n\n"
            "If an item is repeated, return its shortest clear version.\n"
            'Use "confidence" in [0.0, 1.0] for decisions and actions.\n\n'
            f"Answer ONLY with valid JSON matching this schema:\n{LIVE_SCHEMA}"
        )
        try:
            reply = await self._complete(LIVE_SYSTEM_PROMPT, prompt, max_tokens=1024, temperature=0.2)
        except AnalysisServiceException as e:
            logger.error(f"Live analysis failed: {e.message}")
            return Suggestions()

        parsed = extract_json_object(reply)
        if parsed is None:
            logger.warning("No JSON object in live analysis reply")
            return Suggestions()
        try:
            return Suggestions(
                topics=parsed.get("topics") or [],
                decisions=parsed.get("decisions") or [],
                actions=parsed.get("actions") or [],
            )
        except ValidationError as e:
            logger.warning(f"Malformed live analysis reply: {e}")
            return Suggestions()

    async def generate_final_summary(
        self, transcript: List[str], validated: Optional[Suggestions] = None
    ) -> Summary:
        prompt = "TRANSCRIPT_FULL:\n" + "\n".join(transcript)
        if validated is not None:
            prompt += "\n\nUSER_VALIDATED_LISTS:\n" + validated.model_dump_json(indent=2)
        prompt += (
            "\n\nPrefer the VALIDATED items when given.\n"
            'List unanswered questions and follow-ups under "open_questions".\n\n'
            f"Answer ONLY with valid JSON matching this schema:\n{FINAL_SCHEMA}"
        )

        reply = await self._complete(FINAL_SYSTEM_PROMPT, prompt, max_tokens=4096, temperature=0.3)
        parsed = extract_json_object(reply)
        if parsed is None:
            raise AnalysisServiceException("No valid JSON found in summary reply")

        try:
            return Summary(
                summary=parsed.get("summary") or "",
                actions=parsed.get("actions") or [],
                decisions=parsed.get("decisions") or [],
                topics=parsed.get("topics") or [],
                open_questions=parsed.get("open_questions") or [],
            )
        except ValidationError as e:
            raise AnalysisServiceException(f"Malformed summary reply: {e}") from e


def get_analysis_client() -> AnalysisClient:
    return AnalysisClient()
