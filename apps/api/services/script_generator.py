"""
Script Generator: one spoken line per habit, in the narrator's voice.

Single-shot: no retries here. A failure belongs to the
one habit being scripted and is recorded against that clip.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from core.config import settings
from services.audio_errors import ScriptGenerationFailed
from services.habit_resolver import ScheduledHabit

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7

# Appended to every narrator's role prompt. System-wide, not per narrator.
DIRECTIVE_INSTRUCTION = (
    "When given a Task, you should respond with a sentence that directs someone "
    "to do that Task. For example: 'User': 'Work', 'Your response': "
    "'It's time to get back to work.', but styled in a way that matches your given role."
)


def _one_line(text: str) -> str:
    return text.replace("\n", " | ")


def build_messages(narrator, habit: ScheduledHabit) -> List[Dict[str, str]]:
    """System message = role prompt + directive; user message = habit (+ style guidance)."""
    system_prompt = f"{narrator.role_prompt.strip()} {DIRECTIVE_INSTRUCTION}"

    parts = [f"Habit: {habit.event}"]
    if narrator.style_prompt and narrator.style_prompt.strip():
        parts.append(f"\nStyle guidance: {narrator.style_prompt.strip()}")
    instructions = "\n".join(parts)

    logger.info(f"System prompt: {_one_line(system_prompt)}")
    logger.info(f"Instructions for script generation: {_one_line(instructions)}")

    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": instructions},
    ]


def _extract_content(payload: Any) -> Optional[str]:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(content, str):
        return None
    content = content.strip()
    return content or None


class ScriptGenerator:
    """Calls a chat-completions style endpoint with bearer auth."""

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str,
        model: str,
        timeout_s: float = 30.0,
        http: Any = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout_s = timeout_s
        self.http = http or requests

    @classmethod
    def from_settings(cls, http: Any = None) -> "ScriptGenerator":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            api_url=settings.SCRIPT_API_URL,
            model=settings.TTS_SCRIPT_MODEL,
            timeout_s=settings.SCRIPT_REQUEST_TIMEOUT_S,
            http=http,
        )

    def generate(self, narrator, habit: ScheduledHabit) -> str:
        if not self.api_key:
            raise ScriptGenerationFailed("OPENAI_API_KEY is not configured")

        messages = build_messages(narrator, habit)
        temperature = narrator.temperature
        if not isinstance(temperature, (int, float)) or isinstance(temperature, bool):
            temperature = DEFAULT_TEMPERATURE

        logger.info(
            f"Requesting script for {habit.label} ({habit.event}) using narrator \"{narrator.name}\""
        )
        try:
            r = self.http.post(
                self.api_url,
                json={
                    "model": self.model,
                    "messages": messages,
                    "temperature": temperature,
                },
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                timeout=self.timeout_s,
            )
            r.raise_for_status()
            payload = r.json()
        except requests.RequestException as e:
            raise ScriptGenerationFailed(f"Script request failed: {e}") from e
        except ValueError as e:
            raise ScriptGenerationFailed(f"Script response was not JSON: {e}") from e

        script = _extract_content(payload)
        if not script:
            raise ScriptGenerationFailed("No script returned from text generation service")

        logger.info(f"Script generated for {habit.label}: {len(script)} chars")
        logger.info(f"Script: {_one_line(script)}")
        return script
