"""
Question sources for the answering phase.
"""

import asyncio
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from collections import deque
from typing import List, Optional, Sequence

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import QuestionGenerationFailed
from .models import Question

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
THEMES = (
    "history, science, geography, sport, cinema, music, food, technology, "
    "nature, world records, company trivia, biology, astronomy"
)


class QuestionSource(ABC):
    """Something that can come up with a new trivia question."""

    @abstractmethod
    async def generate(self, used_questions: Sequence[str]) -> Question:
        """
        Produce a question that is not in ``used_questions``, best effort.

        Raises:
            QuestionGenerationFailed: On any failure, including malformed output
        """
        pass


class QuestionHistory:
    """Bounded FIFO of recently asked question texts, oldest evicted first."""

    def __init__(self, capacity: int):
        self._items = deque(maxlen=capacity)

    def record(self, question_text: str):
        if self._items.maxlen:
            self._items.append(question_text)

    def snapshot(self) -> List[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class QuestionPayload(BaseModel):
    """Shape the generator must answer with."""
    model_config = ConfigDict(str_strip_whitespace=True)

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    hint: str = ""

    @field_validator('question', 'answer', 'hint', mode='before')
    @classmethod
    def numbers_as_text(cls, v):
        # Generators like to answer 206 instead of "206"
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if v is None:
            return ""
        return v


def build_question_prompt(used_questions: Sequence[str]) -> str:
    """Prompt asking for one trivia question as strict JSON."""
    used = ""
    if used_questions:
        used = f"Do NOT repeat any of these questions already asked: {'; '.join(used_questions)}. "

    return f"""{used}Write ONE trivia question for a party game between adult friends.

REQUIREMENTS:
- Pick a theme at random among: {THEMES}
- MEDIUM difficulty: not trivial, but not for specialists either
- The answer should surprise whoever does not know it
- Avoid very well known questions

CRITICAL RULE: the answer must be ONLY a bare number or a very short name. NEVER include units
or words like "years", "litres", "km/h", "metres", "kg" in the answer. Players type plain answers
such as "4" or "160"; an answer like "4 years" would stand out among theirs. Put the unit in the
question text instead.

GOOD EXAMPLES:
"In what year was IKEA founded?" -> "1943"
"How fast, in km/h, does an average sneeze travel?" -> "160"
"How many years did Da Vinci spend painting the Mona Lisa?" -> "4"

Reply ONLY with valid JSON and nothing else: {{"question": "...", "answer": "...", "hint": "a short curious sentence explaining the answer"}}"""


def parse_question_response(text: str) -> Question:
    """
    Parse the generator's reply into a Question.

    Code fences around the JSON are tolerated.

    Raises:
        QuestionGenerationFailed: If the reply is not the expected JSON object
    """
    if not isinstance(text, str):
        raise QuestionGenerationFailed("Question reply is not text")

    clean = re.sub(r"```(?:json)?", "", text).strip()
    try:
        data = json.loads(clean)
        if not isinstance(data, dict):
            raise ValueError("Question reply is not a JSON object")
        payload = QuestionPayload.model_validate(data)
    except ValueError as e:
        raise QuestionGenerationFailed(f"Malformed question reply: {e}")

    return Question(question=payload.question, answer=payload.answer, hint=payload.hint)


class AnthropicQuestionSource(QuestionSource):
    """Generates questions through the Anthropic Messages HTTP API."""

    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        max_tokens: int = 300,
        timeout: float = 30.0
    ):
        self.api_key = (api_key or "").strip()
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not set; every round will use the fallback question.")

    @classmethod
    def from_env(cls) -> "AnthropicQuestionSource":
        return cls(
            api_key=os.getenv("ANTHROPIC_API_KEY"),
            model=os.getenv("FICHY_QUESTION_MODEL", DEFAULT_MODEL)
        )

    async def generate(self, used_questions: Sequence[str]) -> Question:
        if not self.api_key:
            raise QuestionGenerationFailed("Question generation is not configured")
        prompt = build_question_prompt(used_questions)
        text = await asyncio.to_thread(self._request, prompt)
        return parse_question_response(text)

    def _request(self, prompt: str) -> str:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            response = requests.post(self.API_URL, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()["content"][0]["text"]
        except requests.RequestException as e:
            raise QuestionGenerationFailed(f"Question request failed: {e}")
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise QuestionGenerationFailed(f"Unexpected question response: {e}")
