import re
from typing import List, Optional

from stravach.errors import GenerationFailed
from stravach.logging_config import get_logger
from stravach.models import UserActivity
from stravach.services.callback_codec import clean_name
from stravach.services.llm import LLMError, LLMProvider

logger = get_logger("name_service")

SYSTEM_PROMPT = "You are a helpful assistant that generates witty names for activities."

NAMES_PROMPT = (
    "Generate several new-line separated funny names for the following activity: {name}, "
    "of type {activity_type}, duration: {elapsed_time} seconds, distance: {distance_km:.1f} km, "
    "in {language} language. This is for my Strava. Return only the names, one per line."
)

CUSTOM_PROMPT = (
    "Generate up to three new-line separated names for the following activity: {name}, "
    "of type {activity_type}. Language: {language}. I want this to be used in names: '{prompt}'. "
    "If you think that what I suggested can be a name, just return it. "
    "If it's a long message that contains something that looks like a name, return it formatted "
    "(e.g. 'evening run' should be 'Evening Run'). "
    "Otherwise return just new names, nothing else should be included in the response."
)

# "1. ", "2) ", "- ", "* ", "--3-- " and similar list prefixes
_LIST_PREFIX = re.compile(r"^\s*[-*•(]*\s*(?:\d+\s*[.):\-]+\s*)?[-*•]*\s*")


def parse_names(content: str, max_options: int = 9) -> List[str]:
    """Split a completion into clean candidate names, dropping list markers and blanks."""
    names = []
    for line in content.splitlines():
        line = _LIST_PREFIX.sub("", line).strip().strip('"').strip()
        name = clean_name(line)
        if name and name not in names:
            names.append(name)
        if len(names) == max_options:
            break
    return names


class NameSuggestionService:
    """Turns an activity into an ordered list of name candidates."""

    def __init__(
        self,
        provider: LLMProvider,
        max_options: int = 9,
        timeout_seconds: float = 30.0,
        model: Optional[str] = None,
    ):
        self.provider = provider
        self.max_options = max_options
        self.timeout_seconds = timeout_seconds
        self.model = model

    def generate(self, activity: UserActivity, language: str) -> List[str]:
        prompt = NAMES_PROMPT.format(
            name=activity.name,
            activity_type=activity.activity_type or "workout",
            elapsed_time=activity.elapsed_time or 0,
            distance_km=(activity.distance or 0.0) / 1000,
            language=language,
        )
        return self._ask(prompt, activity.id)

    def generate_with_prompt(self, activity: UserActivity, language: str, prompt: str) -> List[str]:
        full_prompt = CUSTOM_PROMPT.format(
            name=activity.name,
            activity_type=activity.activity_type or "workout",
            language=language,
            prompt=prompt.strip(),
        )
        return self._ask(full_prompt, activity.id)

    def _ask(self, prompt: str, activity_id: Optional[int]) -> List[str]:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            response = self.provider.generate(messages, model=self.model, timeout_seconds=self.timeout_seconds)
        except LLMError as e:
            logger.warning(f"Name generation failed for activity {activity_id}: {e}")
            raise GenerationFailed(str(e)) from e

        names = parse_names(response.content, self.max_options)
        if not names:
            raise GenerationFailed("Language model returned no usable names")

        logger.info(
            "Generated names",
            extra={"context": {"activity_id": activity_id, "count": len(names), "model": response.model}},
        )
        return names
