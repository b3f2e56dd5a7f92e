"""Pre-debate research: one search-grounded Gemini call split into two briefings."""

import logging

import httpx

from ai_debate.models import ResearchBriefing
from ai_debate.providers.base import ProviderError
from ai_debate.providers.gemini import generate_content_url, send_generate_content, user_contents

logger = logging.getLogger(__name__)

AFFIRMATIVE_MARKER = "## Affirmative Arguments"
OPPOSITION_MARKER = "## Opposition Arguments"

DEFAULT_RESEARCH_MODEL = "gemini-2.0-flash"
DEFAULT_RESEARCH_PROMPT = (
    "Please perform a Google search to find the strongest arguments both FOR and AGAINST "
    "the topic: '{topic}'.\n\n"
    "Based on your search results, generate two concise, point-form summaries.\n\n"
    "The output MUST have two sections. Start the first section with the exact heading "
    "'## Affirmative Arguments' and the second with '## Opposition Arguments'.\n"
    "Respond in {language}."
)


class ResearchFailed(Exception):
    """Raised when no briefing could be produced for a topic."""


def parse_briefing(text: str) -> ResearchBriefing:
    """Split a research reply into affirmative and opposition arguments.

    When either heading is missing the whole text is used for both sides.
    """
    if AFFIRMATIVE_MARKER not in text or OPPOSITION_MARKER not in text:
        logger.warning("Research reply is missing section headings, using it for both sides")
        return ResearchBriefing(affirmative_arguments=text, opposition_arguments=text)

    head, tail = text.split(OPPOSITION_MARKER, 1)
    return ResearchBriefing(
        affirmative_arguments=head.replace(AFFIRMATIVE_MARKER, "").strip(),
        opposition_arguments=tail.strip(),
    )


class ResearchCollector:
    """Collects a two-sided briefing with Gemini search grounding."""

    def __init__(
        self,
        model_id: str = DEFAULT_RESEARCH_MODEL,
        prompt_template: str = DEFAULT_RESEARCH_PROMPT,
        language: str = "English",
        timeout_sec: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model_id = model_id
        self._prompt_template = prompt_template
        self._language = language
        self._timeout_sec = timeout_sec
        self._transport = transport

    def build_prompt(self, topic: str, language: str | None = None) -> str:
        return self._prompt_template.format(topic=topic, language=language or self._language)

    async def research(self, topic: str, credential: str | None, language: str | None = None) -> ResearchBriefing:
        """Run the research call for ``topic``.

        Raises:
            ResearchFailed: On a missing credential, any HTTP or transport
                failure, or a reply without candidate text.
        """
        if not credential:
            raise ResearchFailed("Gemini API key not configured")

        body = {
            "contents": user_contents(self.build_prompt(topic, language)),
            "tools": [{"googleSearch": {}}],
        }
        logger.info("Researching topic with %s", self._model_id)
        async with httpx.AsyncClient(timeout=self._timeout_sec, transport=self._transport) as client:
            request = client.build_request(
                "POST",
                generate_content_url(self._model_id),
                params={"key": credential},
                json=body,
            )
            try:
                text = await send_generate_content(client, "Gemini research", request)
            except ProviderError as exc:
                raise ResearchFailed(str(exc)) from exc

        briefing = parse_briefing(text)
        logger.info(
            "Research complete: %d chars affirmative, %d chars opposition",
            len(briefing.affirmative_arguments),
            len(briefing.opposition_arguments),
        )
        return briefing
