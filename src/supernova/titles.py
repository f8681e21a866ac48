# src/supernova/titles.py
"""
Title Synthesizer: asks the completion service for a short session title
derived from the first user message.
"""

import logging

from .models import DEFAULT_SESSION_TITLE
from .providers.base import BaseCompletionProvider

logger = logging.getLogger(__name__)

DEFAULT_TITLE_MODEL = "gemini-2.5-flash"

TITLE_PROMPT_TEMPLATE = (
    'Analise a seguinte mensagem inicial de um chat e crie um título curto, elegante e relevante '
    '(máximo 4 palavras). Mensagem: "{first_message}". Retorne apenas o título.'
)


class TitleSynthesizer:
    """Produces session titles; never raises."""

    def __init__(self, provider: BaseCompletionProvider,
                 model: str = DEFAULT_TITLE_MODEL,
                 default_title: str = DEFAULT_SESSION_TITLE):
        self._provider = provider
        self._model = model
        self._default_title = default_title

    @property
    def default_title(self) -> str:
        return self._default_title

    async def synthesize(self, first_message: str) -> str:
        """
        Returns a title of at most a few words for ``first_message``.

        Any failure, and a blank reply, yields the default title.
        """
        prompt = TITLE_PROMPT_TEMPLATE.format(first_message=first_message)
        try:
            reply = await self._provider.complete(self._model, prompt)
        except Exception as e:
            logger.warning(f"Title synthesis failed, using default title: {e}")
            return self._default_title
        title = (reply or "").strip()
        if not title:
            logger.debug("Title synthesis returned an empty reply; using default title.")
            return self._default_title
        return title
