from __future__ import annotations

import logging
from datetime import datetime

from booking_assistant.application.exceptions import ResolverContractError, ResolverUpstreamError
from booking_assistant.application.ports.intent_resolver import IntentResolverPort
from booking_assistant.application.utils.replies import render
from booking_assistant.domain.entities.conversation_turn import ConversationTurn
from booking_assistant.domain.entities.intent import ChatIntent, ResolvedIntent


class ResolveIntentUseCase:
    def __init__(self, resolver: IntentResolverPort, language: str = "es") -> None:
        self._resolver = resolver
        self._language = language
        self._logger = logging.getLogger(__name__)

    def execute(
        self,
        text: str,
        customer_name: str,
        history: list[ConversationTurn],
        now: datetime,
    ) -> ResolvedIntent:
        """Resolve an intent; any resolver failure degrades to a chat fallback."""
        try:
            intent = self._resolver.resolve(text=text, customer_name=customer_name, history=history, now=now)
        except ResolverUpstreamError as e:
            self._logger.warning("Intent resolver unavailable", extra={"step": "resolver.resolve", "reason": str(e)})
            return self._fallback()
        except ResolverContractError as e:
            self._logger.warning("Intent resolver returned malformed output", extra={"step": "resolver.resolve", "reason": str(e)})
            return self._fallback()
        except Exception as e:
            self._logger.exception("Intent resolver crashed", extra={"step": "resolver.resolve", "reason": str(e)})
            return self._fallback()

        if isinstance(intent, ChatIntent) and not intent.reply_text.strip():
            return self._fallback()
        self._logger.info("Intent resolved", extra={"intent": intent.kind.value})
        return intent

    def _fallback(self) -> ChatIntent:
        return ChatIntent(reply_text=render("fallback", self._language), fallback=True)
