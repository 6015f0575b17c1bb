from __future__ import annotations

from datetime import datetime

from openai import OpenAI

from booking_assistant.application.exceptions import ResolverContractError, ResolverUpstreamError
from booking_assistant.application.ports.intent_resolver import IntentResolverPort
from booking_assistant.application.utils.intent_payload import parse_intent_json
from booking_assistant.core.config import settings
from booking_assistant.domain.entities.conversation_turn import ConversationTurn
from booking_assistant.domain.entities.intent import ResolvedIntent
from booking_assistant.infrastructure.llm.prompts import build_intent_prompt


class OpenAIIntentResolver(IntentResolverPort):
    """
    OpenAI-backed adapter implementing IntentResolverPort.

    Contract guarantees:
    - resolve returns one of the five intent variants
    - Raises:
        ResolverUpstreamError: networking/provider failures and timeouts (no automatic retries)
        ResolverContractError: invalid JSON or wrong schema/shape
    """

    def __init__(self, business_name: str | None = None, language: str | None = None) -> None:
        self.client = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.RESOLVER_TIMEOUT_SECONDS,
            max_retries=0,
        )
        self._business_name = business_name or settings.BUSINESS_NAME
        self._language = language or settings.REPLY_LANGUAGE

    def resolve(
        self,
        text: str,
        customer_name: str,
        history: list[ConversationTurn],
        now: datetime,
    ) -> ResolvedIntent:
        prompt = build_intent_prompt(
            text=text,
            customer_name=customer_name,
            history=history,
            now=now,
            business_name=self._business_name,
            language=self._language,
        )
        content = self._call_text(
            model=settings.OPENAI_MODEL_INTENT,
            prompt=prompt,
            temperature=settings.OPENAI_TEMPERATURE_INTENT,
        )
        return parse_intent_json(content)

    def _call_text(self, model: str, prompt: str, temperature: float) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": "Return only valid JSON. Do not include markdown or extra text."},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=400,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise ResolverUpstreamError(f"OpenAI API error: {e}") from e

        content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        if not content:
            raise ResolverContractError("Resolver returned empty response text.")

        return content
