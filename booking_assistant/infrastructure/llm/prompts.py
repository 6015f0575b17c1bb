from __future__ import annotations

from datetime import datetime

from booking_assistant.domain.entities.conversation_turn import ConversationTurn, TurnRole


def build_intent_prompt(
    text: str,
    customer_name: str,
    history: list[ConversationTurn],
    now: datetime,
    business_name: str,
    language: str,
) -> str:
    offset = now.strftime("%z")
    offset = f"{offset[:3]}:{offset[3:]}" if offset else "+00:00"
    reply_language = "Spanish" if language == "es" else "English"

    lines = []
    for turn in history:
        speaker = "Customer" if turn.role == TurnRole.CUSTOMER else "Assistant"
        lines.append(f"  {speaker}: {turn.content}")
    history_block = "\n".join(lines) if lines else "  (no previous messages)"

    return (
        f"You are the appointment assistant of {business_name}, chatting with {customer_name} on WhatsApp.\n"
        "Return ONLY valid JSON. No markdown. No extra text.\n"
        "Output schema:\n"
        "  {\"intent\": \"booking|check|cancel|reschedule|chat\",\n"
        "   \"date\": \"YYYY-MM-DDTHH:MM:SS±HH:MM\" or null,\n"
        "   \"human_date\": \"...\" or null,\n"
        "   \"reply\": \"...\"}\n"
        "Rules:\n"
        "  - booking: the customer wants a new appointment.\n"
        "  - check: the customer asks which appointments they have.\n"
        "  - cancel: the customer wants to cancel their next appointment.\n"
        "  - reschedule: the customer wants to move their next appointment to another time.\n"
        "  - chat: anything else (greetings, questions, small talk).\n"
        f"  - Resolve relative dates against the current time {now.isoformat()}.\n"
        f"  - date MUST carry the UTC offset {offset}. Use null if no concrete day AND hour were given.\n"
        "  - Never invent a date the customer did not ask for.\n"
        f"  - reply: a short, warm message in {reply_language}, addressing the customer by first name.\n"
        "\n"
        "Recent conversation:\n"
        f"{history_block}\n"
        "\n"
        f"Customer message: {text}\n"
    )
