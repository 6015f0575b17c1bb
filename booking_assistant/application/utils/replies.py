from __future__ import annotations

REPLIES: dict[str, dict[str, str]] = {
    "es": {
        "ask_name": "¡Hola! Soy el asistente de citas de {business}. Antes de empezar, ¿cuál es tu nombre?",
        "ask_name_again": "No logré entender tu nombre. ¿Me lo escribes de nuevo, por favor? (mínimo 3 letras)",
        "ask_name_repair": "Necesito confirmar tus datos. ¿Cuál es tu nombre?",
        "ask_email": "Gracias, {name}. ¿A qué correo te envío la invitación de tus citas?",
        "ask_email_again": "Ese correo no parece válido. ¿Me lo escribes de nuevo? (ejemplo: nombre@correo.com)",
        "welcome": "¡Listo, {name}! Ya puedes agendar, consultar, cambiar o cancelar tus citas. ¿En qué te ayudo?",
        "reset_done": "Listo, borré tu registro y tus citas. Escríbeme de nuevo cuando quieras empezar.",
        "need_date": "¿Para qué día y hora quieres la cita? Por ejemplo: \"mañana a las 3pm\".",
        "booked": "¡Listo, {name}! Tu cita quedó agendada para el {date}.",
        "slot_busy": "Ese horario ({date}) ya está ocupado. ¿Te sirve otra hora u otro día?",
        "slot_taken": "Alguien acaba de tomar ese horario ({date}). ¿Quieres probar con otra hora?",
        "no_appointments": "No tienes citas próximas agendadas.",
        "appointments_header": "Tus próximas citas:",
        "cancelled": "Listo, cancelé tu cita del {date}.",
        "nothing_to_cancel": "No encontré ninguna cita próxima para cancelar.",
        "rescheduled": "Listo, moví tu cita del {old_date} al {date}.",
        "nothing_to_move": "No tienes ninguna cita próxima para cambiar. ¿Quieres agendar una nueva?",
        "calendar_error": "Tuvimos un problema consultando la agenda. Por favor intenta de nuevo en unos minutos.",
        "store_error": "Tuvimos un problema guardando tu información. Por favor intenta de nuevo en unos minutos.",
        "fallback": "Disculpa, no te entendí bien. ¿Quieres agendar, consultar, cambiar o cancelar una cita?",
        "generic_error": "Lo siento, algo salió mal. Por favor intenta de nuevo en unos minutos.",
    },
    "en": {
        "ask_name": "Hi! I'm the booking assistant for {business}. Before we start, what's your name?",
        "ask_name_again": "I couldn't catch your name. Could you type it again, please? (at least 3 letters)",
        "ask_name_repair": "I need to confirm your details. What's your name?",
        "ask_email": "Thanks, {name}. Which email should I send your appointment invitations to?",
        "ask_email_again": "That email doesn't look valid. Could you type it again? (e.g. name@example.com)",
        "welcome": "All set, {name}! You can now book, check, move or cancel appointments. How can I help?",
        "reset_done": "Done, I deleted your profile and appointments. Message me again whenever you want to start.",
        "need_date": "Which day and time would you like? For example: \"tomorrow at 3pm\".",
        "booked": "All set, {name}! Your appointment is booked for {date}.",
        "slot_busy": "That time ({date}) is already taken. Would another time or day work?",
        "slot_taken": "Someone just took that time ({date}). Want to try another one?",
        "no_appointments": "You have no upcoming appointments.",
        "appointments_header": "Your upcoming appointments:",
        "cancelled": "Done, I cancelled your appointment on {date}.",
        "nothing_to_cancel": "I couldn't find any upcoming appointment to cancel.",
        "rescheduled": "Done, I moved your appointment from {old_date} to {date}.",
        "nothing_to_move": "You have no upcoming appointment to move. Would you like to book a new one?",
        "calendar_error": "We had trouble reaching the calendar. Please try again in a few minutes.",
        "store_error": "We had trouble saving your information. Please try again in a few minutes.",
        "fallback": "Sorry, I didn't quite get that. Do you want to book, check, move or cancel an appointment?",
        "generic_error": "Sorry, something went wrong. Please try again in a few minutes.",
    },
}


def render(key: str, language: str = "es", **params: str) -> str:
    templates = REPLIES.get(language) or REPLIES["es"]
    return templates[key].format(**params)
