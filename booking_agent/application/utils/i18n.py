from __future__ import annotations

SUPPORTED_LANGUAGES = ("en", "es")
DEFAULT_LANGUAGE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "language_prompt": "Welcome! Please choose your language. / ¡Bienvenido! Elige tu idioma.",
        "language_invalid": "Please choose English or Español using the buttons.",
        "main_menu": "Hi! 👋 How can we help you today?",
        "main_menu_button": "Menu",
        "menu_book": "Book appointment",
        "menu_reschedule": "Reschedule",
        "menu_cancel": "Cancel appointment",
        "menu_help": "Help",
        "menu_language": "Change language",
        "booking_menu": "How would you like to pick a time?",
        "booking_next_available": "Next available",
        "booking_pick_date": "Choose a date",
        "home": "Main menu",
        "try_again": "Try again",
        "show_more": "Show more ➡️",
        "select": "Select",
        "choose_service": "📋 Please choose a service:",
        "choose_staff": "👤 Who would you like to book with?",
        "choose_month": "🗓️ Which month works for you?",
        "choose_date": "📅 Please choose a date:",
        "choose_slot": "⏰ Please choose a time slot:",
        "no_services": "Sorry, no services are available right now.",
        "no_staff": "Sorry, nobody is available for this service right now.",
        "no_slots": "Sorry, there are no open slots in the next {days} days.",
        "no_slots_on_date": "Sorry, there are no open slots on {date}. Please choose another date.",
        "no_more_slots": "There are no more open slots. Please choose from the list above.",
        "no_more_dates": "There are no more dates this month.",
        "ask_name": "Great choice! You picked {slot}.\nPlease type your full name.",
        "invalid_name": "Please enter a valid name (letters only, at least 2 characters).",
        "ask_email": "Thanks, {name}! Please type your email address.",
        "invalid_email": "That email doesn't look right. Please try again (e.g. name@example.com).",
        "ask_phone": "Please type your phone number with country code, or tap the button to use this number.",
        "use_this_number": "Use this number",
        "invalid_phone": "Please enter a valid phone number (10 to 15 digits).",
        "too_many_attempts": "Too many invalid attempts. Your request has been cancelled. Send any message to start again.",
        "payment_required": "💳 {service} costs {amount} {currency}.\nPlease complete your payment here:\n{url}\n\nTap \"I've paid\" once done.",
        "payment_done": "I've paid",
        "payment_pending": "We haven't received your payment yet. Please complete it here:\n{url}",
        "payment_unavailable": "Sorry, we couldn't start the payment. Please try again later.",
        "booking_confirmed": "✅ Your appointment is booked!\n📋 {service}\n📅 {slot}\n🔖 Reference: {booking_id}",
        "booking_link": "View booking",
        "booking_failed": "❌ Sorry, we couldn't complete your booking. Please start again.",
        "booking_failed_after_payment": "❌ Your payment was received but the booking failed. Our team will contact you. Payment reference: {payment_id}",
        "ask_lookup_email": "Please type the email address you used when booking.",
        "no_appointments": "We couldn't find any upcoming appointments for {email}.",
        "choose_appointment_reschedule": "Which appointment would you like to reschedule?",
        "choose_appointment_cancel": "Which appointment would you like to cancel?",
        "choose_new_slot": "⏰ Please choose a new time:",
        "rescheduled": "✅ Your appointment {booking_id} has been moved to {slot}.",
        "reschedule_failed": "❌ Sorry, we couldn't reschedule your appointment. Please start again.",
        "cancelled": "✅ Your appointment {booking_id} has been cancelled.",
        "cancel_failed": "❌ Sorry, we couldn't cancel your appointment. Please start again.",
        "help_ask_name": "We're here to help. Please type your name.",
        "help_ask_email": "Please type your email address so we can reach you.",
        "help_ask_description": "Please describe how we can help you.",
        "invalid_description": "Please describe your request in a few words.",
        "help_created": "🎫 Thanks! Your request {ticket} has been received. Our team will contact you soon.",
        "help_failed": "Sorry, we couldn't register your request right now. Please try again later.",
        "try_again_prompt": "⚠️ We're having trouble reaching our booking system. Please try again in a moment.",
        "session_error": "Something went wrong with your request. Let's start over.",
        "generic_error": "Sorry, something went wrong. Please send a message to start again.",
        "minutes": "{minutes} min",
    },
    "es": {
        "language_prompt": "Welcome! Please choose your language. / ¡Bienvenido! Elige tu idioma.",
        "language_invalid": "Por favor elige English o Español con los botones.",
        "main_menu": "¡Hola! 👋 ¿Cómo podemos ayudarte hoy?",
        "main_menu_button": "Menú",
        "menu_book": "Reservar cita",
        "menu_reschedule": "Cambiar cita",
        "menu_cancel": "Cancelar cita",
        "menu_help": "Ayuda",
        "menu_language": "Cambiar idioma",
        "booking_menu": "¿Cómo quieres elegir el horario?",
        "booking_next_available": "Próximo disponible",
        "booking_pick_date": "Elegir fecha",
        "home": "Menú principal",
        "try_again": "Reintentar",
        "show_more": "Ver más ➡️",
        "select": "Elegir",
        "choose_service": "📋 Por favor elige un servicio:",
        "choose_staff": "👤 ¿Con quién quieres reservar?",
        "choose_month": "🗓️ ¿Qué mes te conviene?",
        "choose_date": "📅 Por favor elige una fecha:",
        "choose_slot": "⏰ Por favor elige un horario:",
        "no_services": "Lo sentimos, no hay servicios disponibles ahora.",
        "no_staff": "Lo sentimos, no hay nadie disponible para este servicio ahora.",
        "no_slots": "Lo sentimos, no hay horarios libres en los próximos {days} días.",
        "no_slots_on_date": "Lo sentimos, no hay horarios libres el {date}. Elige otra fecha.",
        "no_more_slots": "No hay más horarios libres. Elige uno de la lista anterior.",
        "no_more_dates": "No hay más fechas este mes.",
        "ask_name": "¡Buena elección! Elegiste {slot}.\nPor favor escribe tu nombre completo.",
        "invalid_name": "Por favor escribe un nombre válido (solo letras, mínimo 2 caracteres).",
        "ask_email": "¡Gracias, {name}! Por favor escribe tu correo electrónico.",
        "invalid_email": "Ese correo no parece válido. Inténtalo de nuevo (ej. nombre@ejemplo.com).",
        "ask_phone": "Escribe tu teléfono con código de país, o toca el botón para usar este número.",
        "use_this_number": "Usar este número",
        "invalid_phone": "Por favor escribe un teléfono válido (de 10 a 15 dígitos).",
        "too_many_attempts": "Demasiados intentos inválidos. Tu solicitud fue cancelada. Envía un mensaje para empezar de nuevo.",
        "payment_required": "💳 {service} cuesta {amount} {currency}.\nCompleta tu pago aquí:\n{url}\n\nToca \"Ya pagué\" cuando termines.",
        "payment_done": "Ya pagué",
        "payment_pending": "Aún no recibimos tu pago. Complétalo aquí:\n{url}",
        "payment_unavailable": "Lo sentimos, no pudimos iniciar el pago. Inténtalo más tarde.",
        "booking_confirmed": "✅ ¡Tu cita está reservada!\n📋 {service}\n📅 {slot}\n🔖 Referencia: {booking_id}",
        "booking_link": "Ver reserva",
        "booking_failed": "❌ Lo sentimos, no pudimos completar tu reserva. Empieza de nuevo.",
        "booking_failed_after_payment": "❌ Recibimos tu pago pero la reserva falló. Nuestro equipo te contactará. Referencia de pago: {payment_id}",
        "ask_lookup_email": "Escribe el correo electrónico que usaste al reservar.",
        "no_appointments": "No encontramos citas próximas para {email}.",
        "choose_appointment_reschedule": "¿Qué cita quieres cambiar?",
        "choose_appointment_cancel": "¿Qué cita quieres cancelar?",
        "choose_new_slot": "⏰ Por favor elige un nuevo horario:",
        "rescheduled": "✅ Tu cita {booking_id} se cambió a {slot}.",
        "reschedule_failed": "❌ Lo sentimos, no pudimos cambiar tu cita. Empieza de nuevo.",
        "cancelled": "✅ Tu cita {booking_id} fue cancelada.",
        "cancel_failed": "❌ Lo sentimos, no pudimos cancelar tu cita. Empieza de nuevo.",
        "help_ask_name": "Estamos para ayudarte. Escribe tu nombre.",
        "help_ask_email": "Escribe tu correo electrónico para contactarte.",
        "help_ask_description": "Describe en qué podemos ayudarte.",
        "invalid_description": "Describe tu solicitud en pocas palabras.",
        "help_created": "🎫 ¡Gracias! Recibimos tu solicitud {ticket}. Nuestro equipo te contactará pronto.",
        "help_failed": "Lo sentimos, no pudimos registrar tu solicitud ahora. Inténtalo más tarde.",
        "try_again_prompt": "⚠️ Tenemos problemas para conectar con el sistema de reservas. Inténtalo en un momento.",
        "session_error": "Algo salió mal con tu solicitud. Empecemos de nuevo.",
        "generic_error": "Lo sentimos, algo salió mal. Envía un mensaje para empezar de nuevo.",
        "minutes": "{minutes} min",
    },
}


def normalize_language(value: str | None) -> str:
    if value and value.lower()[:2] in SUPPORTED_LANGUAGES:
        return value.lower()[:2]
    return DEFAULT_LANGUAGE


def translate(key: str, language: str | None, **params: object) -> str:
    pack = MESSAGES[normalize_language(language)]
    template = pack.get(key) or MESSAGES[DEFAULT_LANGUAGE].get(key) or key
    return template.format(**params) if params else template
