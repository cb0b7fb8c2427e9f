from __future__ import annotations

import re

_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
_NAME_RE = re.compile(r"^[^\W\d_]+(?:[ .'-][^\W\d_]+)*\.?$", re.UNICODE)

LANGUAGE_ALIASES = {
    "en": "en",
    "english": "en",
    "inglés": "en",
    "ingles": "en",
    "es": "es",
    "español": "es",
    "espanol": "es",
    "spanish": "es",
}


def clean_name(text: str) -> str | None:
    name = " ".join((text or "").split())
    if len(name) < 2 or len(name) > 60 or not _NAME_RE.match(name):
        return None
    return name


def clean_email(text: str) -> str | None:
    email = (text or "").strip()
    if len(email) > 254 or not _EMAIL_RE.match(email):
        return None
    return email.lower()


def clean_phone(text: str) -> str | None:
    """Digits only with an optional leading +, 10 to 15 digits."""
    raw = (text or "").strip()
    if not raw or re.search(r"[^\d\s()+.-]", raw):
        return None
    digits = re.sub(r"\D", "", raw)
    if not 10 <= len(digits) <= 15:
        return None
    return f"+{digits}" if raw.startswith("+") else digits


def clean_description(text: str) -> str | None:
    description = (text or "").strip()
    if len(description) < 5:
        return None
    return description[:2000]


def match_language(text: str) -> str | None:
    return LANGUAGE_ALIASES.get((text or "").strip().lower())
