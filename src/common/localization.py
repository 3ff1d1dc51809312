# src/common/localization.py
"""
Модуль локализации.
Загружает тексты уведомлений из config/lang_dict.json.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

FALLBACK_LANGUAGE = "pl"


def get_lang_dict_path() -> Path:
    """Возвращает путь к файлу локализации."""
    return Path(__file__).parent.parent.parent / "config" / "lang_dict.json"


@lru_cache()
def load_lang_dict() -> dict[str, dict[str, str]]:
    """
    Загружает словарь локализации из JSON файла.
    Кэширует результат.

    Returns:
        Словарь {ключ: {язык: текст}}
    """
    lang_path = get_lang_dict_path()
    if not lang_path.exists():
        raise FileNotFoundError(f"Файл локализации не найден: {lang_path}")

    with open(lang_path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_text(
    key: str,
    lang: str = FALLBACK_LANGUAGE,
    default: str | None = None,
    **kwargs: Any,
) -> str:
    """
    Получает локализованный текст по ключу.

    Args:
        key: Ключ перевода
        lang: Код языка (pl, en)
        default: Значение по умолчанию, если ключ не найден
        **kwargs: Параметры для форматирования строки

    Returns:
        Локализованный текст

    Example:
        >>> get_text("JOIN_OFFER_REQUESTED", "en", origin="Warsaw", destination="Krakow", date="2024-06-01")
        "A user joined your offer from Warsaw to Krakow on 2024-06-01."
    """
    try:
        translations = load_lang_dict().get(key)
    except FileNotFoundError:
        translations = None

    if not translations:
        return default if default else f"[{key}]"

    text = translations.get(lang) or translations.get(FALLBACK_LANGUAGE)
    if not text:
        text = next(iter(translations.values()), f"[{key}]")

    if kwargs:
        try:
            text = text.format(**kwargs)
        except KeyError:
            # Шаблон без части параметров: отдаём как есть
            pass

    return text


def get_available_languages() -> list[str]:
    """Возвращает список языков, для которых есть переводы."""
    languages: set[str] = set()
    for translations in load_lang_dict().values():
        languages.update(translations.keys())
    return sorted(languages)
