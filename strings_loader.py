import csv
import logging
import os
from typing import Dict

logger = logging.getLogger(__name__)

StringTable = Dict[str, Dict[str, str]]


def load_string_table(path: str) -> StringTable:
    """
    Reads the UI string table CSV (a `key` column plus one column per language code).
    Returns a dictionary mapping language code (e.g. "ru") to {key: text}.
    """
    if not os.path.exists(path):
        logger.warning("String table not found at %s", path)
        return {}

    with open(path, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)
        languages = [name for name in (reader.fieldnames or []) if name != "key"]
        table: StringTable = {lang: {} for lang in languages}

        for row in reader:
            key = (row.get("key") or "").strip()
            if not key:
                continue
            for lang in languages:
                text = row.get(lang)
                if text and text.strip():
                    table[lang][key] = text.strip()

    return table


def translate(table: StringTable, language: str, key: str, default: str = "") -> str:
    """Language entry, then the English entry, then `default`."""
    text = table.get(language, {}).get(key)
    if text:
        return text
    return table.get("en", {}).get(key, default)
