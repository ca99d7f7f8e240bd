import logging

import config
from strings_loader import load_string_table, translate


def test_load_string_table(tmp_path):
    path = tmp_path / "strings.csv"
    path.write_text('key,en,ru\nreset,Reset,Сбросить\n,orphan,\nclear,"Clear, all",\n', encoding="utf-8")

    table = load_string_table(str(path))

    assert table == {"en": {"reset": "Reset", "clear": "Clear, all"}, "ru": {"reset": "Сбросить"}}


def test_missing_table_is_empty(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="strings_loader"):
        assert load_string_table(str(tmp_path / "absent.csv")) == {}
    assert "not found" in caplog.text


def test_translate_falls_back_to_english_then_default():
    table = {"en": {"reset": "Reset"}, "kk": {"clear": "Тазарту"}}
    assert translate(table, "kk", "clear") == "Тазарту"
    assert translate(table, "kk", "reset") == "Reset"
    assert translate(table, "kk", "missing", "fallback") == "fallback"
    assert translate({}, "ru", "reset", "Reset") == "Reset"


def test_bundled_table_has_all_languages():
    table = load_string_table(config.STRINGS_PATH)
    assert set(table) == {"en", "ru", "kk"}
    assert set(table["ru"]) == set(table["en"]) == set(table["kk"])
