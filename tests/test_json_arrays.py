"""Tests du décodage tolérant des colonnes tableau."""

import pytest

from catalogo.persistence.errors import MalformedArrayDataError
from catalogo.persistence.json_arrays import (
    decode_copy_list,
    decode_json_array,
    decode_string_list,
    load_json_array,
)


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_values_are_empty(raw):
    assert load_json_array(raw) == []


def test_load_accepts_text_bytes_and_decoded_lists():
    assert load_json_array('["a", "b"]') == ["a", "b"]
    assert load_json_array(b'["a"]') == ["a"]
    # JSONB déjà décodé par le pilote
    assert load_json_array(["x", 1]) == ["x", 1]


@pytest.mark.parametrize("raw", ["not json", "{\"a\": 1}", "42", "null", b"\xff\xfe"])
def test_strict_load_rejects_non_arrays(raw):
    with pytest.raises(MalformedArrayDataError):
        load_json_array(raw)


def test_tolerant_decode_degrades_to_empty(caplog):
    assert decode_json_array("[1, 2", field="imageUrls", book_id=7) == []
    assert "imageUrls" in caplog.text
    assert "id=7" in caplog.text


def test_string_list_drops_blank_and_non_string_entries():
    raw = '["Narrativa", "", "  ", null, 3, "Classici"]'
    assert decode_string_list(raw, field="categoriesAI") == ["Narrativa", "Classici"]


def test_copy_list_keeps_only_objects_with_known_keys():
    raw = [
        {"anno": "1990"},
        {"prezzo": 5},
        {"condizioniLibro": "buone"},
        {"altro": 1},
        "stringa",
        None,
        [1],
    ]
    assert decode_copy_list(raw) == [
        {"anno": "1990"},
        {"prezzo": 5},
        {"condizioniLibro": "buone"},
    ]
