# tests/test_ids.py
import re

from catalog.ids import FIRST_PRODUCT_ID, next_product_id, random_product_id

HEX_ID = re.compile(r"^[0-9A-F]{6}$")


def test_first_id_when_empty():
    assert next_product_id(None) == FIRST_PRODUCT_ID == "000001"


def test_numeric_ids_increment_with_padding():
    assert next_product_id("000001") == "000002"
    assert next_product_id("000009") == "000010"
    assert next_product_id("000010") == "000011"
    assert next_product_id("000999") == "001000"


def test_non_numeric_top_id_falls_back_to_random_hex():
    for top in ("ABCDEF", "P00001", "12a456", "-00005", " 00005", "1_000"):
        new_id = next_product_id(top)
        assert HEX_ID.match(new_id), new_id
        assert new_id != top


def test_random_ids_are_uppercase_hex_and_vary():
    ids = {random_product_id() for _ in range(50)}
    assert all(HEX_ID.match(i) for i in ids)
    assert len(ids) > 1
