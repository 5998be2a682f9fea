import uuid
from typing import Optional

FIRST_PRODUCT_ID = "000001"
ID_WIDTH = 6


def next_product_id(top_id: Optional[str]) -> str:
    """Return the id that follows ``top_id``, the greatest id in descending string order.

    Zero-padded numeric ids of equal width sort the same way as strings and as
    integers, so ``top_id`` is the numeric maximum while every id keeps that
    format. Anything else falls back to a random uppercase hex code.
    """
    if top_id is None:
        return FIRST_PRODUCT_ID
    if top_id.isascii() and top_id.isdigit():
        return str(int(top_id) + 1).zfill(ID_WIDTH)
    return random_product_id()


def random_product_id() -> str:
    return uuid.uuid4().hex[:ID_WIDTH].upper()
