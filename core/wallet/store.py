from __future__ import annotations

from typing import Iterable, List, Tuple

from receipt_normalizer import Receipt


class ReceiptStore:
    """
    Ordered, append-only receipt collection owned by the host session.

    No internal locking: hosts that can call append/clear concurrently
    must serialize those calls themselves.
    """

    def __init__(self) -> None:
        self._items: List[Receipt] = []

    def append(self, receipt: Receipt) -> None:
        self._items.append(receipt)

    def extend(self, receipts: Iterable[Receipt]) -> int:
        batch = list(receipts)
        self._items.extend(batch)
        return len(batch)

    def clear(self) -> None:
        self._items = []

    def snapshot(self) -> Tuple[Receipt, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)
