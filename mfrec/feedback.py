from __future__ import annotations

import csv
import logging
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from .mapping import EntityMapping


logger = logging.getLogger(__name__)

IndexPair = Tuple[int, int]  # (user_idx, item_idx)

USER_KEYS = ["userId", "UserID", "User-ID", "user_id", "user"]
ITEM_KEYS = ["itemId", "ItemID", "item_id", "item", "ISBN", "bookId", "BookID"]
RATING_KEYS = ["rating", "Rating", "Book-Rating", "book_rating", "score"]

_EMPTY: FrozenSet[int] = frozenset()


class PosOnlyFeedback:
    """
    Positive-only user-item interactions:
      - every (user, item) pair is stored once
      - user_items[u] is the set of items user u has interacted with
    """

    def __init__(self, pairs: Optional[List[IndexPair]] = None) -> None:
        self.user_items: Dict[int, Set[int]] = {}
        self.item_users: Dict[int, Set[int]] = {}
        self._pairs: List[IndexPair] = []
        self.max_user_id = -1
        self.max_item_id = -1
        for user_id, item_id in pairs or []:
            self.add(user_id, item_id)

    def __len__(self) -> int:
        return len(self._pairs)

    def __iter__(self) -> Iterator[IndexPair]:
        return iter(self._pairs)

    def add(self, user_id: int, item_id: int) -> None:
        if user_id < 0 or item_id < 0:
            raise ValueError(f"IDs must be non-negative: ({user_id}, {item_id})")
        items = self.user_items.setdefault(user_id, set())
        if item_id in items:
            return
        items.add(item_id)
        self.item_users.setdefault(item_id, set()).add(user_id)
        self._pairs.append((user_id, item_id))
        self.max_user_id = max(self.max_user_id, user_id)
        self.max_item_id = max(self.max_item_id, item_id)

    def items_of(self, user_id: int) -> FrozenSet[int]:
        items = self.user_items.get(user_id)
        return frozenset(items) if items else _EMPTY

    def pairs(self) -> List[IndexPair]:
        return list(self._pairs)

    @property
    def all_users(self) -> List[int]:
        return sorted(self.user_items)

    @property
    def all_items(self) -> List[int]:
        return sorted(self.item_users)


def _open_rows(path: str) -> Tuple[List[str], List[List[str]]]:
    """
    Read a delimited interaction file with delimiter detection and encoding fallback.
    Returns (header, rows); the header is empty when the file has none.
    """
    for enc in ("utf-8", "latin-1"):
        try:
            with open(path, "r", encoding=enc, newline="") as f:
                sample = f.read(4096)
                f.seek(0)
                if not sample.strip():
                    return [], []
                try:
                    dialect = csv.Sniffer().sniff(sample, delimiters=",;\t ")
                    has_header = csv.Sniffer().has_header(sample)
                except csv.Error:
                    dialect = csv.excel_tab if "\t" in sample else csv.excel
                    has_header = False
                rows = [row for row in csv.reader(f, dialect) if row]
        except UnicodeDecodeError:
            continue
        if has_header and rows:
            return [c.strip() for c in rows[0]], rows[1:]
        return [], rows
    raise ValueError(f"Could not decode interaction file: {path}")


def _column_index(header: List[str], keys: List[str], default: Optional[int]) -> Optional[int]:
    if not header:
        return default
    lower = [h.lower() for h in header]
    for k in keys:
        if k.lower() in lower:
            return lower.index(k.lower())
    return default


def read_interactions(
    path: str,
    user_mapping: Optional[EntityMapping] = None,
    item_mapping: Optional[EntityMapping] = None,
) -> PosOnlyFeedback:
    """
    Load positive-only feedback from a CSV/TSV file.

    Columns are (user, item[, rating]); a header row with common column names
    (userId, ItemID, ISBN, Book-Rating, ...) is honoured when present.
    Rows whose rating is zero or non-numeric are not observed interactions and are dropped.
    """
    user_mapping = user_mapping if user_mapping is not None else EntityMapping()
    item_mapping = item_mapping if item_mapping is not None else EntityMapping()

    header, rows = _open_rows(path)
    user_col = _column_index(header, USER_KEYS, 0)
    item_col = _column_index(header, ITEM_KEYS, 1)
    rating_col = _column_index(header, RATING_KEYS, 2 if not header else None)
    if user_col is None or item_col is None:
        raise ValueError(f"{path}: cannot find user and item columns in header {header}")

    feedback = PosOnlyFeedback()
    skipped = 0
    for row in rows:
        if len(row) <= max(user_col, item_col):
            skipped += 1
            continue
        if rating_col is not None and rating_col < len(row):
            try:
                rating = float(row[rating_col].strip())
            except ValueError:
                skipped += 1
                continue
            if rating == 0.0:
                skipped += 1
                continue
        user_id = user_mapping.to_internal_id(row[user_col].strip())
        item_id = item_mapping.to_internal_id(row[item_col].strip())
        feedback.add(user_id, item_id)

    logger.info(
        "Read %d interactions (%d users, %d items) from %s, skipped %d rows",
        len(feedback), feedback.max_user_id + 1, feedback.max_item_id + 1, path, skipped,
    )
    return feedback
