from __future__ import annotations

from typing import Dict, List


class EntityMapping:
    """Bidirectional mapping between original IDs (strings) and contiguous internal IDs."""

    def __init__(self) -> None:
        self.original_to_internal: Dict[str, int] = {}
        self.internal_to_original: List[str] = []

    def __len__(self) -> int:
        return len(self.internal_to_original)

    @property
    def internal_ids(self) -> List[int]:
        return list(range(len(self.internal_to_original)))

    @property
    def original_ids(self) -> List[str]:
        return list(self.internal_to_original)

    def to_internal_id(self, original_id: str) -> int:
        """Look up an original ID, assigning the next internal ID if it is new."""
        original_id = str(original_id)
        internal_id = self.original_to_internal.get(original_id)
        if internal_id is None:
            internal_id = len(self.internal_to_original)
            self.original_to_internal[original_id] = internal_id
            self.internal_to_original.append(original_id)
        return internal_id

    def to_original_id(self, internal_id: int) -> str:
        if internal_id < 0 or internal_id >= len(self.internal_to_original):
            raise KeyError(f"unknown internal ID: {internal_id}")
        return self.internal_to_original[internal_id]

    def save(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            for internal_id, original_id in enumerate(self.internal_to_original):
                f.write(f"{internal_id}\t{original_id}\n")

    @classmethod
    def load(cls, path: str) -> "EntityMapping":
        mapping = cls()
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.rstrip("\n")
                if not line:
                    continue
                internal_raw, original_id = line.split("\t", 1)
                if int(internal_raw) != len(mapping.internal_to_original):
                    raise ValueError(f"{path}: internal IDs must be contiguous, got {internal_raw}")
                mapping.to_internal_id(original_id)
        return mapping


class IdentityMapping:
    """Original IDs are the decimal form of the internal IDs."""

    def __init__(self) -> None:
        self.max_id = -1

    @property
    def internal_ids(self) -> List[int]:
        return list(range(self.max_id + 1))

    @property
    def original_ids(self) -> List[str]:
        return [str(i) for i in range(self.max_id + 1)]

    def to_internal_id(self, original_id: str) -> int:
        internal_id = int(original_id)
        self.max_id = max(self.max_id, internal_id)
        return internal_id

    def to_original_id(self, internal_id: int) -> str:
        self.max_id = max(self.max_id, internal_id)
        return str(internal_id)
