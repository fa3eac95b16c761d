"""A set of features, such as tools or prompts, keyed by a unique ID."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Callable, Iterator
from typing import Generic, Optional, TypeVar

__all__ = ["FeatureSet"]

T = TypeVar("T")


class FeatureSet(Generic[T]):
    """Features with unique IDs, iterated in ascending ID order."""

    def __init__(self, unique_id: Callable[[T], str]) -> None:
        self._unique_id = unique_id
        self._features: dict[str, T] = {}
        self._sorted_keys: Optional[list[str]] = None

    def add(self, *args: T) -> None:
        """Add each feature, replacing any existing one with the same ID."""
        for feature in args:
            self._features[self._unique_id(feature)] = feature
        self._sorted_keys = None

    def remove(self, *args: str) -> bool:
        """Remove the features with the given IDs; report whether any were present."""
        changed = False
        for uid in args:
            if self._features.pop(uid, None) is not None or uid in self._features:
                changed = True
        if changed:
            self._sorted_keys = None
        return changed

    def get(self, uid: str) -> Optional[T]:
        """Return the feature with ID ``uid``, or None."""
        return self._features.get(uid)

    def __contains__(self, uid: object) -> bool:
        return uid in self._features

    def __len__(self) -> int:
        return len(self._features)

    def _keys(self) -> list[str]:
        if self._sorted_keys is None:
            self._sorted_keys = sorted(self._features)
        return self._sorted_keys

    def __iter__(self) -> Iterator[T]:
        return iter([self._features[k] for k in self._keys()])

    def above(self, uid: str) -> Iterator[T]:
        """Iterate over the features whose IDs are greater than ``uid``, in order."""
        keys = self._keys()
        return iter([self._features[k] for k in keys[bisect_right(keys, uid):]])