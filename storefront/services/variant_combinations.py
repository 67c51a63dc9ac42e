"""Cartesian expansion of chosen attribute values into variant candidates."""
import logging
from collections.abc import Hashable, Iterable, Mapping
from math import prod
from typing import TypeVar

from storefront.core.exceptions import VariantValidationError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V", bound=Hashable)


def _dedupe(values: Iterable[V]) -> list[V]:
    seen: set = set()
    ordered = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def count_combinations(selections: Mapping[K, Iterable[V]]) -> int:
    if not selections:
        return 0
    return prod(len(_dedupe(values)) for values in selections.values())


def generate_combinations(
    selections: Mapping[K, Iterable[V]],
    *,
    limit: int | None = None,
) -> list[dict[K, V]]:
    """Build one candidate per combination of the chosen values.

    Each candidate maps every attribute in ``selections`` to exactly one of
    its chosen values. Attributes are folded in one at a time onto the list
    of partial candidates. The size is checked against ``limit`` before
    anything is built, so an oversized request never yields a partial result.
    """
    if not selections:
        raise VariantValidationError(
            "empty_selection",
            "Select at least one attribute and value to generate variants",
        )

    value_sets: list[tuple[K, list[V]]] = []
    for attribute, values in selections.items():
        unique_values = _dedupe(values)
        if not unique_values:
            raise VariantValidationError(
                "empty_selection",
                f"No values selected for attribute {attribute}",
            )
        value_sets.append((attribute, unique_values))

    total = prod(len(values) for _, values in value_sets)
    if limit is not None and total > limit:
        logger.info("Rejected %d combinations (limit %d)", total, limit)
        raise VariantValidationError(
            "too_many_combinations",
            f"Too many combinations ({total}, maximum {limit}). "
            "Reduce the selected options.",
        )

    combinations: list[dict[K, V]] = [{}]
    for attribute, values in value_sets:
        combinations = [
            {**partial, attribute: value}
            for partial in combinations
            for value in values
        ]
    return combinations
