"""Shopper-side resolution of attribute choices to a single variant.

A selector holds the current choice per attribute (by attribute name) over
a fixed list of active variants. Nothing is cached between calls: every
query filters the variant list against the current mapping, so repeated
resolution of the same selection always yields the same answer.
"""
import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from uuid import UUID

from storefront.core.exceptions import VariantIntegrityError, VariantValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectableVariant:
    id: UUID
    price_cents: int
    stock_quantity: int
    # attribute name -> value id
    options: Mapping[str, UUID]
    value_names: Mapping[UUID, str] = field(default_factory=dict)
    # attribute name -> display name
    attribute_labels: Mapping[str, str] = field(default_factory=dict)
    is_active: bool = True

    def matches(self, selection: Mapping[str, UUID]) -> bool:
        return all(self.options.get(name) == value for name, value in selection.items())


class SelectionState(str, enum.Enum):
    EMPTY = "empty"
    PARTIAL = "partial"
    COMPLETE = "complete"
    RESOLVED = "resolved"


class ResolutionStatus(str, enum.Enum):
    RESOLVED = "resolved"
    INCOMPLETE = "incomplete"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class Resolution:
    status: ResolutionStatus
    variant: SelectableVariant | None = None


class VariantSelector:
    def __init__(
        self,
        variants: Iterable[SelectableVariant],
        selection: Mapping[str, UUID] | None = None,
    ):
        self._variants = [v for v in variants if v.is_active]
        names: set[str] = set()
        for variant in self._variants:
            names.update(variant.options)
        self._attribute_names = sorted(names)
        self._selection: dict[str, UUID] = {}
        for attribute, value_id in (selection or {}).items():
            self.select(attribute, value_id)

    @property
    def variants(self) -> list[SelectableVariant]:
        return list(self._variants)

    @property
    def attribute_names(self) -> list[str]:
        return list(self._attribute_names)

    @property
    def selection(self) -> dict[str, UUID]:
        return dict(self._selection)

    def select(self, attribute: str, value_id: UUID) -> None:
        if attribute not in self._attribute_names:
            raise VariantValidationError(
                "invalid_attribute_value",
                f"Unknown attribute '{attribute}' for this product",
            )
        self._selection[attribute] = value_id

    def clear(self, attribute: str | None = None) -> None:
        if attribute is None:
            self._selection.clear()
        else:
            self._selection.pop(attribute, None)

    @property
    def is_complete(self) -> bool:
        return len(self._selection) == len(self._attribute_names)

    @property
    def state(self) -> SelectionState:
        if self.resolve() is not None:
            return SelectionState.RESOLVED
        if not self._selection:
            return SelectionState.EMPTY
        if self.is_complete:
            return SelectionState.COMPLETE
        return SelectionState.PARTIAL

    def _matching(self, selection: Mapping[str, UUID]) -> list[SelectableVariant]:
        return [v for v in self._variants if v.matches(selection)]

    def _extended(self, attribute: str, value_id: UUID) -> dict[str, UUID]:
        return {**self._selection, attribute: value_id}

    def is_selectable(self, attribute: str, value_id: UUID) -> bool:
        """Whether picking ``value_id`` still leaves a reachable variant."""
        return any(v.matches(self._extended(attribute, value_id)) for v in self._variants)

    def available_stock(self, attribute: str, value_id: UUID) -> int:
        """Largest stock among variants reachable with ``value_id`` picked."""
        matching = self._matching(self._extended(attribute, value_id))
        return max((v.stock_quantity for v in matching), default=0)

    def resolve(self) -> SelectableVariant | None:
        if not self._variants:
            return None
        if len(self._variants) == 1:
            only = self._variants[0]
            return only if only.matches(self._selection) else None

        if not self.is_complete:
            return None

        matches = [v for v in self._variants if dict(v.options) == self._selection]
        if len(matches) > 1:
            logger.error(
                "Selection %s matches %d variants: %s",
                {k: str(v) for k, v in self._selection.items()},
                len(matches),
                [str(v.id) for v in matches],
            )
            raise VariantIntegrityError(
                "Selection matches more than one variant; the product data is inconsistent"
            )
        if not matches:
            logger.error(
                "Complete selection %s matches no variant",
                {k: str(v) for k, v in self._selection.items()},
            )
            return None
        return matches[0]

    def resolution(self) -> Resolution:
        variant = self.resolve()
        if variant is not None:
            return Resolution(ResolutionStatus.RESOLVED, variant)
        if not self.is_complete:
            return Resolution(ResolutionStatus.INCOMPLETE)
        return Resolution(ResolutionStatus.NO_MATCH)

    def options(self) -> list[dict]:
        """Per-attribute value states for rendering the picker."""
        result = []
        for attribute in self._attribute_names:
            values: dict[UUID, str] = {}
            label = attribute
            for variant in self._variants:
                value_id = variant.options.get(attribute)
                if value_id is not None and value_id not in values:
                    values[value_id] = variant.value_names.get(value_id, str(value_id))
                label = variant.attribute_labels.get(attribute, label)
            selected = self._selection.get(attribute)
            result.append({
                "attribute_name": attribute,
                "display_name": label,
                "selected_value_id": selected,
                "options": [
                    {
                        "value_id": value_id,
                        "value_name": name,
                        "selectable": self.is_selectable(attribute, value_id),
                        "available_stock": self.available_stock(attribute, value_id),
                        "is_selected": value_id == selected,
                    }
                    for value_id, name in sorted(values.items(), key=lambda item: item[1])
                ],
            })
        return result
