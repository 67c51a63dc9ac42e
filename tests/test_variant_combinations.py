"""Tests for Cartesian expansion of selected attribute values."""
from math import prod

import pytest

from storefront.core.exceptions import VariantValidationError
from storefront.services.variant_combinations import count_combinations, generate_combinations


class TestGenerateCombinations:
    @pytest.mark.parametrize("sizes", [[1], [3], [2, 2], [3, 1, 2], [2, 3, 4]])
    def test_size_is_product_of_cardinalities(self, sizes):
        selections = {f"attr{i}": [f"v{i}-{j}" for j in range(n)] for i, n in enumerate(sizes)}
        combos = generate_combinations(selections)
        assert len(combos) == prod(sizes)
        assert count_combinations(selections) == prod(sizes)

    def test_each_candidate_has_one_value_per_attribute(self):
        selections = {"size": ["S", "M", "L"], "color": ["red", "blue"]}
        combos = generate_combinations(selections)
        for combo in combos:
            assert set(combo) == {"size", "color"}
            assert combo["size"] in selections["size"]
            assert combo["color"] in selections["color"]

    def test_candidates_are_distinct(self):
        combos = generate_combinations({"size": ["S", "M"], "color": ["red", "blue"]})
        assert len({tuple(sorted(c.items())) for c in combos}) == 4

    def test_fold_order_does_not_change_result_set(self):
        a = generate_combinations({"size": ["S", "M"], "color": ["red", "blue"]})
        b = generate_combinations({"color": ["red", "blue"], "size": ["S", "M"]})
        assert {frozenset(c.items()) for c in a} == {frozenset(c.items()) for c in b}

    def test_repeated_values_are_collapsed(self):
        combos = generate_combinations({"size": ["S", "S", "M"]})
        assert combos == [{"size": "S"}, {"size": "M"}]

    def test_empty_mapping_rejected(self):
        with pytest.raises(VariantValidationError) as exc_info:
            generate_combinations({})
        assert exc_info.value.reason == "empty_selection"

    def test_attribute_without_values_rejected(self):
        with pytest.raises(VariantValidationError) as exc_info:
            generate_combinations({"size": ["S"], "color": []})
        assert exc_info.value.reason == "empty_selection"

    def test_limit_reached_exactly_is_allowed(self):
        selections = {"a": list(range(5)), "b": list(range(10))}
        assert len(generate_combinations(selections, limit=50)) == 50

    def test_over_limit_rejected_without_partial_result(self):
        selections = {"a": list(range(6)), "b": list(range(9))}
        with pytest.raises(VariantValidationError) as exc_info:
            generate_combinations(selections, limit=50)
        assert exc_info.value.reason == "too_many_combinations"
        assert "54" in exc_info.value.message
        assert exc_info.value.status_code == 400

    def test_no_limit_by_default(self):
        selections = {"a": list(range(10)), "b": list(range(10))}
        assert len(generate_combinations(selections)) == 100


class TestCountCombinations:
    def test_empty_is_zero(self):
        assert count_combinations({}) == 0

    def test_counts_unique_values(self):
        assert count_combinations({"a": [1, 1, 2], "b": [3]}) == 2
