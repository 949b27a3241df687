"""Unit tests for largest-remainder seat apportionment."""

import logging
import random
from fractions import Fraction

import pytest

from seismo_mind.apportion import TOTAL_SEATS, apportion, largest_remainder
from seismo_mind.models import DataIntegrityError


def random_weights(rng: random.Random, n: int) -> dict[str, float]:
    return {f"k{i}": rng.choice([0, rng.random() * 10, rng.randint(1, 50)]) for i in range(n)}


class TestApportion:
    """Tests for apportion."""

    def test_work_sleep_split(self):
        allocation = apportion({"work": 6, "sleep": 4})
        assert allocation.seats == {"work": 60, "sleep": 40}
        assert allocation.total == TOTAL_SEATS
        assert not allocation.floor_relaxed

    @pytest.mark.parametrize("n", range(1, 21))
    def test_always_sums_to_total(self, n):
        rng = random.Random(n)
        for _ in range(20):
            allocation = apportion(random_weights(rng, n))
            assert sum(allocation.seats.values()) == 100
            assert all(v >= 0 for v in allocation.seats.values())

    def test_deterministic(self):
        weights = {"a": 1.1, "b": 2.2, "c": 3.3, "d": 0.4}
        assert apportion(weights).seats == apportion(dict(weights)).seats

    def test_ties_follow_insertion_order(self):
        assert apportion({"a": 1, "b": 1, "c": 1}).seats == {"a": 34, "b": 33, "c": 33}
        assert apportion({"c": 1, "b": 1, "a": 1}).seats == {"c": 34, "b": 33, "a": 33}

    def test_heavier_key_never_gets_fewer_seats(self):
        rng = random.Random(7)
        for _ in range(200):
            weights = random_weights(rng, rng.randint(2, 12))
            seats = apportion(weights).seats
            for a in weights:
                for b in weights:
                    if weights[a] > weights[b]:
                        assert seats[a] >= seats[b]

    def test_growing_weight_loses_at_most_one_seat(self):
        rng = random.Random(11)
        for _ in range(200):
            weights = random_weights(rng, rng.randint(2, 10))
            key = rng.choice(list(weights))
            before = apportion(weights).seats[key]
            grown = dict(weights)
            grown[key] = weights[key] + rng.random() * 5
            assert apportion(grown).seats[key] >= before - 1

    def test_all_zero_weights_are_uniform(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="seismo_mind.apportion"):
            allocation = apportion({"a": 0, "b": 0, "c": 0, "d": 0})
        assert allocation.seats == {"a": 25, "b": 25, "c": 25, "d": 25}
        assert "uniform" in caplog.text

    def test_zero_weight_gets_nothing(self):
        assert apportion({"a": 0, "b": 5}).seats == {"a": 0, "b": 100}

    def test_custom_total(self):
        allocation = apportion({"a": 1, "b": 2}, total=10)
        assert allocation.seats == {"a": 3, "b": 7}
        assert apportion({"a": 1}, total=0).seats == {"a": 0}

    def test_exact_fractions(self):
        """Remainders that would collide in floating point compare exactly."""
        allocation = apportion({"a": 0.1, "b": 0.2, "c": 0.3}, total=6)
        assert allocation.seats == {"a": 1, "b": 2, "c": 3}


class TestApportionErrors:
    """Tests for rejected inputs."""

    def test_negative_weight(self):
        with pytest.raises(DataIntegrityError) as exc_info:
            apportion({"a": 3, "b": -1})
        assert exc_info.value.key == "b"

    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    def test_non_finite_weight(self, bad):
        with pytest.raises(DataIntegrityError):
            apportion({"a": 1, "b": bad})

    def test_empty_weights(self):
        with pytest.raises(ValueError):
            apportion({})

    def test_negative_total(self):
        with pytest.raises(ValueError):
            apportion({"a": 1}, total=-1)


class TestApportionFloor:
    """Tests for the per-key seat floor."""

    def test_floor_honoured(self):
        allocation = apportion({"big": 1000, "small": 1, "tiny": 0}, floor=5)
        assert sum(allocation.seats.values()) == 100
        assert allocation.seats["small"] >= 5
        assert allocation.seats["tiny"] >= 5
        assert allocation.floor == 5
        assert not allocation.floor_relaxed

    def test_floor_keeps_proportions_of_remainder(self):
        allocation = apportion({"a": 1, "b": 1}, floor=10)
        assert allocation.seats == {"a": 50, "b": 50}

    def test_infeasible_floor_relaxed(self, caplog):
        weights = {f"k{i}": i for i in range(30)}
        with caplog.at_level(logging.WARNING, logger="seismo_mind.apportion"):
            allocation = apportion(weights, floor=5)
        assert allocation.floor_relaxed
        assert allocation.floor == 3
        assert sum(allocation.seats.values()) == 100
        assert min(allocation.seats.values()) >= 3
        assert "relaxed" in caplog.text

    def test_negative_floor(self):
        with pytest.raises(ValueError):
            apportion({"a": 1}, floor=-1)


class TestLargestRemainder:
    """Tests for the bare largest-remainder step."""

    def test_distributes_remainders(self):
        seats = largest_remainder({"a": Fraction(1), "b": Fraction(1), "c": Fraction(1)}, 2)
        assert seats == {"a": 1, "b": 1, "c": 0}

    def test_to_dict(self):
        d = apportion({"x": 1}).to_dict()
        assert d == {"seats": {"x": 100}, "total": 100, "floor": 0, "floor_relaxed": False}
