from convoset.core.rng import (
    RngStream,
    derive_row_seed,
    ephemeral_seed,
    make_generation_id,
    row_id_from_seed,
    to_base36,
)


class TestRngStream:
    """Seeded streams replay the same values and count their draws."""

    def test_same_seed_same_sequence(self):
        a = RngStream(42)
        b = RngStream(42)
        assert [a.next() for _ in range(10)] == [b.next() for _ in range(10)]

    def test_different_seeds_diverge(self):
        a = RngStream(1)
        b = RngStream(2)
        assert [a.next() for _ in range(5)] != [b.next() for _ in range(5)]

    def test_values_in_unit_interval(self):
        stream = RngStream(7)
        assert all(0.0 <= stream.next() < 1.0 for _ in range(200))

    def test_draw_counter_and_reset(self):
        stream = RngStream(3)
        first = [stream.next() for _ in range(3)]
        assert stream.draws == 3

        stream.reset()
        assert stream.draws == 0
        assert [stream.next() for _ in range(3)] == first


def test_derive_row_seed():
    assert derive_row_seed(100, 0) == 100
    assert derive_row_seed(100, 5) == 105
    assert derive_row_seed(None, 5) is None


def test_ephemeral_seed_is_int():
    seed = ephemeral_seed()
    assert isinstance(seed, int)
    assert seed >= 0


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"


def test_row_id_from_seed():
    assert row_id_from_seed(42) == "row_42_1w08zre"
    assert row_id_from_seed(42) == row_id_from_seed(42)
    assert row_id_from_seed(0) == "row_0_0"


def test_generation_ids():
    assert make_generation_id("user", 1, 0) == make_generation_id("user", 1, 0)
    assert make_generation_id("user", 1, 0) != make_generation_id("user", 1, 1)
    assert make_generation_id("user", 1, 0) != make_generation_id("assistant", 1, 0)
    assert make_generation_id("user", 1, 0).startswith("user_")
    assert make_generation_id("user", None, 0) != make_generation_id("user", None, 0)
