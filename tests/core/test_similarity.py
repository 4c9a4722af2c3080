import pytest

from attendance_recon.core.similarity import fuzzy_contains, jaccard


def test_jaccard_bounds_and_identity() -> None:
    assert jaccard(set(), set()) == 1.0
    assert jaccard({"a"}, set()) == 0.0
    assert jaccard({"a", "b"}, {"a", "b"}) == 1.0
    assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)


@pytest.mark.parametrize(
    ("a", "b"),
    [
        ({"x"}, {"y"}),
        ({"x", "y", "z"}, {"y"}),
        ({"single", "pay"}, {"single", "pay", "as", "you", "go"}),
    ],
)
def test_jaccard_is_symmetric_and_bounded(a, b) -> None:
    score = jaccard(a, b)
    assert 0.0 <= score <= 1.0
    assert score == jaccard(b, a)


def test_fuzzy_contains_either_direction() -> None:
    assert fuzzy_contains("Adult 5 Pack", "adult 5 pack extra") is True
    assert fuzzy_contains("5 Packs and more", "5 pack") is True
    assert fuzzy_contains("Boxing", "Kickboxing class") is True
    assert fuzzy_contains("Yoga", "Pilates") is False
