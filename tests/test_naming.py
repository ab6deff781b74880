"""Tests for the structured upload filename codec."""

from __future__ import annotations

import pytest

from stoya import naming
from stoya.naming import DAY_MS, DecodedName, NamingError

T0 = 1_700_000_000_000


def test_encode_builds_canonical_name() -> None:
    assert naming.encode(2, "U7", "photo.jpg", T0) == f"Screen2_UserU7_{T0}_Э2_photo.jpg"


def test_decode_recovers_fields_from_canonical_name() -> None:
    name = naming.encode(12, "ABC123XYZ", "holiday.mp4", T0)

    assert naming.decode(name) == DecodedName(
        screen_id=12, owner_id="ABC123XYZ", timestamp_ms=T0, original_name="holiday.mp4"
    )


def test_decode_is_not_confused_by_delimiters_in_original_name() -> None:
    tricky = "Screen9_UserEVIL_1_Э9_x.png"
    name = naming.encode(3, "U7", tricky, T0)

    decoded = naming.decode(name)

    assert decoded is not None
    assert (decoded.screen_id, decoded.owner_id, decoded.timestamp_ms) == (3, "U7", T0)
    assert decoded.original_name == tricky
    assert naming.routing_tag(name) == 3


def test_decode_accepts_legacy_loose_layout() -> None:
    decoded = naming.decode(f"promo_UserQ1W2_{T0}_Screen4_banner.png")

    assert decoded is not None
    assert decoded.screen_id == 4
    assert decoded.owner_id == "Q1W2"
    assert decoded.timestamp_ms == T0
    assert decoded.original_name is None


def test_decode_with_expected_name_requires_exact_match() -> None:
    name = naming.encode(1, "U7", "a.jpg", T0)

    assert naming.decode(name, expected_name=name) is not None
    assert naming.decode(name, expected_name=name + "x") is None


@pytest.mark.parametrize("name", ["photo.jpg", "Screen2_photo.jpg", "", "UserU7_photo.jpg"])
def test_undecodable_names_are_not_mine(name: str) -> None:
    assert naming.decode(name) is None
    assert naming.upload_timestamp(name) is None
    assert naming.remaining_display_days(name, T0) is None


@pytest.mark.parametrize("owner", ["", "has_underscore", "a/b"])
def test_encode_rejects_unembeddable_owner_ids(owner: str) -> None:
    with pytest.raises(NamingError):
        naming.encode(1, owner, "a.jpg", T0)


def test_encode_rejects_path_like_original_names() -> None:
    with pytest.raises(NamingError):
        naming.encode(1, "U7", "dir/a.jpg", T0)


def test_matches_owner_uses_owner_and_screen_tags() -> None:
    name = naming.encode(2, "U7", "a.jpg", T0)

    assert naming.matches_owner(name, "U7", 2)
    assert not naming.matches_owner(name, "U8", 2)
    assert not naming.matches_owner(name, "U7", 3)


def test_routing_tag_missing_returns_none() -> None:
    assert naming.routing_tag("Screen2_UserU7_1_photo.jpg") is None


def test_remaining_days_counts_down_and_floors_at_zero() -> None:
    name = naming.encode(1, "U7", "a.jpg", T0)

    assert naming.remaining_display_days(name, T0) == 30
    assert naming.remaining_display_days(name, T0 + 1) == 30
    assert naming.remaining_display_days(name, T0 + DAY_MS) == 29
    assert naming.remaining_display_days(name, T0 + 30 * DAY_MS) == 0
    assert naming.remaining_display_days(name, T0 + 45 * DAY_MS) == 0


def test_remaining_days_never_increases_over_time() -> None:
    name = naming.encode(1, "U7", "a.jpg", T0)
    samples = [
        naming.remaining_display_days(name, T0 + step * DAY_MS // 4) for step in range(0, 140)
    ]

    assert all(earlier >= later for earlier, later in zip(samples, samples[1:]))


def test_display_name_prefers_original_name() -> None:
    assert naming.display_name(naming.encode(1, "U7", "my_photo.jpg", T0)) == "my_photo.jpg"
    assert naming.display_name("legacy_name.jpg") == "name.jpg"


def test_matches_owner_ignores_tags_inside_original_name() -> None:
    other_screen = naming.encode(5, "U7", "Screen1_holiday.jpg", T0)
    other_owner = naming.encode(1, "U7", "x_UserU_1_y.jpg", T0)

    assert not naming.matches_owner(other_screen, "U7", 1)
    assert naming.matches_owner(other_screen, "U7", 5)
    assert not naming.matches_owner(other_owner, "U", 1)
    assert naming.matches_owner(other_owner, "U7", 1)


def test_matches_owner_accepts_legacy_layout() -> None:
    assert naming.matches_owner(f"promo_UserQ1W2_{T0}_Screen4_banner.png", "Q1W2", 4)
    assert not naming.matches_owner("photo.jpg", "Q1W2", 4)
