from datetime import datetime, timedelta

import pytest

from yardconnect.models import Review, Subscription, SubscriptionStatus
from yardconnect.services.subscription_events import cancel_subscription
from yardconnect.services.visibility import (
    ProfileFilters,
    get_profile_rating,
    is_profile_visible,
    list_visible_profiles,
    round_rating,
)
from yardconnect.utils.errors import ValidationError

from factories import make_profile

BASE = datetime(2030, 1, 1)


def names(results):
    return [r.profile.name for r in results]


def add_reviews(db, profile, ratings):
    for rating in ratings:
        db.add(Review(profile_id=profile.id, rating=rating))
    db.commit()


def test_only_active_subscriptions_are_listed(db):
    make_profile(db, name="Active Ann", created_at=BASE)
    make_profile(db, name="Cancelled Cal", subscription=SubscriptionStatus.CANCELLED)
    make_profile(db, name="Expired Eve", subscription=SubscriptionStatus.EXPIRED)
    make_profile(db, name="None Ned", subscription=SubscriptionStatus.NONE)
    make_profile(db, name="Unsubscribed Uma", subscription=None)

    assert names(list_visible_profiles(db)) == ["Active Ann"]


def test_activation_shows_profile_in_next_query(db):
    profile = make_profile(db, name="Late Larry", subscription=SubscriptionStatus.NONE)
    assert list_visible_profiles(db) == []
    assert not is_profile_visible(db, profile)

    sub = db.query(Subscription).filter_by(account_id=profile.account_id).one()
    sub.status = SubscriptionStatus.ACTIVE
    db.commit()

    assert names(list_visible_profiles(db)) == ["Late Larry"]
    assert is_profile_visible(db, profile)


def test_cancellation_hides_profile_immediately(db):
    profile = make_profile(db, name="Quitting Quinn")
    assert names(list_visible_profiles(db)) == ["Quitting Quinn"]

    cancel_subscription(db, profile.account_id)

    assert list_visible_profiles(db) == []
    assert not is_profile_visible(db, profile)


def test_average_rating_rounded_half_up(db):
    profile = make_profile(db)
    add_reviews(db, profile, [4, 5, 5])

    [result] = list_visible_profiles(db)
    assert result.average_rating == 4.7
    assert result.review_count == 3
    assert get_profile_rating(db, profile.id) == (4.7, 3)


def test_average_rating_zero_without_reviews(db):
    profile = make_profile(db)
    [result] = list_visible_profiles(db)
    assert result.average_rating == 0
    assert result.review_count == 0
    assert get_profile_rating(db, profile.id) == (0.0, 0)


@pytest.mark.parametrize(
    "value,expected",
    [(None, 0.0), (4.25, 4.3), (4.35, 4.4), (4.666666, 4.7), (3, 3.0), (1.04, 1.0)],
)
def test_round_rating(value, expected):
    assert round_rating(value) == expected


def test_newest_first_with_pagination(db):
    for i in range(5):
        make_profile(db, name=f"Worker {i}", created_at=BASE + timedelta(days=i))

    assert names(list_visible_profiles(db)) == [f"Worker {i}" for i in (4, 3, 2, 1, 0)]
    assert names(list_visible_profiles(db, limit=2)) == ["Worker 4", "Worker 3"]
    assert names(list_visible_profiles(db, limit=2, offset=2)) == ["Worker 2", "Worker 1"]
    assert list_visible_profiles(db, offset=10) == []


def test_location_matches_location_or_zip(db):
    make_profile(db, name="Austin Al", location="Austin, TX", zip="78701", created_at=BASE)
    make_profile(db, name="Dallas Di", location="Dallas, TX", zip="75201", created_at=BASE + timedelta(days=1))

    assert names(list_visible_profiles(db, ProfileFilters(location="austin"))) == ["Austin Al"]
    assert names(list_visible_profiles(db, ProfileFilters(location="752"))) == ["Dallas Di"]
    assert names(list_visible_profiles(db, ProfileFilters(location="tx"))) == ["Dallas Di", "Austin Al"]


def test_service_filter_is_case_insensitive_substring(db):
    make_profile(db, name="Mower Mo", services=("Lawn Mowing", "Leaf Removal"), created_at=BASE)
    make_profile(db, name="Hedge Hal", services=("Hedge Trimming",), created_at=BASE + timedelta(days=1))

    assert names(list_visible_profiles(db, ProfileFilters(service="mowing"))) == ["Mower Mo"]
    assert names(list_visible_profiles(db, ProfileFilters(service="HEDGE"))) == ["Hedge Hal"]
    assert list_visible_profiles(db, ProfileFilters(service="snow")) == []


def test_service_filter_does_not_duplicate_rows(db):
    make_profile(db, name="Multi Max", services=("Lawn Care", "Lawn Mowing"))
    assert names(list_visible_profiles(db, ProfileFilters(service="lawn"))) == ["Multi Max"]


def test_price_range_is_inclusive(db):
    make_profile(db, name="Cheap Cy", price=15, created_at=BASE)
    make_profile(db, name="Mid Mia", price=25, created_at=BASE + timedelta(days=1))
    make_profile(db, name="Pricey Pat", price=40, created_at=BASE + timedelta(days=2))

    assert names(list_visible_profiles(db, ProfileFilters(min_price=25))) == ["Pricey Pat", "Mid Mia"]
    assert names(list_visible_profiles(db, ProfileFilters(max_price=25))) == ["Mid Mia", "Cheap Cy"]
    assert names(list_visible_profiles(db, ProfileFilters(min_price=20, max_price=30))) == ["Mid Mia"]


def test_like_wildcards_are_literal(db):
    make_profile(db, name="Plain Pam", location="Austin, TX")
    assert list_visible_profiles(db, ProfileFilters(location="%")) == []


@pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (20, -1)])
def test_paging_bounds(db, limit, offset):
    with pytest.raises(ValidationError):
        list_visible_profiles(db, limit=limit, offset=offset)


def test_inverted_price_range_rejected(db):
    with pytest.raises(ValidationError):
        list_visible_profiles(db, ProfileFilters(min_price=50, max_price=10))
