import logging
from datetime import datetime, timedelta

import pytest

from yardconnect.models import Payment, Subscription, SubscriptionStatus
from yardconnect.services import subscription_events
from yardconnect.services.visibility import list_visible_profiles
from yardconnect.utils.errors import ConflictError, NotFoundError, ValidationError

from factories import make_account, make_profile

NOW = datetime(2030, 6, 1, 9, 0)


def checkout_event(account_id, reference="sub_123"):
    return {
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_1",
                "metadata": {"account_id": account_id, "plan": "subscription"},
                "subscription": reference,
                "payment_intent": "pi_1",
                "amount_total": 1000,
            }
        },
    }


def invoice_event(kind, reference="sub_123", amount=1000):
    return {
        "type": kind,
        "data": {"object": {"id": "in_1", "subscription": reference, "amount_paid": amount, "payment_intent": "pi_2"}},
    }


def test_checkout_activates_subscription_and_lists_profile(db):
    profile = make_profile(db, name="New Nia", subscription=None)
    assert list_visible_profiles(db) == []

    handled = subscription_events.handle_event(db, checkout_event(profile.account_id), now=NOW)

    assert handled is True
    sub = db.query(Subscription).filter_by(account_id=profile.account_id).one()
    assert sub.status == SubscriptionStatus.ACTIVE
    assert sub.start_date == NOW
    assert sub.end_date == NOW + timedelta(days=30)
    assert sub.provider_reference == "sub_123"
    payment = db.query(Payment).one()
    assert payment.amount == 1000
    assert payment.subscription_id == sub.id
    assert [r.profile.name for r in list_visible_profiles(db)] == ["New Nia"]


def test_checkout_reactivates_cancelled_subscription(db):
    profile = make_profile(db, subscription=SubscriptionStatus.CANCELLED)
    subscription_events.handle_event(db, checkout_event(profile.account_id), now=NOW)

    sub = db.query(Subscription).filter_by(account_id=profile.account_id).one()
    assert sub.status == SubscriptionStatus.ACTIVE
    assert sub.start_date == NOW
    assert db.query(Subscription).count() == 1


def test_checkout_without_account_is_ignored(db, caplog):
    event = checkout_event("")
    caplog.set_level(logging.ERROR, logger="yardconnect.services.subscription_events")
    subscription_events.handle_event(db, event, now=NOW)
    assert db.query(Subscription).count() == 0
    assert any("no account_id" in r.getMessage() for r in caplog.records)


def test_renewal_extends_from_current_end_date(db):
    account = make_account(db)
    subscription_events.handle_event(db, checkout_event(account.id), now=NOW)

    later = NOW + timedelta(days=10)
    subscription_events.handle_event(db, invoice_event("invoice.payment_succeeded"), now=later)

    sub = db.query(Subscription).one()
    assert sub.end_date == NOW + timedelta(days=60)
    assert db.query(Payment).count() == 2


def test_renewal_after_lapse_extends_from_now(db):
    account = make_account(db)
    subscription_events.handle_event(db, checkout_event(account.id), now=NOW)
    subscription_events.handle_event(db, invoice_event("invoice.payment_failed"), now=NOW)

    later = NOW + timedelta(days=45)
    subscription_events.handle_event(db, invoice_event("invoice.payment_succeeded"), now=later)

    sub = db.query(Subscription).one()
    assert sub.status == SubscriptionStatus.ACTIVE
    assert sub.end_date == later + timedelta(days=30)


def test_payment_failure_expires_and_hides_profile(db):
    profile = make_profile(db, subscription=None)
    subscription_events.handle_event(db, checkout_event(profile.account_id), now=NOW)
    assert len(list_visible_profiles(db)) == 1

    subscription_events.handle_event(db, invoice_event("invoice.payment_failed"), now=NOW)

    assert db.query(Subscription).one().status == SubscriptionStatus.EXPIRED
    assert list_visible_profiles(db) == []


def test_invoice_for_unknown_subscription_is_ignored(db):
    subscription_events.handle_event(db, invoice_event("invoice.payment_succeeded", reference="sub_missing"), now=NOW)
    assert db.query(Payment).count() == 0


def test_unknown_event_type_is_ignored(db, caplog):
    caplog.set_level(logging.INFO, logger="yardconnect.services.subscription_events")
    assert subscription_events.handle_event(db, {"type": "customer.created", "data": {"object": {}}}) is False
    assert any("customer.created" in r.getMessage() for r in caplog.records)


def test_malformed_event_rejected(db):
    with pytest.raises(ValidationError):
        subscription_events.handle_event(db, {"data": {}})


@pytest.mark.parametrize("data", ["oops", ["object"], {"object": "oops"}, {"object": 7}])
def test_event_with_malformed_data_rejected(db, data):
    with pytest.raises(ValidationError) as exc:
        subscription_events.handle_event(db, {"type": "invoice.payment_failed", "data": data})
    assert exc.value.field_errors == {"data": "invalid"}


def test_checkout_reusing_another_accounts_reference_is_ignored(db, caplog):
    first = make_account(db, email="first@example.com")
    second = make_account(db, email="second@example.com")
    first_id, second_id = first.id, second.id
    subscription_events.handle_event(db, checkout_event(first_id, reference="sub_same"), now=NOW)
    caplog.set_level(logging.ERROR, logger="yardconnect.services.subscription_events")

    handled = subscription_events.handle_event(db, checkout_event(second_id, reference="sub_same"), now=NOW)

    assert handled is True
    assert any("sub_same" in r.getMessage() for r in caplog.records)
    assert db.query(Subscription).filter_by(account_id=second_id).first() is None
    sub = db.query(Subscription).one()
    assert sub.account_id == first_id
    assert sub.status == SubscriptionStatus.ACTIVE
    assert db.query(Payment).count() == 1


def test_cancel_subscription_transitions(db):
    profile = make_profile(db)
    sub = subscription_events.cancel_subscription(db, profile.account_id)
    assert sub.status == SubscriptionStatus.CANCELLED

    with pytest.raises(ConflictError):
        subscription_events.cancel_subscription(db, profile.account_id)


def test_cancel_without_subscription(db):
    account = make_account(db)
    with pytest.raises(NotFoundError):
        subscription_events.cancel_subscription(db, account.id)


def test_plan_matches_settings():
    plan = subscription_events.get_plan()
    assert plan["price"] == 1000
    assert plan["interval_days"] == 30
    assert "Appear in search results" in plan["features"]
