"""Tests for the read-only room assignability check."""

from datetime import time

import pytest

from app.chat.eligibility import EligibilityResolver
from app.chat.models import (
    ATTENDANT_AWAY,
    ATTENDANT_OFFLINE,
    ROOM_ACTIVE,
    AssignmentConfig,
    EligibilityResult,
)


@pytest.fixture
def resolver(store, clock):
    return EligibilityResolver(store, default_timezone="America/Sao_Paulo", clock=clock)


@pytest.fixture
def routed(store, tenant_id):
    """A default category routed to one team with a single online attendant."""

    attendant = store.add_attendant(tenant_id, "Ana")
    team = store.add_team(tenant_id, "Support", [attendant.id])
    category = store.add_category(tenant_id, "General", is_default=True)
    store.link_category_team(category.id, team.id)
    return attendant, team, category


def test_active_room_reports_attendant(store, resolver, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana")
    room = store.add_room(tenant_id, status=ROOM_ACTIVE, attendant_id=attendant.id)

    assert resolver.resolve(room) == EligibilityResult(
        already_assigned=True, attendant_name="Ana"
    )


def test_assigned_check_ignores_business_hours(store, resolver, tenant_id, clock):
    attendant = store.add_attendant(tenant_id, "Ana")
    store.add_business_hours(tenant_id, 1, time(9, 0), time(18, 0))
    clock.advance(hours=10)  # 20:00 local
    room = store.add_room(tenant_id, status=ROOM_ACTIVE, attendant_id=attendant.id)

    assert resolver.resolve(room).already_assigned is True


def test_outside_hours_stops_evaluation(store, resolver, tenant_id, routed, clock):
    store.add_business_hours(tenant_id, 1, time(9, 0), time(18, 0))
    clock.advance(hours=9)  # 19:00 local
    room = store.add_room(tenant_id)

    assert resolver.resolve(room) == EligibilityResult(outside_hours=True)


def test_tenant_timezone_overrides_default(store, resolver, tenant_id, routed):
    # 13:00 UTC is 14:00 in Lisbon during summer time.
    store.set_tenant_timezone(tenant_id, "Europe/Lisbon")
    store.add_business_hours(tenant_id, 1, time(9, 0), time(13, 30))
    room = store.add_room(tenant_id)

    assert resolver.resolve(room).outside_hours is True


def test_default_category_with_free_attendant_is_assignable(store, resolver, tenant_id, routed):
    room = store.add_room(tenant_id)

    assert resolver.resolve(room) == EligibilityResult(all_busy=False)


def test_missing_category_and_default_is_all_busy(store, resolver, tenant_id):
    room = store.add_room(tenant_id)

    assert resolver.resolve(room).all_busy is True


def test_room_category_takes_precedence(store, resolver, tenant_id, routed):
    other = store.add_category(tenant_id, "Billing")
    room = store.add_room(tenant_id, category_id=other.id)

    # Billing has no routed team, so the default category is not consulted.
    assert resolver.resolve(room).all_busy is True


@pytest.mark.parametrize(("load", "expected_busy"), [(2, False), (3, True)])
def test_capacity_limit_boundary(store, resolver, tenant_id, routed, load, expected_busy):
    attendant, _, _ = routed
    store.set_attendant(attendant.id, active_conversations=load)
    room = store.add_room(tenant_id)

    assert resolver.resolve(room).all_busy is expected_busy


def test_over_capacity_allowed(store, resolver, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana", active_conversations=9)
    team = store.add_team(tenant_id, "Support", [attendant.id])
    category = store.add_category(tenant_id, "General", is_default=True)
    store.link_category_team(category.id, team.id, AssignmentConfig(allow_over_capacity=True))

    assert resolver.resolve(store.add_room(tenant_id)).all_busy is False


def test_online_only_filters_attendants(store, resolver, tenant_id, routed):
    attendant, _, _ = routed
    store.set_attendant(attendant.id, status=ATTENDANT_AWAY)

    assert resolver.resolve(store.add_room(tenant_id)).all_busy is True


def test_offline_attendants_count_when_online_only_disabled(store, resolver, tenant_id):
    attendant = store.add_attendant(tenant_id, "Ana", status=ATTENDANT_OFFLINE)
    team = store.add_team(tenant_id, "Support", [attendant.id])
    category = store.add_category(tenant_id, "General", is_default=True)
    store.link_category_team(category.id, team.id, AssignmentConfig(online_only=False))

    assert resolver.resolve(store.add_room(tenant_id)).all_busy is False


def test_disabled_team_is_skipped_for_next_team(store, resolver, tenant_id):
    busy = store.add_attendant(tenant_id, "Ana")
    free = store.add_attendant(tenant_id, "Bruno")
    first = store.add_team(tenant_id, "Tier 1", [busy.id])
    second = store.add_team(tenant_id, "Tier 2", [free.id])
    category = store.add_category(tenant_id, "General", is_default=True)
    store.link_category_team(category.id, first.id, AssignmentConfig(enabled=False))
    store.link_category_team(category.id, second.id)

    assert resolver.resolve(store.add_room(tenant_id)).all_busy is False


def test_team_without_members_is_not_eligible(store, resolver, tenant_id):
    team = store.add_team(tenant_id, "Empty")
    category = store.add_category(tenant_id, "General", is_default=True)
    store.link_category_team(category.id, team.id)

    assert resolver.resolve(store.add_room(tenant_id)).all_busy is True


def test_routing_follows_priority_order(store, tenant_id):
    a = store.add_team(tenant_id, "A")
    b = store.add_team(tenant_id, "B")
    c = store.add_team(tenant_id, "C")
    category = store.add_category(tenant_id, "General")
    store.link_category_team(category.id, a.id)
    store.link_category_team(category.id, b.id, priority_order=2)
    store.link_category_team(category.id, c.id, priority_order=1)

    names = [route.team.name for route in store.resolve_category_routing(category.id)]
    assert names == ["C", "B", "A"]
