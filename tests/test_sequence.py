from planner.sequence import DINNER_TARGET_MIN, LUNCH_TARGET_MIN, pin_meals, sequence_day
from factories import at, place, window


def ids(places):
    return [p.id for p in places]


def test_nearest_neighbour_order_from_lodging():
    places = [place("far", 3), place("near", 1), place("mid", 2)]
    accepted, overflow = sequence_day(places, window(0, "13:00", "17:00"), at(0))
    assert ids(accepted) == ["near", "mid", "far"]
    assert overflow == []


def test_walk_stops_at_budget():
    # 10:00-12:00 -> 90 usable minutes, one 60 minute stop fits
    places = [place(f"p{i}", i * 0.2, stay=60) for i in range(5)]
    accepted, overflow = sequence_day(places, window(0, "10:00", "12:00"), at(0))
    assert ids(accepted) == ["p0"]
    assert ids(overflow) == ["p1", "p2", "p3", "p4"]


def test_back_to_back_food_is_deferred():
    a = place("a", 0.5, category="dining", stay=30)
    b = place("b", 0.7, category="dining", stay=30)
    c = place("c", 1.5, stay=30)
    accepted, overflow = sequence_day([a, b, c], window(0, "14:00", "17:00"), at(0))
    assert ids(accepted) == ["a", "c"]
    assert ids(overflow) == ["b"]


def test_cafe_after_dining_is_deferred_too():
    meal = place("meal", 0.5, category="dining", stay=30)
    coffee = place("coffee", 0.6, category="cafe", stay=30)
    accepted, overflow = sequence_day([meal, coffee], window(0, "14:00", "17:00"), at(0))
    assert ids(accepted) == ["meal"]
    assert ids(overflow) == ["coffee"]


def test_food_separated_by_a_sight_is_fine():
    meal = place("meal", 0.5, category="dining", stay=30)
    museum = place("museum", 0.6, stay=30)
    coffee = place("coffee", 0.7, category="cafe", stay=30)
    accepted, overflow = sequence_day([meal, museum, coffee], window(0, "14:00", "17:00"), at(0))
    assert ids(accepted) == ["meal", "museum", "coffee"]
    assert overflow == []


def test_lunch_waits_for_noon():
    # the restaurant is closest but is pinned to lunch, so a sight goes first
    s1 = place("s1", 1, stay=120)
    d1 = place("d1", 0.5, category="dining", stay=60)
    s2 = place("s2", 2, stay=120)
    accepted, overflow = sequence_day([s1, d1, s2], window(0, "10:00", "20:00"), at(0))
    assert ids(accepted) == ["s1", "d1", "s2"]
    assert overflow == []


def test_pin_meals_picks_lunch_and_dinner():
    d_far = place("d_far", 3, category="dining")
    d_near = place("d_near", 1, category="dining")
    pins = pin_meals([d_far, place("s", 0.1), d_near], window(0, "10:00", "20:00"), at(0))
    assert [(t, p.id) for t, p in pins] == [(LUNCH_TARGET_MIN, "d_near"), (DINNER_TARGET_MIN, "d_far")]


def test_pin_meals_needs_the_window_to_span_the_meal():
    d = place("d", 1, category="dining")
    assert [t for t, _ in pin_meals([d], window(0, "10:00", "17:00"), at(0))] == [LUNCH_TARGET_MIN]
    assert [t for t, _ in pin_meals([d], window(0, "13:00", "20:00"), at(0))] == [DINNER_TARGET_MIN]
    assert pin_meals([d], window(0, "13:00", "17:00"), at(0)) == []
    # a cafe is never pinned
    assert pin_meals([place("c", 1, category="cafe")], window(0, "10:00", "20:00"), at(0)) == []


def test_zero_budget_accepts_nothing():
    accepted, overflow = sequence_day([place("a", 0, stay=30)], window(0, "10:00", "10:01"), at(0))
    assert accepted == []
    assert ids(overflow) == ["a"]


def test_without_start_location_keeps_input_order_for_first_pick():
    accepted, _ = sequence_day([place("x", 2), place("y", 0)], window(0, "13:00", "17:00"), None)
    assert ids(accepted) == ["x", "y"]
