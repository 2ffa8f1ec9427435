from __future__ import annotations

import math

import pytest
from pygame.math import Vector2
from pytest import approx

from steerlab.sim.core.agent import Agent
from steerlab.sim.core.rng import DeterministicRng
from steerlab.sim.systems import behaviors
from steerlab.sim.types.modes import SingleBehavior
from steerlab.sim.utils.math2d import length


def _agent(position=(0.0, 0.0), velocity=(0.0, 0.0), max_speed=3.0) -> Agent:
    return Agent(id=0, position=Vector2(position), velocity=Vector2(velocity), max_speed=max_speed, max_force=0.12)


def test_seek_returns_full_speed_toward_target():
    desired = behaviors.seek(Vector2(0.0, 0.0), Vector2(100.0, 0.0), 3.0)
    assert tuple(desired) == approx((3.0, 0.0))


def test_seek_degenerates_to_zero_on_target():
    desired = behaviors.seek(Vector2(5.0, 5.0), Vector2(5.0, 5.0), 3.0)
    assert tuple(desired) == (0.0, 0.0)


@pytest.mark.parametrize(
    "position,target",
    [((0.0, 0.0), (10.0, 0.0)), ((3.0, -2.0), (-8.0, 11.0)), ((400.0, 300.0), (401.0, 299.5))],
)
def test_seek_and_flee_are_opposites(position, target):
    seek = behaviors.seek(Vector2(position), Vector2(target), 2.4)
    flee = behaviors.flee(Vector2(position), Vector2(target), 2.4)
    assert seek.x == approx(-flee.x)
    assert seek.y == approx(-flee.y)


def test_pursue_without_target_motion_matches_seek():
    position = Vector2(10.0, 10.0)
    target = Vector2(60.0, -20.0)
    pursue = behaviors.pursue(position, target, Vector2(), 3.0, 0.8)
    seek = behaviors.seek(position, target, 3.0)
    assert tuple(pursue) == approx(tuple(seek))


def test_pursue_leads_a_moving_target():
    desired = behaviors.pursue(Vector2(0.0, 0.0), Vector2(100.0, 0.0), Vector2(0.0, 1.0), 2.0, 0.5)
    assert desired.y > 0.0
    assert length(desired) == approx(2.0)


def test_pursue_lead_grows_with_distance():
    near = behaviors.predict_target(Vector2(90.0, 0.0), Vector2(100.0, 0.0), Vector2(0.0, 1.0), 2.0, 0.5)
    far = behaviors.predict_target(Vector2(0.0, 0.0), Vector2(100.0, 0.0), Vector2(0.0, 1.0), 2.0, 0.5)
    assert far.y > near.y > 0.0


def test_pursue_with_zero_speed_stays_finite():
    desired = behaviors.pursue(Vector2(0.0, 0.0), Vector2(50.0, 0.0), Vector2(1.0, 1.0), 0.0, 0.8)
    assert math.isfinite(desired.x) and math.isfinite(desired.y)
    assert tuple(desired) == (0.0, 0.0)


def test_evade_flees_the_predicted_point():
    args = (Vector2(0.0, 0.0), Vector2(100.0, 0.0), Vector2(0.0, 3.0), 3.0, 0.8)
    pursue = behaviors.pursue(*args)
    evade = behaviors.evade(*args)
    assert evade.x == approx(-pursue.x)
    assert evade.y == approx(-pursue.y)


def test_arrive_stops_at_target():
    desired = behaviors.arrive(Vector2(10.0, 10.0), Vector2(10.0005, 10.0), 3.0, 140.0)
    assert tuple(desired) == (0.0, 0.0)


def test_arrive_ramps_speed_inside_slowing_radius():
    origin = Vector2(0.0, 0.0)
    speeds = [length(behaviors.arrive(origin, Vector2(d, 0.0), 3.0, 140.0)) for d in range(1, 200, 7)]
    assert speeds == sorted(speeds)
    assert length(behaviors.arrive(origin, Vector2(70.0, 0.0), 3.0, 140.0)) == approx(1.5)
    assert length(behaviors.arrive(origin, Vector2(140.0, 0.0), 3.0, 140.0)) == approx(3.0)
    assert length(behaviors.arrive(origin, Vector2(900.0, 0.0), 3.0, 140.0)) == approx(3.0)


def test_wander_uses_default_heading_when_still():
    agent = _agent(max_speed=100.0)
    rng = DeterministicRng(5)
    desired = behaviors.wander(agent, rng)
    angle = agent.wander_angle
    assert abs(angle) <= 0.5
    assert desired.x == approx(math.cos(angle) * 30.0)
    assert desired.y == approx(-50.0 + math.sin(angle) * 30.0)


def test_wander_angle_persists_and_result_is_clamped():
    agent = _agent(velocity=(1.0, 0.0), max_speed=3.0)
    rng = DeterministicRng(11)
    previous = agent.wander_angle
    for _ in range(50):
        desired = behaviors.wander(agent, rng)
        assert abs(agent.wander_angle - previous) <= 0.5 + 1e-9
        assert length(desired) <= 3.0 + 1e-9
        previous = agent.wander_angle


def test_wander_is_reproducible_for_a_seed():
    first = _agent(velocity=(0.5, 0.5))
    second = _agent(velocity=(0.5, 0.5))
    rng_a = DeterministicRng(99)
    rng_b = DeterministicRng(99)
    for _ in range(10):
        a = behaviors.wander(first, rng_a)
        b = behaviors.wander(second, rng_b)
        assert tuple(a) == approx(tuple(b))
    assert first.wander_angle == second.wander_angle


def test_desired_velocity_dispatches_by_behavior():
    agent = _agent(position=(0.0, 0.0))
    target = Vector2(70.0, 0.0)
    rng = DeterministicRng(1)
    seek = behaviors.desired_velocity(SingleBehavior.SEEK, agent, target, Vector2(), rng)
    flee = behaviors.desired_velocity(SingleBehavior.FLEE, agent, target, Vector2(), rng)
    arrive = behaviors.desired_velocity(SingleBehavior.ARRIVE, agent, target, Vector2(), rng, slowing_radius=140.0)
    assert tuple(seek) == approx((3.0, 0.0))
    assert tuple(flee) == approx((-3.0, 0.0))
    assert tuple(arrive) == approx((1.5, 0.0))

    reference = _agent(position=(0.0, 0.0))
    expected = behaviors.wander(reference, DeterministicRng(1))
    wander = behaviors.desired_velocity(SingleBehavior.WANDER, agent, target, Vector2(), rng)
    assert tuple(wander) == approx(tuple(expected))
    assert agent.wander_angle == reference.wander_angle
