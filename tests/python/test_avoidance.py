from __future__ import annotations

from pygame.math import Vector2
from pytest import approx

from steerlab.sim.core.agent import Agent
from steerlab.sim.systems.avoidance import (
    Obstacle,
    arrive_steer,
    obstacle_avoidance,
    path_following,
    predictive_avoidance,
    predictive_avoidance_sum,
    separation,
    wall_avoidance,
)
from steerlab.sim.utils.math2d import length


def _agent(agent_id: int, position, velocity=(0.0, 0.0), max_speed: float = 2.4) -> Agent:
    return Agent(
        id=agent_id,
        position=Vector2(position),
        velocity=Vector2(velocity),
        max_speed=max_speed,
        max_force=0.14,
    )


def test_separation_pushes_pair_apart_symmetrically():
    first = _agent(0, (0.0, 0.0))
    second = _agent(1, (10.0, 0.0))
    population = [first, second]
    assert tuple(separation(first, population, 48.0, 0.9)) == approx((-0.9, 0.0))
    assert tuple(separation(second, population, 48.0, 0.9)) == approx((0.9, 0.0))


def test_separation_without_neighbors_in_radius_is_zero():
    lonely = _agent(0, (0.0, 0.0))
    far = _agent(1, (100.0, 0.0))
    assert tuple(separation(lonely, [lonely], 48.0, 0.9)) == (0.0, 0.0)
    assert tuple(separation(lonely, [lonely, far], 48.0, 0.9)) == (0.0, 0.0)
    assert tuple(separation(lonely, [], 48.0, 0.9)) == (0.0, 0.0)


def test_separation_weights_closer_neighbors_more():
    agent = _agent(0, (0.0, 0.0))
    close = _agent(1, (10.0, 0.0))
    distant = _agent(2, (0.0, -40.0))
    steer = separation(agent, [agent, close, distant], 48.0, 0.9)
    assert steer.x < 0.0 < steer.y
    assert abs(steer.x) > abs(steer.y)
    assert length(steer) == approx(0.9)


def test_separation_excludes_self_by_identity():
    agent = _agent(0, (0.0, 0.0))
    twin = _agent(0, (0.0, 0.0))
    assert twin != agent
    twin.position = Vector2(5.0, 0.0)
    steer = separation(agent, [agent, twin], 48.0, 1.0)
    assert tuple(steer) == approx((-1.0, 0.0))


def test_predictive_avoidance_pushes_away_from_predicted_position():
    agent = _agent(0, (0.0, 0.0), velocity=(1.0, 0.0))
    other = _agent(1, (30.0, 0.0), velocity=(-1.0, 0.0))
    force = predictive_avoidance(agent, other, 5.0, 0.9)
    # predicted gap 20 of 24 -> depth 1/6 -> 0.9 * (0.4 + 0.1)
    assert tuple(force) == approx((-0.45, 0.0))


def test_predictive_avoidance_force_range():
    agent = _agent(0, (0.0, 0.0))
    grazing = predictive_avoidance(agent, _agent(1, (23.99, 0.0)), 0.9, 1.0)
    deep = predictive_avoidance(agent, _agent(2, (0.01, 0.0)), 0.9, 1.0)
    assert length(grazing) == approx(0.4, abs=1e-3)
    assert length(deep) == approx(1.0, abs=1e-3)


def test_predictive_avoidance_ignores_far_and_degenerate_pairs():
    agent = _agent(0, (0.0, 0.0), velocity=(1.0, 0.0))
    far = _agent(1, (30.0, 0.0), velocity=(-1.0, 0.0))
    coincident = _agent(2, (0.0, 0.0), velocity=(1.0, 0.0))
    assert tuple(predictive_avoidance(agent, far, 0.9, 0.9)) == (0.0, 0.0)
    assert tuple(predictive_avoidance(agent, coincident, 0.9, 0.9)) == (0.0, 0.0)


def test_predictive_avoidance_sum_covers_every_other_agent():
    agents = [_agent(i, (i * 10.0, 0.0)) for i in range(3)]
    total, checks = predictive_avoidance_sum(agents[0], agents, 0.9, 0.9)
    assert checks == 2
    expected = predictive_avoidance(agents[0], agents[1], 0.9, 0.9) + predictive_avoidance(
        agents[0], agents[2], 0.9, 0.9
    )
    assert tuple(total) == approx(tuple(expected))


def test_obstacle_avoidance_steers_away_from_obstacle_ahead():
    agent = _agent(0, (0.0, 0.0), velocity=(1.0, 0.0))
    obstacle = Obstacle(center=Vector2(100.0, 0.0), radius=30.0)
    steer = obstacle_avoidance(agent, [obstacle], 70.0, 1.2)
    assert steer.x < 0.0
    assert steer.y == approx(0.0)
    assert length(steer) <= 1.2 + 1e-9


def test_obstacle_avoidance_clear_path_is_zero():
    agent = _agent(0, (0.0, 0.0), velocity=(1.0, 0.0))
    obstacle = Obstacle(center=Vector2(0.0, 300.0), radius=30.0)
    assert tuple(obstacle_avoidance(agent, [obstacle], 70.0, 1.2)) == (0.0, 0.0)
    assert tuple(obstacle_avoidance(agent, [], 70.0, 1.2)) == (0.0, 0.0)


def test_obstacle_avoidance_secondary_check_when_already_inside():
    # still agent looks along (0, -1) away from the obstacle; only its body is inside the buffer
    agent = _agent(0, (100.0, -37.5))
    obstacle = Obstacle(center=Vector2(100.0, 0.0), radius=30.0)
    steer = obstacle_avoidance(agent, [obstacle], 70.0, 1.0)
    assert tuple(steer) == approx((0.0, -0.4))


def test_obstacle_avoidance_default_heading_when_still():
    agent = _agent(0, (0.0, 0.0))
    obstacle = Obstacle(center=Vector2(5.0, -70.0), radius=10.0)
    steer = obstacle_avoidance(agent, [obstacle], 70.0, 1.2)
    assert tuple(steer) == approx((-1.2, 0.0))


def test_wall_avoidance_ramps_inside_margin():
    assert tuple(wall_avoidance(_agent(0, (900.0, 500.0)), 1800.0, 1000.0, 40.0, 1.6)) == (0.0, 0.0)
    assert tuple(wall_avoidance(_agent(0, (10.0, 500.0)), 1800.0, 1000.0, 40.0, 1.6)) == approx((1.2, 0.0))
    assert tuple(wall_avoidance(_agent(0, (0.0, 500.0)), 1800.0, 1000.0, 40.0, 1.6)) == approx((1.6, 0.0))
    assert tuple(wall_avoidance(_agent(0, (1790.0, 500.0)), 1800.0, 1000.0, 40.0, 1.6)) == approx((-1.2, 0.0))


def test_wall_avoidance_corners_combine_axes():
    steer = wall_avoidance(_agent(0, (10.0, 990.0)), 1800.0, 1000.0, 40.0, 1.6)
    assert tuple(steer) == approx((1.2, -1.2))


def test_path_following_single_waypoint_keeps_index():
    agent = _agent(0, (0.0, 0.0))
    path = [Vector2(5.0, 0.0)]
    steer = path_following(agent, path, 22.0)
    assert agent.path_index == 0
    assert tuple(steer) == approx((2.4 * 5.0 / 55.0, 0.0))

    agent.position = Vector2(-300.0, 0.0)
    steer = path_following(agent, path, 22.0)
    assert agent.path_index == 0
    assert tuple(steer) == approx((2.4, 0.0))


def test_path_following_advances_and_wraps():
    path = [Vector2(0.0, 0.0), Vector2(100.0, 0.0)]
    agent = _agent(0, (1.0, 0.0))
    steer = path_following(agent, path, 22.0)
    assert agent.path_index == 1
    assert tuple(steer) == approx((2.4, 0.0))

    agent.position = Vector2(95.0, 0.0)
    steer = path_following(agent, path, 22.0)
    assert agent.path_index == 0
    assert steer.x < 0.0


def test_path_following_empty_path_and_stale_index():
    agent = _agent(0, (0.0, 0.0))
    agent.path_index = 3
    assert tuple(path_following(agent, [], 22.0)) == (0.0, 0.0)
    assert agent.path_index == 3

    path_following(agent, [Vector2(500.0, 0.0), Vector2(0.0, 500.0)], 22.0)
    assert agent.path_index == 0


def test_arrive_steer_subtracts_current_velocity():
    agent = _agent(0, (0.0, 0.0), velocity=(0.0, 1.0))
    assert tuple(arrive_steer(agent, Vector2(300.0, 0.0), 55.0)) == approx((2.4, -1.0))
    agent.position = Vector2(300.0, 0.0)
    assert tuple(arrive_steer(agent, Vector2(300.0, 0.0), 55.0)) == approx((0.0, -1.0))


def test_path_following_is_a_steering_force():
    agent = _agent(0, (0.0, 0.0), velocity=(2.0, 0.0))
    steer = path_following(agent, [Vector2(0.0, -400.0)], 22.0)
    assert tuple(steer) == approx((-2.0, -2.4))
