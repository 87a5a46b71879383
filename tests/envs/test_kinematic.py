import pytest

from episodic_tuner.core.types import NavigationCommand, ParameterCommand, Pose
from episodic_tuner.envs import KinematicVehicle
from episodic_tuner.interfaces import EnvironmentAdapter


def fly(vehicle, seconds, dt=0.05):
    for _ in range(int(round(seconds / dt))):
        vehicle.advance(dt)


def test_satisfies_adapter_protocol():
    assert isinstance(KinematicVehicle(), EnvironmentAdapter)


def test_readiness_gates_arming():
    vehicle = KinematicVehicle(ready_after_s=1.0)
    assert not vehicle.is_ready()
    assert not vehicle.arm()
    vehicle.advance(1.0)
    assert vehicle.is_ready()
    assert vehicle.arm()
    assert vehicle.is_armed()


def test_negative_arguments_rejected():
    with pytest.raises(ValueError):
        KinematicVehicle(ready_after_s=-1.0)
    with pytest.raises(ValueError):
        KinematicVehicle().advance(-0.1)


def test_disarmed_vehicle_does_not_move():
    vehicle = KinematicVehicle()
    vehicle.apply_action(NavigationCommand((10.0, 0.0, 10.0)))
    fly(vehicle, 2.0)
    assert vehicle.position == (0.0, 0.0, 0.0)
    assert vehicle.observe().battery_current == 0.0


def test_climbs_and_settles_at_target():
    vehicle = KinematicVehicle()
    vehicle.arm()
    vehicle.apply_action(NavigationCommand((20.0, 0.0, 10.0)))
    fly(vehicle, 30.0)
    assert vehicle.distance_to((20.0, 0.0, 10.0)) < 0.05
    obs = vehicle.observe()
    assert abs(obs.vertical_speed) < 0.05
    assert obs.ground_speed == pytest.approx(0.0, abs=1e-9)


def test_horizontal_speed_follows_parameter():
    vehicle = KinematicVehicle(parameters={"WPNAV_SPEED": 2.0})
    vehicle.arm()
    vehicle.apply_action(NavigationCommand((100.0, 0.0, 0.0)))
    vehicle.advance(1.0)
    assert vehicle.position[0] == pytest.approx(2.0)
    vehicle.apply_action(ParameterCommand("WPNAV_SPEED", 4.0))
    vehicle.advance(1.0)
    assert vehicle.position[0] == pytest.approx(6.0)
    assert vehicle.observe().ground_speed == pytest.approx(4.0)


def test_ground_is_a_floor():
    vehicle = KinematicVehicle(home=(0.0, 0.0, 5.0))
    vehicle.arm()
    vehicle.apply_action(NavigationCommand((0.0, 0.0, -20.0)))
    fly(vehicle, 5.0)
    assert vehicle.position[2] == pytest.approx(5.0)


def test_throttle_saturates_on_large_error():
    vehicle = KinematicVehicle()
    vehicle.arm()
    vehicle.apply_action(NavigationCommand((0.0, 0.0, 50.0)))
    vehicle.advance(0.05)
    assert vehicle.observe().throttle == 1.0


def test_hover_power():
    vehicle = KinematicVehicle(hover_power_w=150.0)
    vehicle.arm()
    vehicle.advance(0.1)
    assert vehicle.observe().power_w == pytest.approx(150.0)


def test_climb_costs_more_than_hover():
    vehicle = KinematicVehicle()
    vehicle.arm()
    vehicle.apply_action(NavigationCommand((0.0, 0.0, 10.0)))
    vehicle.advance(0.5)
    assert vehicle.observe().power_w > vehicle.hover_power_w


def test_reset_teleports_and_clears_target():
    vehicle = KinematicVehicle()
    vehicle.arm()
    vehicle.apply_action(NavigationCommand((10.0, 10.0, 10.0)))
    fly(vehicle, 3.0)
    vehicle.disarm()
    vehicle.reset(Pose.nominal((0.0, 0.0, 0.0)))
    vehicle.arm()
    fly(vehicle, 1.0)
    obs = vehicle.observe()
    assert obs.position == (0.0, 0.0, 0.0)
    assert obs.velocity == (0.0, 0.0, 0.0)
    assert vehicle.resets == 1


def test_unsupported_command():
    with pytest.raises(TypeError):
        KinematicVehicle().apply_action("takeoff")


def test_deterministic_trajectory():
    def trajectory():
        vehicle = KinematicVehicle()
        vehicle.arm()
        vehicle.apply_action(NavigationCommand((5.0, -5.0, 8.0)))
        points = []
        for _ in range(100):
            vehicle.advance(0.05)
            points.append(vehicle.position)
        return points

    assert trajectory() == trajectory()
