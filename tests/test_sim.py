import random
import unittest

from galton_sim.config import BoardConfig, Config, SimConfig
from galton_sim.errors import IllegalLifecycleTransition, InvalidConfiguration, StaleRowReference
from galton_sim.sim import GaltonSimulation

DT = 1.0 / 60.0


def _sim(rows: int = 4, beads: int = 50, bias=None, **sim_kwargs) -> GaltonSimulation:
    sim_kwargs.setdefault("speed_per_tick", 0.25)
    system = GaltonSimulation(sim=SimConfig(**sim_kwargs), rng=random.Random(1234))
    system.configure(rows, beads, bias_per_row=bias)
    return system


def _run_frames(system: GaltonSimulation, n: int, dt: float = DT):
    snap = None
    for _ in range(n):
        snap = system.on_tick(dt)
    return snap


class TestLifecycle(unittest.TestCase):
    def test_calls_before_configure_are_illegal(self) -> None:
        system = GaltonSimulation()
        with self.assertRaises(IllegalLifecycleTransition):
            system.on_tick()
        with self.assertRaises(IllegalLifecycleTransition):
            system.spawn()
        with self.assertRaises(IllegalLifecycleTransition):
            system.start()
        # reset and stop are always legal
        system.stop()
        system.reset()
        self.assertEqual(system.state, "idle")

    def test_start_stop_transitions(self) -> None:
        system = _sim()
        self.assertEqual(system.state, "idle")
        system.start()
        self.assertEqual(system.state, "running")
        with self.assertRaises(IllegalLifecycleTransition):
            system.start()
        self.assertEqual(system.state, "running")
        system.stop()
        system.stop()
        self.assertEqual(system.state, "idle")
        system.start()
        self.assertTrue(system.running)

    def test_idle_on_tick_is_a_pure_read(self) -> None:
        system = _sim()
        system.start()
        _run_frames(system, 10)
        system.stop()
        positions = system.snapshot().active_bead_positions
        before = system.on_tick(DT)
        after = system.on_tick(DT)
        self.assertEqual(before, after)
        self.assertEqual(after.active_bead_positions, positions)
        self.assertEqual(after.state, "idle")
        self.assertEqual(after.tick, 10)

    def test_drop_cadence(self) -> None:
        system = _sim(beads=100, drop_interval_ms=30.0)
        system.start()
        snap = system.on_tick(0.1)
        self.assertEqual(snap.remaining_beads, 97)
        self.assertEqual(len(snap.active_bead_positions), 3)
        self.assertEqual(snap.tick, 1)

    def test_drop_stops_when_budget_is_spent(self) -> None:
        system = _sim(beads=5, drop_interval_ms=10.0)
        system.start()
        snap = _run_frames(system, 200)
        self.assertEqual(snap.remaining_beads, 0)
        self.assertEqual(sum(snap.bin_counts), 5)
        self.assertTrue(snap.finished)
        self.assertIsNone(system.spawn())

    def test_reset_returns_to_idle_and_clears(self) -> None:
        system = _sim(beads=20, drop_interval_ms=10.0)
        system.set_bias(1, 0.9)
        system.start()
        _run_frames(system, 30)
        system.reset()
        snap = system.snapshot()
        self.assertEqual(snap.state, "idle")
        self.assertEqual(snap.tick, 0)
        self.assertEqual(snap.settled_beads, [])
        self.assertEqual(snap.active_bead_positions, [])
        self.assertEqual(snap.bin_counts, [0] * 5)
        self.assertEqual(snap.remaining_beads, 20)
        self.assertEqual(system.biases.get(1), 0.9)


class TestScenarios(unittest.TestCase):
    def test_always_right_fills_last_bin(self) -> None:
        system = _sim(rows=3, beads=40, bias=[1.0, 1.0, 1.0])
        snap = system.run_until_settled()
        self.assertEqual(snap.bin_counts, [0, 0, 0, 40])
        self.assertEqual(len(snap.settled_beads), 40)
        self.assertEqual(len({(b.x, b.y) for b in snap.settled_beads}), 40)

    def test_always_left_fills_first_bin(self) -> None:
        system = _sim(rows=3, beads=25, bias=[0.0, 0.0, 0.0])
        snap = system.run_until_settled()
        self.assertEqual(snap.bin_counts, [25, 0, 0, 0])

    def test_zero_rows(self) -> None:
        system = _sim(rows=0, beads=10)
        self.assertEqual(system.layout.bin_count, 1)
        snap = system.run_until_settled()
        self.assertEqual(snap.bin_counts, [10])

    def test_completed_beads_are_reported_once(self) -> None:
        system = _sim(rows=2, beads=30, drop_interval_ms=10.0)
        system.start()
        seen = []
        for _ in range(400):
            seen.extend(system.on_tick(DT).completed)
        self.assertEqual(seen, system.snapshot().settled_beads)

    def test_statistics(self) -> None:
        system = _sim(rows=3, beads=10, bias=[1.0, 0.5, 0.0])
        system.run_until_settled()
        st = system.statistics()
        self.assertEqual(st.total, 10)
        self.assertAlmostEqual(st.expected_mean, 1.5)
        self.assertAlmostEqual(st.expected_variance, 0.25)
        self.assertTrue(1.0 <= st.mean <= 2.0)


class TestConfigure(unittest.TestCase):
    def test_row_change_discards_all_beads(self) -> None:
        system = _sim(rows=4, beads=40, drop_interval_ms=10.0)
        system.set_bias(0, 0.2)
        system.start()
        _run_frames(system, 60)
        self.assertGreater(len(system.snapshot().settled_beads), 0)

        layout = system.configure(6, 40)
        snap = system.snapshot()
        self.assertEqual(layout.row_count, 6)
        self.assertEqual(snap.settled_beads, [])
        self.assertEqual(snap.active_bead_positions, [])
        self.assertEqual(snap.bin_counts, [0] * 7)
        self.assertEqual(system.biases.values(), [0.2, 0.5, 0.5, 0.5, 0.5, 0.5])
        # lifecycle state survives a rebuild
        self.assertTrue(system.running)

    def test_bias_edit_keeps_settled_and_in_flight(self) -> None:
        system = _sim(rows=4, beads=100, drop_interval_ms=10.0)
        system.start()
        snap = _run_frames(system, 20)
        settled, active = len(snap.settled_beads), len(snap.active_bead_positions)
        remaining = snap.remaining_beads
        self.assertGreater(active, 0)
        self.assertLess(remaining, 100)
        system.configure(4, 100, bias_per_row=[0.1, 0.2, 0.3, 0.4])
        snap = system.snapshot()
        self.assertEqual(len(snap.settled_beads), settled)
        self.assertEqual(len(snap.active_bead_positions), active)
        self.assertEqual(snap.remaining_beads, remaining)

    def test_bias_edit_after_settling_drops_nothing_new(self) -> None:
        system = _sim(rows=3, beads=10)
        snap = system.run_until_settled()
        self.assertEqual(len(snap.settled_beads), 10)
        system.configure(3, 10, bias_per_row=[0.9] * 3)
        self.assertEqual(system.remaining, 0)
        snap = system.run_until_settled()
        self.assertEqual(len(snap.settled_beads), 10)
        self.assertEqual(sum(snap.bin_counts), 10)
        self.assertEqual(system.biases.values(), [0.9] * 3)

    def test_bead_count_edit_reseeds_budget(self) -> None:
        system = _sim(rows=3, beads=10)
        system.run_until_settled()
        system.configure(3, 4)
        self.assertEqual(system.remaining, 4)
        snap = system.run_until_settled()
        self.assertEqual(len(snap.settled_beads), 14)

    def test_non_numeric_bias_rejected(self) -> None:
        system = _sim(rows=3, beads=10)
        with self.assertRaises(InvalidConfiguration):
            system.configure(3, 10, bias_per_row=["x", 0.5, 0.5])
        with self.assertRaises(InvalidConfiguration):
            system.configure(3, 10, bias_per_row=5)
        with self.assertRaises(InvalidConfiguration):
            system.set_bias(0, "abc")
        with self.assertRaises(InvalidConfiguration):
            system.set_bias(0, None)
        self.assertEqual(system.biases.values(), [0.5, 0.5, 0.5])
        system.set_bias(1, "0.25")
        self.assertEqual(system.biases.get(1), 0.25)

    def test_sim_config_bias_seeds_first_configure(self) -> None:
        system = GaltonSimulation(sim=SimConfig(bias=[0.1, 0.2, 0.3]), rng=random.Random(1))
        system.configure(3, 5)
        self.assertEqual(system.biases.values(), [0.1, 0.2, 0.3])
        # later edits without a bias list keep the current table
        system.set_bias(0, 0.6)
        system.configure(3, 8)
        self.assertEqual(system.biases.values(), [0.6, 0.2, 0.3])

    def test_scalar_sim_config_bias_broadcasts(self) -> None:
        system = GaltonSimulation(sim=SimConfig(bias=0.8), rng=random.Random(1))
        system.configure(4, 5)
        self.assertEqual(system.biases.values(), [0.8] * 4)

    def test_sim_config_bias_length_mismatch(self) -> None:
        system = GaltonSimulation(sim=SimConfig(bias=[0.1, 0.2]), rng=random.Random(1))
        with self.assertRaises(InvalidConfiguration):
            system.configure(3, 5)
        self.assertFalse(system.configured)

    def test_reset_in_flight_drops_active_beads_only(self) -> None:
        system = _sim(rows=4, beads=100, drop_interval_ms=10.0, reset_in_flight=True)
        system.start()
        snap = _run_frames(system, 20)
        settled = len(snap.settled_beads)
        system.configure(4, 30)
        snap = system.snapshot()
        self.assertEqual(len(snap.settled_beads), settled)
        self.assertEqual(snap.active_bead_positions, [])
        self.assertEqual(snap.remaining_beads, 30)

    def test_invalid_configuration_leaves_state_untouched(self) -> None:
        system = _sim(rows=4, beads=10)
        system.set_bias(2, 0.7)
        layout = system.layout
        bad_calls = [
            dict(row_count=-1, bead_count=10),
            dict(row_count=4, bead_count=-3),
            dict(row_count=4, bead_count=10, bias_per_row=[0.5, 0.5, 1.5, 0.5]),
            dict(row_count=4, bead_count=10, bias_per_row=[0.5, 0.5]),
            dict(row_count=4, bead_count=10, speed_per_tick=0.0),
            dict(row_count=5, bead_count=10, speed_per_tick=-1.0),
        ]
        for kwargs in bad_calls:
            with self.assertRaises(InvalidConfiguration):
                system.configure(**kwargs)
        self.assertIs(system.layout, layout)
        self.assertEqual(system.biases.values(), [0.5, 0.5, 0.7, 0.5])
        self.assertEqual(system.remaining, 10)
        self.assertEqual(system.speed_per_tick, 0.25)

    def test_set_bias_validation(self) -> None:
        system = _sim(rows=3)
        with self.assertRaises(StaleRowReference):
            system.set_bias(3, 0.5)
        with self.assertRaises(InvalidConfiguration):
            system.set_bias(0, 1.01)
        with self.assertRaises(InvalidConfiguration):
            system.set_bias(0, -0.1)
        self.assertEqual(system.biases.values(), [0.5, 0.5, 0.5])
        system.set_bias(0, 1.0)
        self.assertEqual(system.biases.get(0), 1.0)

    def test_live_bias_edit_steers_new_beads(self) -> None:
        system = _sim(rows=2, beads=1000)
        system.set_bias(0, 1.0)
        system.set_bias(1, 1.0)
        beads = [system.spawn() for _ in range(50)]
        self.assertTrue(all(b.final_bin == 2 for b in beads))

    def test_set_speed(self) -> None:
        system = _sim()
        system.set_speed(0.5)
        self.assertEqual(system.speed_per_tick, 0.5)
        with self.assertRaises(InvalidConfiguration):
            system.set_speed(0)

    def test_from_config(self) -> None:
        cfg = Config(board=BoardConfig(row_count=5), sim=SimConfig(bead_count=12, bias=[0.2] * 5, seed=3))
        system = GaltonSimulation.from_config(cfg)
        self.assertEqual(system.layout.row_count, 5)
        self.assertEqual(system.biases.values(), [0.2] * 5)
        self.assertEqual(system.remaining, 12)


if __name__ == "__main__":
    unittest.main()
