"""Tests for SimulationEngine commands, queries and tick behaviour."""

import pytest

from clinicflow.core.entities import PatientPriority, PatientStatus, StaffRole
from clinicflow.core.scenario import EngineConfig
from clinicflow.model.engine import SimulationEngine


def run_ticks(engine, n, elapsed=10.0):
    for _ in range(n):
        engine.tick(elapsed)


class TestScenarios:
    """End-to-end scenarios with deterministic durations."""

    def test_single_critical_patient_treated(self, staffed_engine):
        """One of each role; a critical patient goes all the way through."""
        engine = staffed_engine
        patient_id = engine.manually_add_patient(PatientPriority.CRITICAL)

        patient = engine.get_patient(patient_id)
        assert patient.status is PatientStatus.WAITING
        assert patient.arrival_time == 0.0

        engine.tick(1.0)
        assert engine.get_patient(patient_id).status is PatientStatus.WITH_RECEPTIONIST

        # Registration 3 min, nursing 10 min, treatment 20 min
        run_ticks(engine, 400)

        patient = engine.get_patient(patient_id)
        assert patient.status is PatientStatus.TREATED
        assert patient.completion_time > patient.arrival_time
        assert engine.get_stats().treated_patients == 1

    def test_completion_time_matches_service_chain(self, staffed_engine):
        engine = staffed_engine
        patient_id = engine.manually_add_patient(PatientPriority.URGENT)

        # Assigned at t=10, then 180 + 600 + 1200 seconds of service
        run_ticks(engine, 400)

        assert engine.get_patient(patient_id).completion_time == pytest.approx(1990.0)
        stats = engine.get_stats()
        assert stats.average_wait_time == pytest.approx(1990.0)
        assert stats.max_wait_time == pytest.approx(1990.0)

    def test_one_receptionist_two_patients(self, staffed_engine):
        """Only one of two simultaneous arrivals gets registered this tick."""
        engine = staffed_engine
        first = engine.manually_add_patient(PatientPriority.STANDARD)
        second = engine.manually_add_patient(PatientPriority.STANDARD)

        engine.tick(1.0)

        assert engine.get_patient(first).status is PatientStatus.WITH_RECEPTIONIST
        assert engine.get_patient(second).status is PatientStatus.WAITING

    def test_priority_beats_arrival_order(self, engine):
        standard = engine.manually_add_patient(PatientPriority.STANDARD)
        engine.tick(5.0)
        critical = engine.manually_add_patient(PatientPriority.CRITICAL)
        engine.add_staff(StaffRole.RECEPTIONIST)

        engine.tick(1.0)

        assert engine.get_patient(critical).status is PatientStatus.WITH_RECEPTIONIST
        assert engine.get_patient(standard).status is PatientStatus.WAITING

    def test_fifo_within_priority(self, engine):
        earlier = engine.manually_add_patient(PatientPriority.URGENT)
        engine.tick(5.0)
        later = engine.manually_add_patient(PatientPriority.URGENT)
        engine.add_staff(StaffRole.RECEPTIONIST)

        engine.tick(1.0)

        assert engine.get_patient(earlier).status is PatientStatus.WITH_RECEPTIONIST
        assert engine.get_patient(later).status is PatientStatus.WAITING

    def test_zero_arrival_rate_no_arrivals(self, staffed_engine):
        staffed_engine.set_arrival_rate(0)
        run_ticks(staffed_engine, 500, elapsed=60.0)

        assert staffed_engine.get_stats().total_patients == 0
        assert staffed_engine.get_patients() == []

    def test_starvation_without_staff(self, engine):
        """Patients wait indefinitely when no staff of the role exist."""
        patient_id = engine.manually_add_patient(PatientPriority.CRITICAL)
        run_ticks(engine, 100, elapsed=60.0)

        assert engine.get_patient(patient_id).status is PatientStatus.WAITING
        assert engine.get_stats().queue_length == 1


class TestInvariants:
    """Properties that hold on every tick of a busy random run."""

    def test_random_run_invariants(self):
        config = EngineConfig(
            arrival_rate=30.0,
            initial_staff={StaffRole.RECEPTIONIST: 1, StaffRole.NURSE: 2, StaffRole.DOCTOR: 2},
            random_seed=7,
        )
        engine = SimulationEngine(config)
        last_status = {}
        engine.start()

        for _ in range(600):
            engine.tick(30.0)
            snapshot = engine.snapshot()

            held = [s.current_patient_id for s in snapshot.staff if s.current_patient_id is not None]
            assert len(held) == len(set(held))

            for value in snapshot.stats.staff_utilization.values():
                assert 0.0 <= value <= 1.0

            for patient in snapshot.patients:
                assert patient.status >= last_status.get(patient.id, PatientStatus.WAITING)
                last_status[patient.id] = patient.status
                assert (patient.completion_time is not None) == (
                    patient.status is PatientStatus.TREATED
                )
                if patient.completion_time is not None:
                    assert patient.completion_time >= patient.arrival_time

            in_service = {p.id for p in snapshot.patients if p.status in (
                PatientStatus.WITH_RECEPTIONIST, PatientStatus.WITH_NURSE, PatientStatus.WITH_DOCTOR,
            )}
            assert in_service == set(held)

        stats = engine.get_stats()
        assert stats.total_patients > 0
        assert stats.treated_patients > 0
        assert stats.treated_patients <= stats.total_patients

    def test_same_seed_same_run(self):
        def final_stats(seed):
            config = EngineConfig(
                arrival_rate=20.0,
                initial_staff={StaffRole.RECEPTIONIST: 1, StaffRole.NURSE: 1, StaffRole.DOCTOR: 1},
                random_seed=seed,
            )
            engine = SimulationEngine(config)
            engine.start()
            run_ticks(engine, 300, elapsed=30.0)
            return engine.get_stats().to_dict()

        assert final_stats(3) == final_stats(3)


class TestClockControl:
    """Test start, pause and speed."""

    def test_pause_freezes_everything(self, staffed_engine):
        engine = staffed_engine
        patient_id = engine.manually_add_patient(PatientPriority.URGENT)
        engine.pause()

        assert engine.tick(100.0) is False
        assert engine.current_time == 0.0
        assert engine.get_patient(patient_id).status is PatientStatus.WAITING

    def test_start_and_pause_idempotent(self, engine):
        engine.start()
        engine.start()
        assert engine.is_running
        engine.pause()
        engine.pause()
        assert not engine.is_running

    def test_time_scaled_by_speed(self, engine):
        engine.set_simulation_speed(4.0)
        engine.tick(2.5)
        assert engine.current_time == 10.0

    def test_speed_change_keeps_deadlines(self, staffed_engine):
        engine = staffed_engine
        engine.manually_add_patient(PatientPriority.STANDARD)
        engine.tick(1.0)
        receptionist = next(s for s in engine.get_staff() if s.role is StaffRole.RECEPTIONIST)
        assert receptionist.busy_until == 181.0

        engine.set_simulation_speed(10.0)
        engine.tick(1.0)

        receptionist = next(s for s in engine.get_staff() if s.role is StaffRole.RECEPTIONIST)
        assert engine.current_time == 11.0
        assert receptionist.busy_until == 181.0

    def test_negative_elapsed_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.tick(-1.0)

    @pytest.mark.parametrize("speed", [0.0, 0.25, 11.0])
    def test_invalid_speed_rejected(self, engine, speed):
        with pytest.raises(ValueError, match="simulation_speed"):
            engine.set_simulation_speed(speed)
        assert engine.simulation_speed == 1.0

    @pytest.mark.parametrize("rate", [-1.0, 31.0])
    def test_invalid_rate_rejected(self, engine, rate):
        with pytest.raises(ValueError, match="arrival_rate"):
            engine.set_arrival_rate(rate)
        assert engine.arrival_rate == 0.0


class TestStaffCommands:
    """Test add_staff and remove_staff."""

    def test_add_staff_assigns_unique_ids(self, engine):
        first = engine.add_staff(StaffRole.NURSE, 2)
        second = engine.add_staff("doctor")

        assert first == [1, 2]
        assert second == [3]
        assert engine.staff_count(StaffRole.NURSE) == 2
        assert engine.staff_count(StaffRole.DOCTOR) == 1

    @pytest.mark.parametrize("count", [0, -1, 1.5, True])
    def test_add_staff_rejects_bad_count(self, engine, count):
        with pytest.raises(ValueError, match="count"):
            engine.add_staff(StaffRole.NURSE, count)

    def test_remove_idle_staff(self, staffed_engine):
        assert staffed_engine.remove_staff(StaffRole.NURSE) is True
        assert staffed_engine.staff_count(StaffRole.NURSE) == 0

    def test_remove_refused_when_all_busy(self, staffed_engine):
        engine = staffed_engine
        engine.manually_add_patient(PatientPriority.URGENT)
        engine.tick(1.0)

        assert engine.remove_staff(StaffRole.RECEPTIONIST) is False
        assert engine.staff_count(StaffRole.RECEPTIONIST) == 1

    def test_remove_refused_when_none_exist(self, engine):
        assert engine.remove_staff(StaffRole.DOCTOR) is False

    def test_remove_picks_idle_member(self, staffed_engine):
        engine = staffed_engine
        engine.add_staff(StaffRole.RECEPTIONIST)
        engine.manually_add_patient(PatientPriority.URGENT)
        engine.tick(1.0)

        assert engine.remove_staff(StaffRole.RECEPTIONIST) is True
        remaining = [s for s in engine.get_staff() if s.role is StaffRole.RECEPTIONIST]
        assert len(remaining) == 1
        assert remaining[0].current_patient_id == 1

    def test_initial_staff_from_config(self, fixed_service):
        config = EngineConfig(
            arrival_rate=0.0,
            initial_staff={StaffRole.DOCTOR: 2, StaffRole.NURSE: 3, StaffRole.RECEPTIONIST: 1},
        )
        engine = SimulationEngine(config, service_times=fixed_service)

        assert len(engine.get_staff()) == 6
        assert engine.staff_count(StaffRole.NURSE) == 3


class TestReset:
    """Test reset round trip."""

    def test_reset_clears_everything(self, staffed_engine):
        engine = staffed_engine
        engine.manually_add_patient(PatientPriority.CRITICAL)
        run_ticks(engine, 300)
        assert engine.get_stats().treated_patients == 1

        engine.reset()

        stats = engine.get_stats()
        assert stats.total_patients == 0
        assert stats.treated_patients == 0
        assert stats.average_wait_time == 0.0
        assert stats.max_wait_time == 0.0
        assert stats.queue_length == 0
        assert stats.throughput == 0.0
        assert all(v == 0.0 for v in stats.staff_utilization.values())
        assert engine.get_patients() == []
        assert engine.get_staff() == []
        assert engine.current_time == 0.0
        assert not engine.is_running

    def test_reset_restarts_ids_and_keeps_settings(self, engine):
        engine.set_arrival_rate(12.0)
        engine.manually_add_patient(PatientPriority.URGENT)
        engine.add_staff(StaffRole.NURSE)

        engine.reset()

        assert engine.arrival_rate == 12.0
        assert engine.add_staff(StaffRole.NURSE) == [1]
        assert engine.manually_add_patient(PatientPriority.URGENT) == 1


class TestRetention:
    """Test eviction of old treated patients."""

    def test_oldest_treated_evicted(self, make_service):
        config = EngineConfig(
            arrival_rate=0.0,
            treated_retention=2,
            initial_staff={StaffRole.RECEPTIONIST: 4, StaffRole.NURSE: 4, StaffRole.DOCTOR: 4},
        )
        engine = SimulationEngine(config, service_times=make_service())
        engine.start()
        for _ in range(3):
            engine.manually_add_patient(PatientPriority.STANDARD)
        engine.tick(10.0)
        engine.manually_add_patient(PatientPriority.STANDARD)

        run_ticks(engine, 400)

        remaining = engine.get_patients()
        assert [p.id for p in remaining] == [3, 4]
        assert engine.get_stats().treated_patients == 4
        assert engine.get_stats().total_patients == 4

    def test_untreated_never_evicted(self, engine):
        for _ in range(5):
            engine.manually_add_patient(PatientPriority.STANDARD)
        run_ticks(engine, 10)
        assert len(engine.get_patients()) == 5


class TestStats:
    """Test statistics exposed through the engine."""

    def test_manual_add_updates_counts(self, engine):
        engine.manually_add_patient(PatientPriority.URGENT)
        stats = engine.get_stats()

        assert stats.total_patients == 1
        assert stats.queue_length == 1

    def test_utilisation_per_role(self, staffed_engine):
        engine = staffed_engine
        engine.add_staff(StaffRole.RECEPTIONIST)
        engine.manually_add_patient(PatientPriority.URGENT)
        engine.tick(1.0)

        util = engine.get_stats().staff_utilization
        assert util[StaffRole.RECEPTIONIST] == 0.5
        assert util[StaffRole.NURSE] == 0.0
        assert util[StaffRole.DOCTOR] == 0.0

    def test_empty_role_utilisation_zero(self, engine):
        assert engine.get_stats().staff_utilization == {role: 0.0 for role in StaffRole}

    def test_throughput_zero_before_time_passes(self, engine):
        assert engine.get_stats().throughput == 0.0

    def test_throughput_per_hour(self, staffed_engine):
        engine = staffed_engine
        engine.manually_add_patient(PatientPriority.URGENT)
        # Treated at t=1990; run on to exactly t=3600
        run_ticks(engine, 360)

        assert engine.current_time == 3600.0
        assert engine.get_stats().throughput == pytest.approx(1.0)


class TestSnapshots:
    """Test that queries and snapshots are detached from engine state."""

    def test_patients_are_copies(self, engine):
        patient_id = engine.manually_add_patient(PatientPriority.URGENT)
        copy = engine.get_patients()[0]
        copy.status = PatientStatus.TREATED
        copy.completion_time = 99.0

        original = engine.get_patient(patient_id)
        assert original.status is PatientStatus.WAITING
        assert original.completion_time is None

    def test_staff_are_copies(self, staffed_engine):
        staffed_engine.get_staff()[0].current_patient_id = 123
        assert all(s.is_idle for s in staffed_engine.get_staff())

    def test_stats_are_copies(self, engine):
        stats = engine.get_stats()
        stats.total_patients = 50
        stats.staff_utilization[StaffRole.DOCTOR] = 1.0

        fresh = engine.get_stats()
        assert fresh.total_patients == 0
        assert fresh.staff_utilization[StaffRole.DOCTOR] == 0.0

    def test_snapshot_is_frozen(self, engine):
        snapshot = engine.snapshot()
        with pytest.raises(AttributeError):
            snapshot.time = 10.0


class TestObservers:
    """Test the update notification channel."""

    def test_called_in_registration_order(self, engine):
        calls = []
        engine.subscribe(lambda snap: calls.append("a"))
        engine.subscribe(lambda snap: calls.append("b"))

        engine.tick(1.0)

        assert calls == ["a", "b"]

    def test_called_once_per_tick(self, engine):
        snapshots = []
        engine.subscribe(snapshots.append)

        run_ticks(engine, 3, elapsed=1.0)

        assert [s.time for s in snapshots] == [1.0, 2.0, 3.0]

    def test_not_called_for_ignored_tick(self, engine):
        engine.pause()
        snapshots = []
        engine.subscribe(snapshots.append)

        engine.tick(1.0)

        assert snapshots == []

    def test_start_and_pause_notify(self, engine):
        snapshots = []
        engine.subscribe(snapshots.append)

        engine.pause()
        engine.pause()
        engine.start()

        assert [s.is_running for s in snapshots] == [False, True]

    def test_commands_notify(self, engine):
        snapshots = []
        engine.subscribe(snapshots.append)

        engine.add_staff(StaffRole.DOCTOR)
        engine.manually_add_patient(PatientPriority.CRITICAL)
        engine.remove_staff(StaffRole.DOCTOR)
        engine.reset()

        assert len(snapshots) == 4
        assert snapshots[1].stats.total_patients == 1
        assert snapshots[-1].patients == ()

    def test_unsubscribe(self, engine):
        calls = []
        handle = engine.subscribe(lambda snap: calls.append(snap))

        assert engine.unsubscribe(handle) is True
        assert engine.unsubscribe(handle) is False
        engine.tick(1.0)
        assert calls == []

    def test_failing_observer_isolated(self, engine, caplog):
        calls = []

        def broken(snap):
            raise RuntimeError("display offline")

        engine.subscribe(broken)
        engine.subscribe(lambda snap: calls.append(snap.time))

        with caplog.at_level("WARNING"):
            assert engine.tick(1.0) is True

        assert calls == [1.0]
        assert "display offline" in caplog.text

    def test_snapshot_isolated_from_later_ticks(self, staffed_engine):
        snapshots = []
        staffed_engine.subscribe(snapshots.append)
        staffed_engine.manually_add_patient(PatientPriority.URGENT)

        staffed_engine.tick(1.0)

        assert snapshots[0].patients[0].status is PatientStatus.WAITING
        assert snapshots[1].patients[0].status is PatientStatus.WITH_RECEPTIONIST


class TestObserverIsolation:
    """Test that observers cannot see each other's edits."""

    def test_mutation_by_one_observer_hidden_from_next(self, staffed_engine):
        seen = []

        def meddle(snapshot):
            snapshot.patients[0].status = PatientStatus.TREATED
            snapshot.staff[0].current_patient_id = 99

        def record(snapshot):
            seen.append((snapshot.patients[0].status, snapshot.staff[0].current_patient_id))

        staffed_engine.manually_add_patient(PatientPriority.URGENT)
        staffed_engine.subscribe(meddle)
        staffed_engine.subscribe(record)

        staffed_engine.tick(1.0)

        assert seen == [(PatientStatus.WITH_RECEPTIONIST, 1)]
        assert staffed_engine.get_patient(1).status is PatientStatus.WITH_RECEPTIONIST


class TestTickActivity:
    """Test the per-tick release and assignment records."""

    def test_releases_and_assignments_recorded(self, staffed_engine):
        engine = staffed_engine
        engine.manually_add_patient(PatientPriority.URGENT)

        engine.tick(1.0)
        assert [(a.stage, a.patient_id) for a in engine.last_assignments] == [("registration", 1)]
        assert engine.last_releases == []

        # Registration ends at t=181
        engine.tick(180.0)

        assert [(r.stage, r.patient_id, r.new_status) for r in engine.last_releases] == [
            ("registration", 1, PatientStatus.WAITING_FOR_NURSE)
        ]
        assert [(a.stage, a.patient_id) for a in engine.last_assignments] == [("nursing", 1)]

    def test_reset_clears_activity(self, staffed_engine):
        staffed_engine.manually_add_patient(PatientPriority.URGENT)
        staffed_engine.tick(1.0)

        staffed_engine.reset()

        assert staffed_engine.last_assignments == []
        assert staffed_engine.last_releases == []
