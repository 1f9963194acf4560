"""
Tests for the debug jump/no-skip controller.
"""
import pytest

from zfs_convert.errors import ConfigError
from zfs_convert.step_control import StepController, StepTarget, split_step_id


def _run_all(controller, step_ids):
    return [s for s in step_ids if controller.may_run(s)]


def test_no_target_runs_everything():
    controller = StepController()
    assert _run_all(controller, ["A", "B", "C"]) == ["A", "B", "C"]
    assert not controller.armed


def test_jump_skips_until_target_then_runs_rest():
    controller = StepController(jump_to="B")
    assert _run_all(controller, ["A", "B", "C"]) == ["B", "C"]
    assert not controller.armed


def test_no_skip_entry_runs_before_target():
    controller = StepController(jump_to="C", no_skips=["A"])
    assert _run_all(controller, ["A", "B", "C"]) == ["A", "C"]


def test_latch_is_one_shot():
    controller = StepController(jump_to="B")
    assert _run_all(controller, ["A", "B", "C", "A", "B"]) == ["B", "C", "A", "B"]


def test_range_target_with_no_skip_name_forces_earlier_step():
    controller = StepController(jump_to="100-200", no_skips=["A"])

    assert controller.may_run("50_A") is True
    assert controller.armed
    assert controller.may_run("60_B") is False
    assert controller.may_run("150_C") is True
    assert not controller.armed


def test_position_target_matches_numeric_prefix():
    controller = StepController(jump_to="30")
    ids = ["05_check", "10_find", "30_partition", "35_pools"]
    assert _run_all(controller, ids) == ["30_partition", "35_pools"]


def test_name_target_matches_full_id_or_name_part():
    assert StepTarget.parse("partition_disks").matches("30_partition_disks")
    assert StepTarget.parse("30_partition_disks").matches("30_partition_disks")
    assert not StepTarget.parse("partition").matches("30_partition_disks")


def test_no_skip_ranges():
    controller = StepController(jump_to="80", no_skips=["10-20", "45"])
    ids = ["05_a", "10_b", "15_c", "20_d", "30_e", "45_f", "80_g"]
    assert _run_all(controller, ids) == ["10_b", "15_c", "20_d", "45_f", "80_g"]


def test_never_reached_target_stays_armed():
    controller = StepController(jump_to="missing_step")
    assert _run_all(controller, ["05_a", "10_b"]) == []
    assert controller.armed


def test_blank_no_skip_entries_ignored():
    controller = StepController(jump_to="B", no_skips=["", "  "])
    assert controller.no_skips == []


@pytest.mark.parametrize("text", ["", "   ", "50-10"])
def test_parse_rejects_bad_targets(text):
    with pytest.raises(ConfigError):
        StepTarget.parse(text)


def test_parse_forms_and_rendering():
    assert StepTarget.parse("30") == StepTarget(start=30, end=30)
    assert StepTarget.parse("30-50") == StepTarget(start=30, end=50)
    assert StepTarget.parse(" reboot ") == StepTarget(name="reboot")
    assert str(StepTarget.parse("30")) == "30"
    assert str(StepTarget.parse("30-50")) == "30-50"


def test_position_target_never_matches_unprefixed_ids():
    assert not StepTarget.parse("30").matches("partition_disks")


def test_split_step_id():
    assert split_step_id("30_partition_disks") == (30, "partition_disks")
    assert split_step_id("reboot") == (None, "reboot")
