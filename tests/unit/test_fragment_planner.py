# pylint: disable=missing-module-docstring,missing-function-docstring

from __future__ import annotations

import asyncio

import pytest

from constants import FRAGMENT_COUNT_CHOICES, FRAGMENT_LENGTH_CHOICES, YES_NO_CHOICES
from context.working_memory import WorkingMemory, system_entry
from orchestrator.enums.length import LengthClass
from orchestrator.errors import RecoverableStepError
from orchestrator.planner import (
    FragmentPlanner,
    parse_fragment_count,
    parse_length_class,
    parse_yes_no,
)

from fakes import FakeOracle, oracle_down


@pytest.mark.parametrize(
    ("answer", "expected"),
    [
        ("0", 0),
        ("3", 3),
        ("5", 5),
        ("7", 5),
        ("-3", 0),
        ("I think 2 more", 2),
        ("abc", 0),
        ("", 0),
    ],
)
def test_parse_fragment_count_clamps_and_defaults(answer: str, expected: int) -> None:
    assert parse_fragment_count(answer) == expected


@pytest.mark.parametrize(
    ("answer", "expected"),
    [
        ("very long", LengthClass.VERY_LONG),
        ("Very Long", LengthClass.VERY_LONG),
        ("very_long", LengthClass.VERY_LONG),
        ("very-long.", LengthClass.VERY_LONG),
        ("LONG", LengthClass.LONG),
        ("medium", LengthClass.MEDIUM),
        (" short ", LengthClass.SHORT),
        ("enormous", LengthClass.SHORT),
    ],
)
def test_parse_length_class_normalizes(answer: str, expected: LengthClass) -> None:
    assert parse_length_class(answer) is expected


def test_parse_yes_no_only_accepts_yes() -> None:
    assert parse_yes_no("yes") is True
    assert parse_yes_no("Yes.") is True
    assert parse_yes_no("no") is False
    assert parse_yes_no("maybe") is False


def test_length_classes_map_to_wait_and_word_targets() -> None:
    assert (LengthClass.SHORT.wait_ms, LengthClass.SHORT.target_words) == (1000, 10)
    assert (LengthClass.MEDIUM.wait_ms, LengthClass.MEDIUM.target_words) == (2000, 20)
    assert (LengthClass.LONG.wait_ms, LengthClass.LONG.target_words) == (4000, 40)
    assert (LengthClass.VERY_LONG.wait_ms, LengthClass.VERY_LONG.target_words) == (6000, 60)


def test_planner_offers_fixed_choice_sets() -> None:
    oracle = FakeOracle(count="2", lengths=["long"], conclusion="yes")
    planner = FragmentPlanner(oracle=oracle)
    memory = WorkingMemory(entries=(system_entry("bp"),))

    async def _go() -> tuple[int, LengthClass, bool]:
        return (
            await planner.plan_fragment_count(memory, previous_count=1),
            await planner.plan_fragment_length(memory),
            await planner.plan_conclusion(memory),
        )

    assert asyncio.run(_go()) == (2, LengthClass.LONG, True)
    assert oracle.decide_calls == [FRAGMENT_COUNT_CHOICES, FRAGMENT_LENGTH_CHOICES, YES_NO_CHOICES]


def test_planner_surfaces_oracle_failure_as_recoverable() -> None:
    planner = FragmentPlanner(oracle=FakeOracle(count=oracle_down()))
    memory = WorkingMemory(entries=(system_entry("bp"),))

    with pytest.raises(RecoverableStepError) as excinfo:
        asyncio.run(planner.plan_fragment_count(memory, previous_count=0))

    assert excinfo.value.step == "decision"
