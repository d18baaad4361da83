"""Checking every exercise at once and recording the results as JSON."""

from __future__ import annotations

import json
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Iterable

from .exercise import Exercise
from .runner import run
from .verify import VerificationError

__all__ = ["ExerciseCheckList", "ExerciseResult", "ExerciseStatistics", "check_all"]

DEFAULT_RESULT_PATH = ".github/result/check_result.json"


@dataclass
class ExerciseResult:
    """Outcome of one exercise."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals over a whole check."""

    total_exercations: int
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """All results of a check plus its statistics."""

    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None
    statistics: ExerciseStatistics = field(
        default_factory=lambda: ExerciseStatistics(total_exercations=0)
    )

    def to_dict(self) -> dict:
        return {
            "exercises": [asdict(result) for result in self.exercises],
            "user_name": self.user_name,
            "statistics": asdict(self.statistics),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def write(self, path: str | os.PathLike = DEFAULT_RESULT_PATH) -> None:
        Path(path).write_text(self.to_json(), encoding="utf-8")


def _now() -> int:
    return int(time.time())


def check_all(exercises: Iterable[Exercise], verbose: bool = True) -> ExerciseCheckList:
    """Run every exercise concurrently and collect the results in completion order."""
    exercises = list(exercises)
    started = _now()
    total = len(exercises)
    checklist = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    lock = threading.Lock()
    succeeded = 0

    def check(exercise: Exercise) -> None:
        nonlocal succeeded
        exercise_started = _now()
        try:
            run(exercise, verbose)
            passed = True
        except VerificationError:
            passed = False
        with lock:
            if passed:
                succeeded += 1
                print(f"{exercise.name}执行成功")
            else:
                print(f"{exercise.name}执行失败")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {succeeded}")
            print(f"当前修改试卷耗时: {_now() - exercise_started} s")
            checklist.exercises.append(ExerciseResult(name=exercise.name, result=passed))
            if passed:
                checklist.statistics.total_succeeds += 1
            else:
                checklist.statistics.total_failures += 1

    if exercises:
        with ThreadPoolExecutor() as pool:
            list(pool.map(check, exercises))

    total_time = _now() - started
    print(
        "===============================试卷批改完成,总耗时: "
        f"{total_time} s; =================================="
    )
    checklist.statistics.total_time = total_time
    return checklist