from __future__ import annotations

import asyncio
import math


class UnknownScenarioError(ValueError):
    pass


def burn_cpu(iterations: int = 1_000_000) -> float:
    result = 0.0
    for i in range(iterations):
        result += math.sqrt(i)
    return result


def allocate_memory(size: int = 1_000_000) -> int:
    large = ["test"] * size
    return len(large)


async def run_async_operations(delays: tuple[float, ...] = (0.1, 0.2, 0.3)) -> None:
    await asyncio.gather(*(asyncio.sleep(delay) for delay in delays))


async def run_scenario(scenario: str) -> None:
    if scenario == "cpu-intensive":
        burn_cpu()
    elif scenario == "memory-intensive":
        allocate_memory()
    elif scenario == "async-operations":
        await run_async_operations()
    else:
        raise UnknownScenarioError("Invalid scenario")
