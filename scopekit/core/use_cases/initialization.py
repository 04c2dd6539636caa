"""
Initialization scheduling for built scopes.

Initializable instances are grouped into waves. Every initializer of a wave
runs concurrently and the whole wave settles before the next one starts.

Two strategies are available:

- ``TWO_WAVE`` places initializers without dependencies, and initializers
  that depend only on such roots, in a pre-wave; everything else goes to a
  pos-wave. Initializers deeper than two hops may overlap with the ones
  they depend on.
- ``RANKED`` assigns each initializer the length of the longest chain of
  initializers beneath it, giving one wave per rank and fully serialized
  dependency chains.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import structlog

from scopekit.core.domain.capabilities import ResolvedInstance
from scopekit.shared.contracts import ensure
from scopekit.shared.exceptions import DescriptorError, InitializationError
from scopekit.shared.types import InitializationStrategy, Key

logger = structlog.get_logger(__name__)

TWO_WAVE_LABELS = ("pre", "pos")


@dataclass
class InitializationPlan:
    """Waves of initializers, executed in order with a barrier between them."""
    strategy: InitializationStrategy
    waves: List[List[ResolvedInstance]] = field(default_factory=list)

    @property
    def pre_wave(self) -> List[ResolvedInstance]:
        return self.waves[0] if self.waves else []

    @property
    def pos_wave(self) -> List[ResolvedInstance]:
        return self.waves[1] if len(self.waves) > 1 else []

    @property
    def size(self) -> int:
        return sum(len(wave) for wave in self.waves)

    def label(self, index: int) -> str:
        if self.strategy == InitializationStrategy.TWO_WAVE:
            return TWO_WAVE_LABELS[index]
        return str(index)


def _partitions_initializables(plan: InitializationPlan, *args, **kwargs) -> bool:
    resolved = args[0] if args else kwargs["resolved"]
    planned = [id(entry) for wave in plan.waves for entry in wave]
    expected = [id(entry) for entry in resolved if entry.initializable]
    return len(planned) == len(set(planned)) and set(planned) == set(expected)


@ensure(_partitions_initializables, "Initialization plan must schedule every initializable exactly once")
def plan_initialization(
    resolved: Sequence[ResolvedInstance],
    strategy: InitializationStrategy = InitializationStrategy.TWO_WAVE
) -> InitializationPlan:
    """
    Group initializable instances into waves.

    Args:
        resolved: Registry entries in topological order
        strategy: Wave assignment strategy

    Returns:
        Plan with one list of entries per wave

    Raises:
        DescriptorError: If an instance exposes a synchronous initialize()
    """
    for entry in resolved:
        if entry.initializable and not inspect.iscoroutinefunction(entry.value.initialize):
            raise DescriptorError(
                f"{entry.name}.initialize() must be a coroutine function",
                dependency=entry.name
            )

    if strategy == InitializationStrategy.RANKED:
        waves = _rank_waves(resolved)
    else:
        waves = _two_waves(resolved)
    return InitializationPlan(strategy=strategy, waves=waves)


def _two_waves(resolved: Sequence[ResolvedInstance]) -> List[List[ResolvedInstance]]:
    pre: List[ResolvedInstance] = []
    pos: List[ResolvedInstance] = []
    committed: set = set()

    for entry in resolved:
        if not entry.initializable:
            continue

        depends_on = entry.descriptor.depends_on
        if not depends_on:
            pre.append(entry)
            committed.add(entry.descriptor.key)
        elif all(dependency in committed for dependency in depends_on):
            pre.append(entry)
        else:
            pos.append(entry)

    return [pre, pos]


def _rank_waves(resolved: Sequence[ResolvedInstance]) -> List[List[ResolvedInstance]]:
    # Number of waves that must settle before a key's value is usable
    ready_after: Dict[Key, int] = {}
    waves: List[List[ResolvedInstance]] = []

    for entry in resolved:
        rank = max((ready_after.get(dep, 0) for dep in entry.descriptor.depends_on), default=0)

        if entry.initializable:
            while len(waves) <= rank:
                waves.append([])
            waves[rank].append(entry)
            ready_after[entry.descriptor.key] = rank + 1
        else:
            ready_after[entry.descriptor.key] = rank

    return waves


async def _initialize(entry: ResolvedInstance, log) -> None:
    await entry.value.initialize()
    log.info("Dependency initialized", dependency=entry.name)


async def run_initialization(plan: InitializationPlan, scope: str = "") -> None:
    """
    Execute the waves of a plan.

    Each wave is awaited to full settlement before its outcome is checked,
    so a failing initializer never interrupts its siblings. Later waves are
    not started once a wave has failed.

    Args:
        plan: Waves to execute
        scope: Scope name bound to log events

    Raises:
        InitializationError: Wrapping the first failure of the failed wave
    """
    log = logger.bind(scope=scope)

    for index, wave in enumerate(plan.waves):
        log.info("Initializing wave", wave=plan.label(index), count=len(wave))

        results = await asyncio.gather(
            *(_initialize(entry, log) for entry in wave),
            return_exceptions=True
        )

        failures = [
            (entry, result)
            for entry, result in zip(wave, results)
            if isinstance(result, BaseException)
        ]
        if not failures:
            continue

        entry, error = failures[0]
        for sibling, discarded in failures[1:]:
            log.warning(
                "Discarding sibling initialization failure",
                dependency=sibling.name,
                error=str(discarded)
            )

        log.error(
            "Initialization failed",
            dependency=entry.name,
            wave=plan.label(index),
            error=str(error)
        )
        if not isinstance(error, Exception):
            raise error
        raise InitializationError(entry.name, error, wave=index) from error
