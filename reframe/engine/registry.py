"""Stage registry — retarget stages register themselves by decorator.

Stage ids encode their layer, ``S<layer>.<nn>``, and a stage may only depend
on stages of its own or an earlier layer. Independent stages run in id order,
so every target sees the same sequence.

Usage:
    @stage(id="S0.04", layer=Layer.ANALYSIS, dependencies=["S0.02", "S0.03"])
    def scale(ctx: RetargetContext) -> None:
        ctx.scale = compute_scale(...)

Stages tagged with a gate name (``tags={"faces"}``) can be switched off per
run by the pipeline.
"""

from __future__ import annotations

import enum
import heapq
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable

if TYPE_CHECKING:
    from reframe.engine.context import RetargetContext

logger = logging.getLogger(__name__)

STAGE_ID = re.compile(r"^S(\d)\.(\d{2})$")

StageFn = Callable[["RetargetContext"], None]


class Layer(enum.IntEnum):
    ANALYSIS = 0
    TRANSFORM = 1
    EXPANSION = 2
    PLACEMENT = 3
    VALIDATION = 4


@dataclass
class StageSpec:
    id: str
    layer: Layer
    fn: StageFn
    dependencies: list[str] = field(default_factory=list)
    tags: set[str] = field(default_factory=set)
    description: str = ""

    def __post_init__(self) -> None:
        match = STAGE_ID.match(self.id)
        if match is None:
            raise ValueError(f"Stage ID {self.id!r} is not of the form S<layer>.<nn>")
        if int(match.group(1)) != self.layer:
            raise ValueError(f"Stage {self.id} is registered on layer {self.layer.name}")


class StageRegistry:
    """Retarget stages by id."""

    def __init__(self) -> None:
        self._stages: dict[str, StageSpec] = {}

    def register(self, spec: StageSpec) -> None:
        if spec.id in self._stages:
            raise ValueError(f"Duplicate stage ID: {spec.id}")
        self._stages[spec.id] = spec
        logger.debug("Registered stage %s (%s)", spec.id, spec.layer.name)

    def get(self, stage_id: str) -> StageSpec:
        return self._stages[stage_id]

    def get_layer(self, layer: Layer) -> list[StageSpec]:
        return sorted((s for s in self._stages.values() if s.layer == layer), key=lambda s: s.id)

    def all(self) -> list[StageSpec]:
        return sorted(self._stages.values(), key=lambda s: (s.layer, s.id))

    def tagged(self, tag: str) -> set[str]:
        return {sid for sid, spec in self._stages.items() if tag in spec.tags}

    def _with_dependencies(self, stage_ids: Iterable[str]) -> dict[str, StageSpec]:
        found: dict[str, StageSpec] = {}
        pending = list(stage_ids)
        while pending:
            sid = pending.pop()
            if sid in found or sid not in self._stages:
                continue
            found[sid] = self._stages[sid]
            pending.extend(found[sid].dependencies)
        return found

    def resolve_order(self, requested_ids: set[str] | None = None) -> list[StageSpec]:
        """Dependency order over the requested stages and everything they need.

        None means every registered stage. Raises ValueError on a cycle or
        on a dependency that points at a later layer.
        """
        pool = dict(self._stages) if requested_ids is None else self._with_dependencies(requested_ids)

        dependents: dict[str, list[str]] = {sid: [] for sid in pool}
        waiting: dict[str, int] = {}
        for sid, spec in pool.items():
            deps = [d for d in spec.dependencies if d in pool]
            for dep in deps:
                if pool[dep].layer > spec.layer:
                    raise ValueError(
                        f"Stage {sid} ({spec.layer.name}) depends on {dep} ({pool[dep].layer.name})"
                    )
                dependents[dep].append(sid)
            waiting[sid] = len(deps)

        # Min-heap on id: ties always resolve the same way
        ready = [sid for sid, n in waiting.items() if n == 0]
        heapq.heapify(ready)
        ordered: list[StageSpec] = []
        while ready:
            sid = heapq.heappop(ready)
            ordered.append(pool[sid])
            for nxt in dependents[sid]:
                waiting[nxt] -= 1
                if waiting[nxt] == 0:
                    heapq.heappush(ready, nxt)

        if len(ordered) != len(pool):
            stuck = sorted(sid for sid, n in waiting.items() if n > 0)
            raise ValueError(f"Circular dependency detected among: {', '.join(stuck)}")
        return ordered

    @property
    def count(self) -> int:
        return len(self._stages)


_registry = StageRegistry()


def get_registry() -> StageRegistry:
    return _registry


def stage(
    *,
    id: str,
    layer: Layer,
    dependencies: list[str] | None = None,
    tags: set[str] | None = None,
    description: str = "",
) -> Callable[[StageFn], StageFn]:
    """Register the decorated function on the module-level registry."""

    def decorator(fn: StageFn) -> StageFn:
        _registry.register(
            StageSpec(
                id=id,
                layer=layer,
                fn=fn,
                dependencies=list(dependencies or []),
                tags=set(tags or ()),
                description=description,
            )
        )
        return fn

    return decorator
