"""Stage definition registry, loaded once from TOML."""

from __future__ import annotations

import logging
import tomllib
from importlib import resources
from typing import TYPE_CHECKING, Any

from caseflow.domain.errors import InvalidRegistryError, UnknownWorkflowError
from caseflow.domain.model import Workflow, WorkflowStage

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_WORKFLOWS_RESOURCE = "workflows.toml"


class StageRegistry:
    """Ordered, read-only set of workflows."""

    def __init__(self, workflows: Iterable[Workflow]) -> None:
        self._workflows: dict[str, Workflow] = {}
        for workflow in workflows:
            if workflow.name in self._workflows:
                raise InvalidRegistryError(f"Duplicate workflow: {workflow.name}")
            self._workflows[workflow.name] = workflow

    def workflow(self, name: str) -> Workflow:
        try:
            return self._workflows[name]
        except KeyError:
            raise UnknownWorkflowError(name) from None

    def names(self) -> tuple[str, ...]:
        return tuple(self._workflows)

    def __iter__(self) -> Iterator[Workflow]:
        return iter(self._workflows.values())

    def __len__(self) -> int:
        return len(self._workflows)

    def __contains__(self, name: object) -> bool:
        return name in self._workflows


def parse_workflows(document: Mapping[str, Any]) -> StageRegistry:
    workflows = document.get("workflows")
    if not isinstance(workflows, dict) or not workflows:
        raise InvalidRegistryError("Expected a non-empty [workflows] table")
    return StageRegistry(
        _parse_workflow(name, body)
        for name, body in workflows.items()  # pyright: ignore[reportUnknownVariableType]
    )


def _parse_workflow(name: str, body: Mapping[str, Any]) -> Workflow:
    raw_stages = body.get("stages")
    if not isinstance(raw_stages, list) or not raw_stages:
        raise InvalidRegistryError(f"Workflow {name!r} declares no stages")
    stages: list[WorkflowStage] = []
    seen: set[str] = set()
    for ordinal, raw in enumerate(raw_stages):  # pyright: ignore[reportUnknownVariableType]
        if not isinstance(raw, dict) or "name" not in raw:
            raise InvalidRegistryError(f"Stage {ordinal} of workflow {name!r} has no name")
        stage_name = str(raw["name"])  # pyright: ignore[reportUnknownArgumentType]
        if stage_name in seen:
            raise InvalidRegistryError(f"Duplicate stage {stage_name!r} in workflow {name!r}")
        seen.add(stage_name)
        stages.append(
            WorkflowStage(
                name=stage_name,
                label=str(raw.get("label", stage_name)),  # pyright: ignore[reportUnknownArgumentType]
                ordinal=ordinal,
                milestone=bool(raw.get("milestone", False)),  # pyright: ignore[reportUnknownArgumentType]
                client_visible=bool(raw.get("client_visible", True)),  # pyright: ignore[reportUnknownArgumentType]
            )
        )
    return Workflow(name=name, label=str(body.get("label", name)), stages=tuple(stages))


def load_workflows(path: Path | None = None) -> StageRegistry:
    """Load ``path``, or the workflows shipped with the package."""
    if path is None:
        text = resources.files("caseflow.data").joinpath(DEFAULT_WORKFLOWS_RESOURCE).read_text("utf-8")
        source = f"caseflow.data/{DEFAULT_WORKFLOWS_RESOURCE}"
    else:
        text = path.read_text("utf-8")
        source = str(path)
    try:
        document = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise InvalidRegistryError(f"Cannot parse {source}: {exc}") from exc
    registry = parse_workflows(document)
    log.debug("Loaded %d workflows from %s", len(registry), source)
    return registry
