"""Functional entry points of the mutation engine."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .steps import MutationStep
from .virtual_tree import FileChange, VirtualTree

if TYPE_CHECKING:
    from ..generators.normalize import ProjectDescriptor


def apply(
    tree: VirtualTree,
    step: MutationStep,
    descriptor: ProjectDescriptor | None = None,
) -> VirtualTree:
    """Apply one step, returning a new tree; *tree* itself is never modified."""
    return step.apply(tree, descriptor)


def apply_all(
    tree: VirtualTree,
    steps: Iterable[MutationStep],
    descriptor: ProjectDescriptor | None = None,
) -> VirtualTree:
    """Thread *tree* through *steps* in order and return the final tree."""
    for step in steps:
        tree = step.apply(tree, descriptor)
    return tree


async def commit(tree: VirtualTree) -> list[FileChange]:
    """Write the staged changes of *tree* to durable storage, all or nothing."""
    return await tree.commit()
