"""Concurrency tests for SpaceHierarchy.

Scenarios:
- Many threads creating the same sibling name: exactly one succeeds
- Concurrent moves and reads never expose a space under two parents
"""

from __future__ import annotations

import threading

import pytest
from custom_components.homestash.exceptions import NameConflictError


def _run_all(workers: list[threading.Thread]) -> None:
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=10)
    assert not any(worker.is_alive() for worker in workers)


@pytest.mark.asyncio
async def test_concurrent_creates_same_name_single_winner(spaces, alice) -> None:
    """Racing creates of one name under one parent yield exactly one space."""

    dresser = spaces.create_space(alice.id, "dresser", "cabinet")
    barrier = threading.Barrier(8)
    created: list[str] = []
    conflicts: list[NameConflictError] = []
    guard = threading.Lock()

    def worker() -> None:
        barrier.wait()
        try:
            space = spaces.create_space(alice.id, "drawer", "drawer", dresser.id)
        except NameConflictError as exc:
            with guard:
                conflicts.append(exc)
        else:
            with guard:
                created.append(str(space.id))

    _run_all([threading.Thread(target=worker) for _ in range(8)])

    assert len(created) == 1
    assert len(conflicts) == 7
    assert spaces.get_space_children_string(dresser.id) == ["drawer"]


@pytest.mark.asyncio
async def test_concurrent_moves_keep_single_parent(spaces, alice) -> None:
    """While a space bounces between parents, readers see it under exactly one."""

    left = spaces.create_space(alice.id, "left", "shelf")
    right = spaces.create_space(alice.id, "right", "shelf")
    box = spaces.create_space(alice.id, "box", "box", left.id)
    observed: list[int] = []

    def mover() -> None:
        for i in range(200):
            target = right if i % 2 == 0 else left
            spaces.move_space(alice.id, box.id, target.id)

    def reader() -> None:
        for _ in range(200):
            tree = spaces.get_tree(alice.id)
            observed.append(
                sum(1 for root in tree for child in root.children if child.space.id == box.id)
            )

    _run_all([threading.Thread(target=mover), threading.Thread(target=reader)])

    assert observed
    assert set(observed) == {1}
    assert len(spaces) == 3
    assert spaces.get_space_parent(box.id).id == left.id
