"""Tests for reflog collection across worktrees.

Includes property-based tests via Hypothesis for the target count.
"""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from refkeep.engine.collector import collect_reflogs
from refkeep.models.worktree import MAIN_WORKTREE_ID, WorktreeInfo


class FakeReflogStore:
    """Just enough of a ReflogRepository for collection: store -> log names."""

    def __init__(self, logs: dict[str, list[str]]) -> None:
        self._logs = logs

    def list_logs(self, store: str) -> list[str]:
        return sorted(self._logs.get(store, []))


def _worktrees(count: int, current: int = 0) -> list[WorktreeInfo]:
    ids = [MAIN_WORKTREE_ID] + [f"wt{i}" for i in range(1, count)]
    return [
        WorktreeInfo(worktree_id=wt_id, is_main=i == 0, is_current=i == current)
        for i, wt_id in enumerate(ids)
    ]


def _layout(worktrees: list[WorktreeInfo], shared: int, private: int) -> FakeReflogStore:
    private_names = ["HEAD"] + [f"refs/worktree/p{j}" for j in range(1, private)]
    logs = {"": [f"refs/heads/b{i}" for i in range(shared)]}
    for wt in worktrees:
        logs[wt.worktree_id] = private_names[:private]
    return FakeReflogStore(logs)


class TestCollectReflogs:
    def test_current_worktree_names_are_bare(self) -> None:
        worktrees = _worktrees(1)
        store = _layout(worktrees, shared=2, private=1)
        names = [t.ref_name for t in collect_reflogs(worktrees, store)]
        assert names == ["HEAD", "refs/heads/b0", "refs/heads/b1"]

    def test_other_worktrees_are_qualified(self) -> None:
        worktrees = _worktrees(3, current=1)
        store = _layout(worktrees, shared=1, private=1)
        targets = collect_reflogs(worktrees, store)
        assert [t.ref_name for t in targets] == [
            "main-worktree/HEAD",
            "HEAD",
            "refs/heads/b0",
            "worktrees/wt2/HEAD",
        ]
        assert [t.worktree_id for t in targets] == ["main", "wt1", "wt1", "wt2"]

    def test_shared_logs_emitted_once_with_current_worktree(self) -> None:
        worktrees = _worktrees(3, current=2)
        store = _layout(worktrees, shared=3, private=0)
        targets = collect_reflogs(worktrees, store)
        assert len(targets) == 3
        assert {t.worktree_id for t in targets} == {"wt2"}

    def test_single_worktree_skips_others(self) -> None:
        worktrees = _worktrees(3, current=0)
        store = _layout(worktrees, shared=1, private=2)
        names = [t.ref_name for t in collect_reflogs(worktrees, store, all_worktrees=False)]
        assert names == ["HEAD", "refs/heads/b0", "refs/worktree/p1"]

    def test_no_current_worktree_emits_no_shared_logs(self) -> None:
        worktrees = _worktrees(2, current=5)
        store = _layout(worktrees, shared=4, private=1)
        names = [t.ref_name for t in collect_reflogs(worktrees, store)]
        assert names == ["main-worktree/HEAD", "worktrees/wt1/HEAD"]


@given(
    n=st.integers(min_value=1, max_value=5),
    m=st.integers(min_value=0, max_value=6),
    k=st.integers(min_value=0, max_value=4),
    current=st.integers(min_value=0, max_value=4),
)
def test_target_count(n: int, m: int, k: int, current: int) -> None:
    worktrees = _worktrees(n, current=current % n)
    store = _layout(worktrees, shared=m, private=k)

    everything = collect_reflogs(worktrees, store)
    assert len(everything) == m + n * k
    assert len({t.ref_name for t in everything}) == len(everything)

    current_only = collect_reflogs(worktrees, store, all_worktrees=False)
    assert len(current_only) == m + k
    assert sum(1 for t in current_only if t.ref_name.startswith("refs/heads/")) == m
