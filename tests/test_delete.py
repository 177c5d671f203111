"""Tests for Repository.delete() and ``<ref>@{...}`` selectors."""

from __future__ import annotations

import pytest

from refkeep.exceptions import UsageError
from refkeep.models.reflog import NULL_ID
from tests.conftest import NOW, commit_chain, log_moves, oid

C1, C2, C3 = oid(1), oid(2), oid(3)


@pytest.fixture
def main_repo(repo):
    commit_chain(repo, [C1, C2, C3])
    log_moves(repo, "refs/heads/main", [(C1, 10), (C2, 5), (C3, 1)])
    return repo


def _new_ids(repo, ref: str = "main") -> list[str]:
    return [e.new_id for e in repo.show(ref)]


class TestSelectors:
    def test_index_zero_is_newest(self, main_repo) -> None:
        main_repo.delete(["main@{0}"])
        assert _new_ids(main_repo) == [C2, C1]

    def test_index_counts_from_newest(self, main_repo) -> None:
        main_repo.delete(["refs/heads/main@{2}"])
        assert _new_ids(main_repo) == [C3, C2]

    def test_out_of_range_index_deletes_nothing(self, main_repo) -> None:
        result = main_repo.delete(["main@{7}"])
        assert result.status == 0
        assert len(main_repo.show("main")) == 3

    def test_date_selector_removes_newest_older_entry(self, main_repo) -> None:
        main_repo.delete(["main@{3.days.ago}"], now=NOW)
        assert _new_ids(main_repo) == [C3, C1]

    def test_date_selector_before_every_entry_deletes_nothing(self, main_repo) -> None:
        result = main_repo.delete(["main@{30.days.ago}"], now=NOW)
        assert result.entries_pruned == 0
        assert _new_ids(main_repo) == [C3, C2, C1]

    def test_date_selector_after_every_entry_deletes_newest(self, main_repo) -> None:
        main_repo.delete(["main@{now}"], now=NOW)
        assert _new_ids(main_repo) == [C2, C1]

    def test_never_selects_oldest(self, main_repo) -> None:
        main_repo.delete(["main@{never}"], now=NOW)
        assert _new_ids(main_repo) == [C3, C2]

    def test_selector_shown_in_listing(self, main_repo) -> None:
        assert [e.selector for e in main_repo.show("main")] == [
            "refs/heads/main@{0}",
            "refs/heads/main@{1}",
            "refs/heads/main@{2}",
        ]


class TestFlags:
    def test_rewrite(self, main_repo) -> None:
        main_repo.delete(["main@{1}"], rewrite=True)
        assert [(e.old_id, e.new_id) for e in main_repo.show("main")] == [(C1, C3), (NULL_ID, C1)]

    def test_updateref_moves_branch(self, main_repo) -> None:
        main_repo.delete(["main@{0}"], update_ref=True)
        assert main_repo.resolve_ref("refs/heads/main") == C2

    def test_updateref_skips_symbolic_refs(self, repo) -> None:
        commit_chain(repo, [C1, C2, C3])
        repo.set_symbolic_ref("HEAD", "refs/heads/main")
        log_moves(repo, "HEAD", [(C1, 10), (C2, 5), (C3, 1)])

        repo.delete(["HEAD@{0}"], update_ref=True)

        assert _new_ids(repo, "HEAD") == [C2, C1]
        assert repo.resolve_ref("HEAD") == C3
        assert repo.resolve_ref("refs/heads/main") == C3

    def test_dry_run(self, main_repo) -> None:
        seen = []
        result = main_repo.delete(
            ["main@{0}"], dry_run=True, verbose=True, on_decision=seen.append
        )
        assert result.entries_pruned == 1
        assert len(main_repo.show("main")) == 3
        assert [d.describe() for d in seen if d.pruned] == [f"would prune commit: {C3[-4:]}"]

    def test_at_alias_for_head(self, repo) -> None:
        commit_chain(repo, [C1])
        repo.set_symbolic_ref("HEAD", "refs/heads/main")
        log_moves(repo, "HEAD", [(C1, 1)])
        repo.delete(["@@{0}"])
        assert repo.show("HEAD") == []


class TestErrors:
    def test_no_specs_is_a_usage_error(self, main_repo) -> None:
        with pytest.raises(UsageError, match="no reflog specified to delete"):
            main_repo.delete([])
        assert len(main_repo.show("main")) == 3

    def test_not_a_reflog(self, main_repo) -> None:
        result = main_repo.delete(["main"])
        assert result.status == 1
        assert result.failures[0].error == "not a reflog: main"

    def test_no_reflog_for_ref(self, main_repo) -> None:
        result = main_repo.delete(["nope@{0}"])
        assert result.failures[0].error == "no reflog for 'nope'"

    def test_bad_date_selector_fails_that_item(self, main_repo) -> None:
        result = main_repo.delete(["main@{whenever}"])
        assert result.status == 1
        assert len(main_repo.show("main")) == 3

    def test_failure_does_not_stop_remaining_specs(self, main_repo) -> None:
        result = main_repo.delete(["main", "main@{0}"])
        assert result.status == 1
        assert [o.ok for o in result.outcomes] == [False, True]
        assert _new_ids(main_repo) == [C2, C1]
