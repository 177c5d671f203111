"""End-to-end tests for Repository.expire().

Each test builds a small commit graph and reflog with controlled ages and
checks what survives.  ``now`` is pinned so ages are exact.
"""

from __future__ import annotations

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from refkeep.models.reflog import NULL_ID, Verdict
from tests.conftest import NOW, commit_chain, days_ago, log_moves, make_repo, oid

C1, C2, C3, SIDE = oid(1), oid(2), oid(3), oid(4)


def _build_main_with_side_trip(repo) -> None:
    """main: c1 (100d) -> c2 (95d) -> side (40d) -> c3 (1d); side is off c1."""
    commit_chain(repo, [C1, C2, C3])
    repo.add_object(SIDE, C1, committed_at=NOW)
    log_moves(repo, "refs/heads/main", [(C1, 100), (C2, 95), (SIDE, 40), (C3, 1)])


def _new_ids(repo, ref: str) -> list[str]:
    return [e.new_id for e in repo.show(ref)]


class TestDefaults:
    def test_default_cutoffs(self, repo) -> None:
        _build_main_with_side_trip(repo)
        result = repo.expire(["main"], now=NOW)
        assert result.status == 0
        assert result.entries_pruned == 3
        assert _new_ids(repo, "main") == [C3]

    def test_recent_history_untouched(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        log_moves(repo, "refs/heads/main", [(C1, 3), (C2, 2)])
        result = repo.expire(["refs/heads/main"], now=NOW)
        assert result.entries_pruned == 0
        assert _new_ids(repo, "main") == [C2, C1]

    def test_nothing_named_nothing_done(self, repo) -> None:
        _build_main_with_side_trip(repo)
        result = repo.expire(now=NOW)
        assert result.outcomes == []
        assert len(repo.show("main")) == 4


class TestScenarios:
    def test_topic_pattern_prunes_what_default_keeps(self, repo) -> None:
        commit_chain(repo, [C1, C2, C3])
        for ref in ("refs/heads/topic", "refs/heads/main"):
            log_moves(repo, ref, [(C1, 5), (C2, 2), (C3, 0)])
        repo.set_config("gc.refs/heads/topic.reflogExpire", "1.day.ago")

        result = repo.expire(["refs/heads/topic", "refs/heads/main"], now=NOW)

        assert result.status == 0
        assert _new_ids(repo, "refs/heads/topic") == [C3]
        assert _new_ids(repo, "refs/heads/main") == [C3, C2, C1]

    def test_expire_never_disables_only_the_total_axis(self, repo) -> None:
        _build_main_with_side_trip(repo)
        result = repo.expire(["main"], expire="never", now=NOW)
        # The 100- and 95-day entries survive; the unreachable side trip does not.
        assert result.entries_pruned == 1
        assert _new_ids(repo, "main") == [C3, C2, C1]

    def test_expire_never_ignores_pattern_total_but_uses_its_unreachable(self, repo) -> None:
        _build_main_with_side_trip(repo)
        repo.set_config("gc.refs/heads/*.reflogExpire", "1.day.ago")
        repo.set_config("gc.refs/heads/*.reflogExpireUnreachable", "35.days.ago")
        repo.expire(["main"], expire="never", now=NOW)
        assert _new_ids(repo, "main") == [C3, C2, C1]

    def test_pattern_without_unreachable_axis_keeps_unreachable_entries(self, repo) -> None:
        _build_main_with_side_trip(repo)
        repo.set_config("gc.refs/heads/*.reflogExpire", "99.days.ago")
        result = repo.expire(["main"], now=NOW)
        # Only the 100-day entry goes: the pattern's unset unreachable axis is "never".
        assert result.entries_pruned == 1
        assert _new_ids(repo, "main") == [C3, SIDE, C2]

    def test_stash_is_exempt_by_default(self, repo) -> None:
        commit_chain(repo, [oid(10), oid(11)])
        log_moves(repo, "refs/stash", [(oid(10), 1000), (oid(11), 500)])
        result = repo.expire(all_refs=True, now=NOW)
        assert result.status == 0
        assert len(repo.show("refs/stash")) == 2

    def test_stash_follows_explicit_override(self, repo) -> None:
        commit_chain(repo, [oid(10), oid(11)])
        log_moves(repo, "refs/stash", [(oid(10), 1000), (oid(11), 500)])
        repo.expire(["refs/stash"], expire="600.days.ago", now=NOW)
        assert _new_ids(repo, "refs/stash") == [oid(11)]

    def test_config_override_beats_stored_config(self) -> None:
        repo = make_repo(config_overrides=[("gc.reflogExpire", "never"), ("gc.reflogExpireUnreachable", "never")])
        try:
            _build_main_with_side_trip(repo)
            repo.set_config("gc.reflogExpire", "now")
            assert repo.expire(["main"], now=NOW).entries_pruned == 0
        finally:
            repo.close()


class TestUnreachable:
    def test_head_reachability_uses_all_refs(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        repo.add_object(SIDE, None, committed_at=NOW)
        repo.set_ref("refs/heads/feature", SIDE)
        repo.set_symbolic_ref("HEAD", "refs/heads/main")
        log_moves(repo, "HEAD", [(C1, 60), (SIDE, 50), (C2, 40)])

        repo.expire(["HEAD", "refs/heads/main"], now=NOW)

        # SIDE is reachable from refs/heads/feature, so HEAD keeps it.
        assert _new_ids(repo, "HEAD") == [C2, SIDE, C1]
        # main only counts its own tip: both entries touching SIDE go.
        assert _new_ids(repo, "refs/heads/main") == [C1]

    def test_branch_reachability_uses_own_tip(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        repo.add_object(SIDE, None, committed_at=NOW)
        repo.set_ref("refs/heads/feature", SIDE)
        repo.append_reflog("refs/heads/main", C1, timestamp=days_ago(60))
        repo.append_reflog("refs/heads/main", SIDE, old_id=C1, timestamp=days_ago(50))
        repo.append_reflog("refs/heads/main", C2, old_id=SIDE, timestamp=days_ago(40))
        repo.set_ref("refs/heads/main", C2)

        repo.expire(["main"], now=NOW)
        assert _new_ids(repo, "main") == [C1]

    def test_log_without_ref_prunes_everything_past_unreachable_cutoff(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        repo.append_reflog("refs/heads/gone", C1, timestamp=days_ago(40))
        repo.append_reflog("refs/heads/gone", C2, old_id=C1, timestamp=days_ago(10))
        repo.expire(["refs/heads/gone"], now=NOW)
        assert _new_ids(repo, "refs/heads/gone") == [C2]


class TestMutationFlags:
    def test_rewrite_relinks_old_ids(self, repo) -> None:
        _build_main_with_side_trip(repo)
        repo.expire(["main"], expire="never", rewrite=True, now=NOW)
        entries = repo.show("main")
        assert [(e.old_id, e.new_id) for e in entries] == [(C2, C3), (C1, C2), (NULL_ID, C1)]

    def test_without_rewrite_old_ids_are_untouched(self, repo) -> None:
        _build_main_with_side_trip(repo)
        repo.expire(["main"], expire="never", now=NOW)
        assert repo.show("main")[0].old_id == SIDE

    def test_rewrite_decides_on_relinked_old_id(self, repo) -> None:
        commit_chain(repo, [C1, C2, C3])
        repo.add_object(SIDE, C1, committed_at=NOW)
        moves = [(C1, 100), (SIDE, 60), (C2, 50), (C3, 1)]
        log_moves(repo, "refs/heads/main", moves)
        log_moves(repo, "refs/heads/plain", moves)

        repo.expire(["main"], expire="never", rewrite=True, now=NOW)
        repo.expire(["plain"], expire="never", now=NOW)

        # The entry leaving the side trip is judged by the kept C1, not by SIDE.
        assert [(e.old_id, e.new_id) for e in repo.show("main")] == [
            (C2, C3), (C1, C2), (NULL_ID, C1),
        ]
        assert _new_ids(repo, "plain") == [C3, C1]

    def test_rewrite_verbose_reports_relinked_old_id(self, repo) -> None:
        _build_main_with_side_trip(repo)
        seen = []
        repo.expire(
            ["main"], expire="never", rewrite=True, dry_run=True, verbose=True,
            on_decision=seen.append, now=NOW,
        )
        assert [d.old_id for d in seen] == [NULL_ID, C1, C2, C2]

    def test_rewrite_first_kept_entry_gets_null_old_id(self, repo) -> None:
        _build_main_with_side_trip(repo)
        repo.expire(["main"], rewrite=True, now=NOW)
        (entry,) = repo.show("main")
        assert entry.old_id == NULL_ID

    def test_updateref_after_pruning_newest(self, repo) -> None:
        commit_chain(repo, [C1, C2, C3])
        log_moves(repo, "refs/heads/main", [(C1, 5), (C2, 4), (C3, 3)])
        repo.remove_object(C3)

        result = repo.expire(["main"], stale_fix=True, update_ref=True, now=NOW)

        assert repo.resolve_ref("refs/heads/main") == C2
        assert result.outcomes[0].report.ref_updated_to == C2
        assert _new_ids(repo, "main") == [C2, C1]

    def test_no_updateref_leaves_ref(self, repo) -> None:
        commit_chain(repo, [C1, C2, C3])
        log_moves(repo, "refs/heads/main", [(C1, 5), (C2, 4), (C3, 3)])
        repo.remove_object(C3)
        repo.expire(["main"], stale_fix=True, now=NOW)
        assert repo.resolve_ref("refs/heads/main") == C3

    def test_updateref_with_everything_pruned_leaves_ref(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        log_moves(repo, "refs/heads/main", [(C1, 5), (C2, 4)])
        repo.expire(["main"], expire="now", update_ref=True, now=NOW)
        assert repo.resolve_ref("refs/heads/main") == C2
        assert repo.show("main") == []
        assert repo.exists("refs/heads/main")

    def test_dry_run_changes_nothing(self, repo) -> None:
        _build_main_with_side_trip(repo)
        before = repo.show("main")
        result = repo.expire(["main"], dry_run=True, rewrite=True, update_ref=True, now=NOW)
        assert result.entries_pruned == 3
        assert repo.show("main") == before


class TestStaleFix:
    def test_prunes_entries_with_broken_history(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        repo.add_object(oid(6), oid(5), committed_at=NOW)  # parent never stored
        repo.set_ref("refs/heads/side", C2)
        repo.append_reflog("refs/heads/side", oid(6), timestamp=days_ago(3))
        repo.append_reflog("refs/heads/side", C2, timestamp=days_ago(2))

        plain = repo.expire(["side"], now=NOW)
        assert plain.entries_pruned == 0

        fixed = repo.expire(["side"], stale_fix=True, now=NOW)
        assert fixed.entries_pruned == 1
        assert _new_ids(repo, "side") == [C2]

    def test_objects_reachable_from_refs_are_trusted(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        repo.set_ref("refs/heads/main", C2)
        repo.remove_object(C1)  # C2's history is now incomplete
        repo.append_reflog("refs/heads/side", C2, timestamp=days_ago(2))

        result = repo.expire(["refs/heads/side"], stale_fix=True, now=NOW)
        assert result.entries_pruned == 0

    def test_marking_callback_runs_once(self, repo) -> None:
        calls: list[str] = []
        repo.expire(stale_fix=True, on_marking=lambda: calls.append("mark"), now=NOW)
        assert calls == ["mark"]


class TestVerbose:
    def test_decisions_reported_in_order(self, repo) -> None:
        _build_main_with_side_trip(repo)
        seen = []
        repo.expire(["main"], verbose=True, dry_run=True, on_decision=seen.append, now=NOW)
        assert [d.verdict for d in seen] == [Verdict.PRUNE, Verdict.PRUNE, Verdict.PRUNE, Verdict.KEEP]
        assert seen[0].describe().startswith("would prune ")
        assert seen[-1].describe().startswith("keep ")

    def test_real_run_says_prune(self, repo) -> None:
        _build_main_with_side_trip(repo)
        seen = []
        repo.expire(["main"], verbose=True, on_decision=seen.append, now=NOW)
        assert seen[0].describe() == f"prune commit: {C1[-4:]}"

    def test_quiet_run_reports_nothing(self, repo) -> None:
        _build_main_with_side_trip(repo)
        seen = []
        result = repo.expire(["main"], on_decision=seen.append, now=NOW)
        assert seen == []
        assert result.outcomes[0].report.decisions == []


class TestWorktrees:
    def _setup(self, repo) -> None:
        commit_chain(repo, [C1, C2])
        repo.add_worktree("wt1", "/work/wt1")
        repo.set_symbolic_ref("HEAD", "refs/heads/main")
        log_moves(repo, "HEAD", [(C1, 200)])
        repo.set_current_worktree("wt1")
        repo.set_symbolic_ref("HEAD", "refs/heads/feature")
        log_moves(repo, "HEAD", [(C2, 200)])

    def test_collection_from_linked_worktree(self, repo) -> None:
        self._setup(repo)
        names = [t.ref_name for t in repo.collect_reflogs()]
        assert names == [
            "main-worktree/HEAD",
            "HEAD",
            "refs/heads/feature",
            "refs/heads/main",
        ]

    def test_all_processes_each_log_once(self, repo) -> None:
        self._setup(repo)
        result = repo.expire(all_refs=True, now=NOW)
        assert result.status == 0
        assert len(result.outcomes) == 4
        assert result.entries_pruned == 4
        repo.set_current_worktree("main")
        assert repo.show("HEAD") == []

    def test_single_worktree_leaves_other_worktrees(self, repo) -> None:
        self._setup(repo)
        result = repo.expire(all_refs=True, single_worktree=True, now=NOW)
        assert len(result.outcomes) == 3
        assert len(repo.show("main-worktree/HEAD")) == 1

    def test_qualified_name_from_command_line(self, repo) -> None:
        self._setup(repo)
        result = repo.expire(["main-worktree/HEAD"], now=NOW)
        assert result.entries_pruned == 1
        assert len(repo.show("HEAD")) == 1


class TestFailures:
    def test_one_bad_name_does_not_stop_the_batch(self, repo) -> None:
        commit_chain(repo, [C1])
        log_moves(repo, "refs/heads/main", [(C1, 200)])
        log_moves(repo, "refs/heads/topic", [(C1, 200)])

        result = repo.expire(["main", "nope", "topic"], now=NOW)

        assert result.status == 1
        assert [o.ok for o in result.outcomes] == [True, False, True]
        assert result.failures[0].error == "nope points nowhere!"
        assert repo.show("topic") == []


ages = st.lists(st.integers(min_value=0, max_value=200), min_size=1, max_size=6)


@given(ages=ages, sides=st.lists(st.booleans(), min_size=6, max_size=6))
@settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.too_slow])
def test_dry_run_decides_like_a_real_run(ages, sides) -> None:
    repo = make_repo()
    try:
        main_ids = [oid(100 + i) for i in range(len(ages))]
        commit_chain(repo, main_ids)
        moves = []
        for i, age in enumerate(sorted(ages, reverse=True)):
            object_id = main_ids[i]
            if sides[i] and i < len(ages) - 1:
                object_id = oid(200 + i)
                repo.add_object(object_id, None, committed_at=NOW)
            moves.append((object_id, age))
        log_moves(repo, "refs/heads/main", moves)
        before = repo.show("main")

        dry, real = [], []
        repo.expire(["main"], dry_run=True, verbose=True, on_decision=dry.append, now=NOW)
        assert repo.show("main") == before
        repo.expire(["main"], verbose=True, on_decision=real.append, now=NOW)

        assert [(d.new_id, d.verdict, d.reason) for d in dry] == [
            (d.new_id, d.verdict, d.reason) for d in real
        ]
        assert len(repo.show("main")) == sum(1 for d in real if not d.pruned)
    finally:
        repo.close()
