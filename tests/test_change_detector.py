"""Tests for snapshot change detection."""

from src.api.schemas import ChangeSet, Listing
from src.pipeline.change_detector import diff_snapshots, build_change_summary


def listing(identity, price="$100", status="available", title=None):
    return Listing(identity=identity, title=title or f"Boat {identity}", price=price, status=status)


class TestFirstRun:
    def test_none_previous_is_all_added(self):
        current = [listing("a"), listing("b")]
        changes = diff_snapshots(None, current)
        assert changes == ChangeSet(added=current)

    def test_empty_previous_is_all_added(self):
        current = [listing("a")]
        changes = diff_snapshots([], current)
        assert changes.added == current
        assert changes.removed == []
        assert changes.price_changed == []
        assert changes.status_changed == []


class TestDiffSnapshots:
    def test_identical_snapshots_have_no_changes(self):
        snapshot = [listing("a"), listing("b", price="$2,000")]
        assert diff_snapshots(snapshot, list(snapshot)).is_empty()

    def test_added_and_removed(self):
        a, b, c = listing("a"), listing("b"), listing("c")
        changes = diff_snapshots([a, b], [b, c])
        assert [l.identity for l in changes.added] == ["c"]
        assert [l.identity for l in changes.removed] == ["a"]
        assert changes.price_changed == []

    def test_price_change_keeps_display_strings(self):
        changes = diff_snapshots([listing("x", price="$100")], [listing("x", price="$120")])
        assert len(changes.price_changed) == 1
        change = changes.price_changed[0]
        assert change.old_price == "$100"
        assert change.new_price == "$120"
        assert change.listing.price == "$120"
        assert changes.added == [] and changes.removed == []

    def test_formatting_only_difference_is_not_a_change(self):
        changes = diff_snapshots([listing("x", price="$1,000")], [listing("x", price="1000 USD")])
        assert changes.price_changed == []

    def test_unparseable_price_never_changes(self):
        changes = diff_snapshots([listing("x", price="Call")], [listing("x", price="$500")])
        assert changes.price_changed == []

    def test_status_change(self):
        changes = diff_snapshots([listing("x")], [listing("x", status="sold")])
        assert len(changes.status_changed) == 1
        assert changes.status_changed[0].old_status == "available"
        assert changes.status_changed[0].new_status == "sold"
        assert [c.listing.identity for c in changes.sold] == ["x"]
        assert changes.pending == []

    def test_price_and_status_change_together(self):
        changes = diff_snapshots(
            [listing("x", price="$100")],
            [listing("x", price="$90", status="pending")],
        )
        assert len(changes.price_changed) == 1
        assert len(changes.status_changed) == 1
        assert changes.pending[0].listing.identity == "x"

    def test_bucket_order_follows_snapshots(self):
        previous = [listing("r2"), listing("keep"), listing("r1")]
        current = [listing("n2"), listing("keep"), listing("n1")]
        changes = diff_snapshots(previous, current)
        assert [l.identity for l in changes.added] == ["n2", "n1"]
        assert [l.identity for l in changes.removed] == ["r2", "r1"]


class TestBuildSummary:
    def test_summary_counts(self):
        changes = diff_snapshots(
            [listing("a"), listing("b", price="$1"), listing("c")],
            [listing("b", price="$2"), listing("c", status="sold"), listing("d")],
        )
        summary = build_change_summary(changes)
        assert summary["added_count"] == 1
        assert summary["removed_count"] == 1
        assert summary["price_changed_count"] == 1
        assert summary["status_changed_count"] == 1
        assert summary["sold_count"] == 1
        assert summary["pending_count"] == 0
