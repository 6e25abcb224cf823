"""Tests for the revision ledger."""

from pluginsync.catalog.ledger import RevisionLedger


class TestRevisionLedger:
    """Tests for RevisionLedger."""

    def test_empty(self, db):
        """Test an empty ledger knows no actions."""
        ledger = RevisionLedger(db)
        assert ledger.get("default") is None
        assert ledger.revision_for("default") is None
        assert ledger.all() == []

    def test_insert_new_action(self, db):
        """Test the first record inserts a row."""
        ledger = RevisionLedger(db)
        record = ledger.record("default", 100)

        assert record.action == "default"
        assert record.revision == 100
        assert record.id > 0
        rows = db.query_all("SELECT * FROM revisions")
        assert len(rows) == 1
        assert rows[0]["revision"] == 100

    def test_update_existing_action(self, db):
        """Test later records update the same row by id."""
        ledger = RevisionLedger(db)
        first = ledger.record("default", 100)
        second = ledger.record("default", 150)

        assert second.id == first.id
        rows = db.query_all("SELECT * FROM revisions")
        assert len(rows) == 1
        assert rows[0]["revision"] == 150

    def test_never_moves_backwards(self, db):
        """Test a lower revision is ignored."""
        ledger = RevisionLedger(db)
        ledger.record("default", 200)
        record = ledger.record("default", 150)

        assert record.revision == 200
        assert db.query_one("SELECT revision FROM revisions")["revision"] == 200

    def test_actions_are_independent(self, db):
        """Test each action has its own watermark."""
        ledger = RevisionLedger(db)
        ledger.record("default", 100)
        ledger.record("security", 90)

        assert ledger.revision_for("default") == 100
        assert ledger.revision_for("security") == 90
        assert [r.action for r in ledger.all()] == ["default", "security"]

    def test_loaded_at_construction(self, db):
        """Test a new ledger sees previously persisted rows."""
        RevisionLedger(db).record("default", 321)
        assert RevisionLedger(db).revision_for("default") == 321
