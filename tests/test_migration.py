import unittest
from unittest.mock import MagicMock

from sqlferry.core.errors import DialectMismatchError
from sqlferry.core.migration import MigrationRunner
from sqlferry.core.transfer import TransferOptions
from sqlferry.plugins.mysql_adapter import MYSQL_DIALECT
from sqlferry.plugins.postgresql_adapter import POSTGRES_DIALECT
from sqlferry.plugins.sqlite_adapter import SQLITE_DIALECT


def mock_engine(dialect, session=None):
    engine = MagicMock()
    engine.dialect.return_value = dialect
    engine.connect.return_value = session or MagicMock()
    return engine


class TestDialectCheck(unittest.TestCase):

    def test_cross_dialect_rejected_before_connecting(self):
        source = mock_engine(MYSQL_DIALECT)
        destination = mock_engine(POSTGRES_DIALECT)
        runner = MigrationRunner(source, "mysql://u:p@a/db", destination, "postgres://u:p@b/db",
                                 TransferOptions(show_progress=False))

        with self.assertRaises(DialectMismatchError) as cm:
            runner.run()

        self.assertIn("source is 'MySQL', destination is 'PostgreSQL'", cm.exception.message)
        source.connect.assert_not_called()
        destination.connect.assert_not_called()


class TestMigrationRun(unittest.TestCase):

    def setUp(self):
        self.source_session = MagicMock()
        self.source_session.list_tables.return_value = ["t"]
        self.source_session.show_create_table.return_value = 'CREATE TABLE IF NOT EXISTS "t" (id INTEGER)'
        self.source_session.approximate_row_count.return_value = 0
        self.source_session.stream_rows.return_value = (["id"], iter([]))
        self.dest_session = MagicMock()
        self.dest_session.dialect.return_value = SQLITE_DIALECT

        self.source = mock_engine(SQLITE_DIALECT, self.source_session)
        self.destination = mock_engine(SQLITE_DIALECT, self.dest_session)

    def _run(self, **options):
        options.setdefault("show_progress", False)
        with MigrationRunner(self.source, "sqlite:///a.db", self.destination, "sqlite:///b.db",
                             TransferOptions(**options)) as runner:
            return runner.run()

    def test_snapshot_and_constraints(self):
        reports = self._run(consistent_snapshot=True)

        self.assertEqual([r.table for r in reports], ["t"])
        self.source_session.start_consistent_snapshot.assert_called_once()
        self.dest_session.disable_constraints.assert_called_once()
        self.dest_session.enable_constraints.assert_called_once()
        self.dest_session.commit.assert_called_once()
        self.source_session.commit.assert_called_once()
        self.dest_session.execute.assert_any_call('DROP TABLE IF EXISTS "t"')

    def test_sessions_closed(self):
        self._run()
        self.source_session.close.assert_called_once()
        self.dest_session.close.assert_called_once()

    def test_no_snapshot_or_toggle_when_disabled(self):
        self._run(disable_fk_checks=False)
        self.source_session.start_consistent_snapshot.assert_not_called()
        self.dest_session.disable_constraints.assert_not_called()


if __name__ == '__main__':
    unittest.main()
