"""
sqlferry Migration Runner
=========================

Copies tables directly from a source database into a destination database of
the same provider, using the shared transfer pipeline.
"""

import logging
from typing import List, Optional

from .errors import DialectMismatchError
from .session import DbEngine, DbSession
from .transfer import SessionSink, TableReport, TransferOptions, TransferPipeline
from ..utils.helpers import redact_url

logger = logging.getLogger(__name__)


class MigrationRunner:
    def __init__(self, source_engine: DbEngine, source_url: str,
                 dest_engine: DbEngine, dest_url: str, options: TransferOptions):
        options.validate()
        self.source_engine = source_engine
        self.source_url = source_url
        self.dest_engine = dest_engine
        self.dest_url = dest_url
        self.options = options
        self.source: Optional[DbSession] = None
        self.destination: Optional[DbSession] = None

    def check_dialects(self) -> None:
        """Refuse cross-provider transfers before any connection is opened."""
        source_name = self.source_engine.dialect().name
        dest_name = self.dest_engine.dialect().name
        if source_name != dest_name:
            raise DialectMismatchError(source_name, dest_name)

    def close(self):
        """Close both sessions."""
        for session in (self.source, self.destination):
            if session is not None:
                session.close()
        self.source = None
        self.destination = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def run(self) -> List[TableReport]:
        self.check_dialects()

        logger.info(f"Migrating {redact_url(self.source_url)} -> {redact_url(self.dest_url)}")
        self.source = self.source_engine.connect(self.source_url)
        self.destination = self.dest_engine.connect(self.dest_url)

        if self.options.consistent_snapshot:
            self.source.start_consistent_snapshot()

        if self.options.disable_fk_checks:
            logger.info("Disabling foreign key checks on destination")
            self.destination.disable_constraints()

        pipeline = TransferPipeline(self.source, SessionSink(self.destination), self.options)
        reports = pipeline.run()

        if self.options.disable_fk_checks:
            logger.info("Re-enabling foreign key checks on destination")
            self.destination.enable_constraints()

        self.destination.commit()
        self.source.commit()

        logger.info(f"Migration completed: {len(reports)} tables")
        return reports
