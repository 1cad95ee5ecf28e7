"""
Tests for orderdesk.services.sequence_allocator: counters and number formats.
"""

import threading
from datetime import datetime

import pytest

from orderdesk import create_app
from orderdesk.config import TestingConfig
from orderdesk.extensions import db
from orderdesk.models import SequenceCounter
from orderdesk.services.sequence_allocator import (
    DocumentKind, SequenceAllocator, format_invoice_number, format_yearly_number,
)


class TestFormats:
    def test_yearly_number(self):
        assert format_yearly_number('ORD', 2024, 7) == 'ORD-2024-00007'

    def test_invoice_number(self):
        assert format_invoice_number('INV', '2024-25', 123) == 'INV/2024-25/00123'


class TestNextNumber:
    def test_starts_at_one_and_increments(self, app):
        assert SequenceAllocator.next_number(DocumentKind.ORDER, 2024, 'ORD') == 1
        assert SequenceAllocator.next_number(DocumentKind.ORDER, 2024, 'ORD') == 2
        assert SequenceAllocator.next_number(DocumentKind.ORDER, 2024, 'ORD') == 3

    def test_keys_are_independent(self, app):
        SequenceAllocator.next_number(DocumentKind.ORDER, 2024, 'ORD')
        SequenceAllocator.next_number(DocumentKind.ORDER, 2024, 'ORD')
        assert SequenceAllocator.next_number(DocumentKind.ORDER, 2025, 'ORD') == 1
        assert SequenceAllocator.next_number(DocumentKind.QUOTE, 2024, 'RFQ') == 1

    def test_rollback_returns_the_number(self, app):
        SequenceAllocator.next_number(DocumentKind.SAMPLE, 2024, 'SMP')
        db.session.commit()
        SequenceAllocator.next_number(DocumentKind.SAMPLE, 2024, 'SMP')
        db.session.rollback()
        assert SequenceAllocator.next_number(DocumentKind.SAMPLE, 2024, 'SMP') == 2

    def test_counter_row_is_stored(self, app):
        SequenceAllocator.next_number(DocumentKind.ORDER, 2024, 'ORD')
        db.session.commit()
        counter = SequenceCounter.query.filter_by(kind='ORD', period_key='2024').one()
        assert counter.last_number == 1
        assert counter.prefix == 'ORD'


class TestWrappers:
    def test_order_quote_sample_numbers(self, app):
        when = datetime(2024, 6, 1)
        assert SequenceAllocator.next_order_number(when) == 'ORD-2024-00001'
        assert SequenceAllocator.next_order_number(when) == 'ORD-2024-00002'
        assert SequenceAllocator.next_quote_number(when) == 'RFQ-2024-00001'
        assert SequenceAllocator.next_sample_number(when) == 'SMP-2024-00001'

    def test_invoice_and_proforma_count_separately(self, app):
        when = datetime(2025, 2, 10)
        assert SequenceAllocator.next_invoice_number('INV', when) == ('INV/2024-25/00001', '2024-25')
        assert SequenceAllocator.next_invoice_number('PRO', when) == ('PRO/2024-25/00001', '2024-25')
        assert SequenceAllocator.next_invoice_number('INV', when) == ('INV/2024-25/00002', '2024-25')

    def test_new_financial_year_restarts(self, app):
        SequenceAllocator.next_invoice_number('INV', datetime(2025, 3, 31))
        number, fy = SequenceAllocator.next_invoice_number('INV', datetime(2025, 4, 1))
        assert (number, fy) == ('INV/2025-26/00001', '2025-26')

    def test_unknown_prefix_rejected(self, app):
        with pytest.raises(ValueError):
            SequenceAllocator.next_invoice_number('XYZ')


class TestConcurrency:
    def test_parallel_allocations_are_distinct(self, tmp_path):
        class FileConfig(TestingConfig):
            SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'sequence.db'}"
            SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 30}}

        app = create_app(FileConfig)
        with app.app_context():
            db.create_all()

        workers, per_worker = 8, 10
        results, errors = [], []
        lock = threading.Lock()

        def allocate():
            try:
                with app.app_context():
                    for _ in range(per_worker):
                        number = SequenceAllocator.next_number(DocumentKind.ORDER, 2024, 'ORD')
                        db.session.commit()
                        with lock:
                            results.append(number)
            except Exception as exc:
                with lock:
                    errors.append(exc)

        threads = [threading.Thread(target=allocate) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(results) == workers * per_worker
        assert sorted(results) == list(range(1, workers * per_worker + 1))

        with app.app_context():
            db.session.remove()
            db.engine.dispose()
