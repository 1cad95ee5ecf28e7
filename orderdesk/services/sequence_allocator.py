import enum
import logging

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from orderdesk.extensions import db
from orderdesk.models.sequence import SequenceCounter
from orderdesk.services.tax_engine import financial_year
from orderdesk.utils import utcnow

logger = logging.getLogger(__name__)

_UPSERT_BUILDERS = {
    'sqlite': sqlite_insert,
    'postgresql': postgresql_insert,
}


class DocumentKind(enum.Enum):
    ORDER = "ORD"
    QUOTE = "RFQ"
    SAMPLE = "SMP"
    TAX_INVOICE = "INV"
    PROFORMA = "PRO"


class SequenceAllocator:

    @staticmethod
    def next_number(kind, period_key, prefix):
        """
        Issue the next integer for (kind, period_key).

        One INSERT .. ON CONFLICT DO UPDATE .. RETURNING statement creates
        the counter at 1 or bumps it, so two callers can never observe the
        same value. Runs in the current session transaction: rolling back
        the document also rolls back its number.
        """
        kind = kind.value if isinstance(kind, DocumentKind) else kind
        dialect = db.session.get_bind().dialect.name
        builder = _UPSERT_BUILDERS.get(dialect)
        if builder is None:
            raise RuntimeError(f"Sequence allocation is not supported on the '{dialect}' dialect")

        counters = SequenceCounter.__table__
        stmt = builder(counters).values(
            kind=kind,
            period_key=str(period_key),
            prefix=prefix,
            last_number=1,
            updated_at=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[counters.c.kind, counters.c.period_key],
            set_={
                'last_number': counters.c.last_number + 1,
                'updated_at': stmt.excluded.updated_at,
            },
        ).returning(counters.c.last_number)

        number = db.session.execute(stmt).scalar_one()
        logger.debug('Allocated %s/%s #%s', kind, period_key, number)
        return number

    @staticmethod
    def next_order_number(when=None):
        year = (when or utcnow()).year
        number = SequenceAllocator.next_number(DocumentKind.ORDER, year, 'ORD')
        return format_yearly_number('ORD', year, number)

    @staticmethod
    def next_quote_number(when=None):
        year = (when or utcnow()).year
        number = SequenceAllocator.next_number(DocumentKind.QUOTE, year, 'RFQ')
        return format_yearly_number('RFQ', year, number)

    @staticmethod
    def next_sample_number(when=None):
        year = (when or utcnow()).year
        number = SequenceAllocator.next_number(DocumentKind.SAMPLE, year, 'SMP')
        return format_yearly_number('SMP', year, number)

    @staticmethod
    def next_invoice_number(prefix='INV', when=None):
        """Returns ``(invoice_number, financial_year)``; INV and PRO count separately."""
        fy = financial_year((when or utcnow()).date())
        number = SequenceAllocator.next_number(DocumentKind(prefix), fy, prefix)
        return format_invoice_number(prefix, fy, number), fy


def format_yearly_number(prefix, year, number):
    return f"{prefix}-{year}-{number:05d}"


def format_invoice_number(prefix, fy, number):
    return f"{prefix}/{fy}/{number:05d}"
